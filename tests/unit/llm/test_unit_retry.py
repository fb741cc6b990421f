# tests/unit/llm/test_unit_retry.py - v2
"""Tests for llm/retry.py - backoff math and the retry loop."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from matrixmint.llm.errors import ProviderError
from matrixmint.llm.retry import (
    LLMRetryExhausted,
    RetryConfig,
    compute_delay,
    quota_backoff_ms,
    quota_delay_ms,
    with_retry,
)

from support import FakeQuotaError, FakeUnavailableError


class TestComputeDelay:
    def test_exponential_without_jitter(self):
        cfg = RetryConfig(base_delay_s=0.5, max_delay_s=10, jitter=False)
        assert compute_delay(cfg, 0) == 0.5
        assert compute_delay(cfg, 1) == 1.0
        assert compute_delay(cfg, 2) == 2.0

    def test_capped(self):
        cfg = RetryConfig(base_delay_s=1, max_delay_s=3, jitter=False)
        assert compute_delay(cfg, 10) == 3

    def test_jitter_stays_within_cap(self):
        cfg = RetryConfig(base_delay_s=1, max_delay_s=3, jitter=True)
        for _ in range(50):
            assert 0 < compute_delay(cfg, 5) <= 3


class TestQuotaBackoff:
    def test_formula(self):
        assert quota_backoff_ms(1, base_ms=10_000, step_ms=5_000) == 15_000
        assert quota_backoff_ms(2, base_ms=10_000, step_ms=5_000) == 30_000

    def test_capped_at_sixty_seconds(self):
        assert quota_backoff_ms(10) == 60_000

    def test_provider_hint_wins(self, settings):
        err = ProviderError("quota_exceeded", "q", retry_delay_ms=33_000)
        assert quota_delay_ms(err, 1, settings) == 33_000

    def test_fallback_when_no_hint(self, settings):
        err = ProviderError("quota_exceeded", "q")
        assert quota_delay_ms(err, 1, settings) == 15_000


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, model="m", config=RetryConfig()) == "ok"
        fn.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self, no_sleep):
        fn = AsyncMock(side_effect=[FakeUnavailableError(), "ok"])
        result = await with_retry(fn, model="m", config=RetryConfig(max_attempts=3), sleep=no_sleep)
        assert result == "ok"
        assert fn.await_count == 2
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exhausts_transient(self, no_sleep):
        fn = AsyncMock(side_effect=FakeUnavailableError())
        with pytest.raises(LLMRetryExhausted) as exc_info:
            await with_retry(fn, model="m", config=RetryConfig(max_attempts=3), sleep=no_sleep)
        assert exc_info.value.attempts == 3
        assert exc_info.value.kind == "transient"
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_quota_is_not_retried(self, no_sleep):
        fn = AsyncMock(side_effect=FakeQuotaError())
        with pytest.raises(LLMRetryExhausted) as exc_info:
            await with_retry(fn, model="m", config=RetryConfig(max_attempts=3), sleep=no_sleep)
        assert exc_info.value.attempts == 1
        assert exc_info.value.last_error.retry_delay_ms == 33_000
        no_sleep.assert_not_awaited()
