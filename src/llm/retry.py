# src/llm/retry.py - v2
"""Retry policy for live calls: capped, jittered exponential backoff.

Only transient failures are retried against the same model. Quota and
malformed-output failures end the loop immediately so the orchestrator can
apply its lane policy.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from matrixmint.config.settings import Settings
from matrixmint.llm.errors import ProviderError, parse_provider_error

logger = logging.getLogger(__name__)

QUOTA_BACKOFF_CAP_MS = 60_000


class LLMRetryExhausted(Exception):
    """A live call failed for good (retries exhausted or non-retriable error)."""

    def __init__(self, model: str, attempts: int, last_error: ProviderError):
        self.model = model
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Model '{model}' failed after {attempts} attempt(s) ({last_error.kind}): {last_error}"
        )

    @property
    def kind(self) -> str:
        return self.last_error.kind


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for transient failures."""

    max_attempts: int = 3
    base_delay_s: float = 0.4
    max_delay_s: float = 8.0
    backoff_factor: float = 2.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_attempts=settings.live_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            max_delay_s=settings.retry_max_delay_s,
        )


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay in seconds before retry number *attempt* (0-based)."""
    delay = min(config.max_delay_s, config.base_delay_s * (config.backoff_factor ** attempt))
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


def quota_backoff_ms(
    attempt: int,
    base_ms: int = 10_000,
    step_ms: int = 5_000,
    cap_ms: int = QUOTA_BACKOFF_CAP_MS,
) -> int:
    """Breaker window when the provider gives no retry hint: base + attempt² × step, capped."""
    return min(cap_ms, base_ms + attempt * attempt * step_ms)


def quota_delay_ms(error: ProviderError, attempt: int, settings: Settings) -> int:
    """Provider-suggested delay when present, else the capped backoff."""
    if error.retry_delay_ms is not None and error.retry_delay_ms > 0:
        return error.retry_delay_ms
    return quota_backoff_ms(
        attempt,
        base_ms=settings.quota_backoff_base_ms,
        step_ms=settings.quota_backoff_step_ms,
        cap_ms=min(settings.quota_backoff_cap_ms, QUOTA_BACKOFF_CAP_MS),
    )


async def with_retry(
    fn: Callable[[int], Awaitable[Any]],
    *,
    model: str,
    config: RetryConfig,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Execute an async call with retry on transient failures.

    Args:
        fn: Coroutine factory receiving the 1-based attempt number.
        model: Model name (for logs and the raised error).
        config: Retry configuration.
        sleep: Sleep function (tests).

    Raises:
        LLMRetryExhausted: On a non-retriable error or after the last attempt.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(attempt)
        except Exception as e:  # noqa: BLE001
            error = parse_provider_error(e)
            if not error.is_retriable or attempt >= config.max_attempts:
                raise LLMRetryExhausted(model, attempt, error) from e

            delay = compute_delay(config, attempt - 1)
            logger.warning(
                "Model '%s' %s (attempt %d/%d), retrying in %.1fs",
                model, error.kind, attempt, config.max_attempts, delay,
            )
            await sleep(delay)
