# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

No network access: every generative call goes to an AsyncMock client.
Plain helpers (sample texts, fake errors, FakeClock) live in tests/support.py.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from matrixmint.config.settings import Settings, load_settings
from matrixmint.core.models import AnalysisResult

from support import PRIMARY_MODEL, FakeClock, make_result, mock_client


# === FIXTURES: Time ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep in retry loops."""
    return AsyncMock(return_value=None)


# === FIXTURES: Settings ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from .env, writing under tmp_path."""
    return load_settings(
        _env_file=None,
        google_api_key="test-key",
        cache_root=tmp_path / "cache",
        runs_root=tmp_path / "runs",
        live_min_gap_ms=0,
    )


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_result() -> AnalysisResult:
    return make_result()


@pytest.fixture
def sample_result_json(sample_result: AnalysisResult) -> str:
    return sample_result.model_dump_json(by_alias=True)


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm_client(sample_result_json: str) -> AsyncMock:
    """Mock primary-model client returning a valid result."""
    return mock_client(PRIMARY_MODEL, content=sample_result_json)
