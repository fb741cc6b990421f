# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: model routing,
cache and run-store locations, live-lane throttling and retry policy,
logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDER ===
    llm_provider: str = "google"
    llm_default_model: str = "gemini-3-flash-preview"
    llm_fallback_model: str = "gemini-3-pro-preview"
    llm_allowed_models: str = "gemini-3-flash-preview,gemini-3-pro-preview"
    llm_temperature: float = 0.2
    llm_max_output_tokens: int = 8192
    google_api_key: str = ""

    # Bump whenever verifier rules, prompt contract or result schema change.
    logic_version: str = "matrixmint-logic-v4"

    # === Result cache ===
    cache_disk_enabled: bool = True
    cache_root: Path = Path(".matrixmint_cache")
    cache_ttl_seconds: int = 7 * 24 * 3600
    cache_offline_fallback: bool = False

    # === Live lane ===
    live_min_gap_ms: int = 1200
    live_timeout_s: float = 120.0
    live_max_attempts: int = 3
    retry_base_delay_s: float = 0.4
    retry_max_delay_s: float = 8.0

    # === Quota breaker ===
    quota_backoff_base_ms: int = 10_000
    quota_backoff_step_ms: int = 5_000
    quota_backoff_cap_ms: int = 60_000

    # === Run store ===
    runs_disk_enabled: bool = True
    runs_root: Path = Path(".matrixmint/runs")
    runs_memory_limit: int = 25
    runs_list_limit: int = 50

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("cache_ttl_seconds", "runs_memory_limit", "live_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("live_min_gap_ms")
    @classmethod
    def validate_gap(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("live_min_gap_ms must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.llm_default_model not in self.allowed_models_list:
            errors.append(
                f"LLM_DEFAULT_MODEL {self.llm_default_model!r} is not in LLM_ALLOWED_MODELS"
            )

        if self.llm_fallback_model and self.llm_fallback_model not in self.allowed_models_list:
            errors.append(
                f"LLM_FALLBACK_MODEL {self.llm_fallback_model!r} is not in LLM_ALLOWED_MODELS"
            )

        if self.llm_fallback_model == self.llm_default_model:
            errors.append("LLM_FALLBACK_MODEL must differ from LLM_DEFAULT_MODEL (or be empty)")

        if self.quota_backoff_cap_ms < self.quota_backoff_base_ms:
            errors.append("QUOTA_BACKOFF_CAP_MS must be >= QUOTA_BACKOFF_BASE_MS")

        if self.retry_max_delay_s < self.retry_base_delay_s:
            errors.append("RETRY_MAX_DELAY_S must be >= RETRY_BASE_DELAY_S")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def allowed_models_list(self) -> list[str]:
        """Parse comma-separated allowed model names."""
        return [m.strip() for m in self.llm_allowed_models.split(",") if m.strip()]

    def secondary_model_for(self, model: str) -> str | None:
        """Model tried once when *model* hits its quota in live mode."""
        if self.llm_fallback_model and self.llm_fallback_model != model:
            return self.llm_fallback_model
        if self.llm_default_model != model:
            return self.llm_default_model
        return None


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
