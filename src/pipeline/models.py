# src/pipeline/models.py - v1
"""Orchestration records: attempts, cache/quota metadata, outcome."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from matrixmint.core.models import AnalysisResult, ExecutionMode

LadderLane = Literal["live", "cache", "offline", "none"]

OFFLINE_MODEL = "offline"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AttemptRecord(_WireModel):
    """One lane attempt. Appended once, never mutated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    ok: bool
    http_status: int | None = None
    elapsed_ms: int = 0
    aborted: bool = False
    model_used: str | None = None
    error_preview: str | None = None


class CacheMeta(_WireModel):
    hit: bool = False
    key: str = ""
    age_seconds: int | None = None
    source: Literal["memory", "disk", "none"] = "none"


class QuotaMeta(_WireModel):
    blocked: bool = False
    blocked_until_unix_ms: int = 0
    retry_after_seconds: int = 0
    last_error: str | None = None


class OrchestratorMeta(_WireModel):
    """How a result was produced: lane, model, attempts and why."""

    mode_requested: ExecutionMode
    ladder_used: LadderLane = "none"
    model_used: str | None = None
    model_requested: str
    fallback_used: str | None = None
    elapsed_ms: int = 0
    attempts: list[AttemptRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    cache: CacheMeta = Field(default_factory=CacheMeta)
    quota: QuotaMeta = Field(default_factory=QuotaMeta)


class OrchestrationOutcome(BaseModel):
    """Result of one orchestrated request, ready for the facade to wrap."""

    ok: bool
    status_code: int
    data: AnalysisResult | None = None
    meta: OrchestratorMeta
    error: str | None = None
    retry_after_seconds: int | None = None

    @property
    def headers(self) -> dict[str, str]:
        if self.retry_after_seconds is None:
            return {}
        return {"Retry-After": str(self.retry_after_seconds)}
