# src/api/models.py - v2
"""API-level models: caller input and response envelopes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalyzeInput(BaseModel):
    """Raw caller input. Validated into an AnalysisRequest by the facade."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rfp_text: str
    capability_text: str
    model: str | None = None
    mode: str | None = None
    bust_cache: bool = False
    clear_cache: bool = False


class ApiResponse(BaseModel):
    """Transport-neutral response: status, headers, JSON-ready body."""

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class AnalyzeResponse(ApiResponse):
    """Body: ``{ok, data, meta, error}``."""


class RunResponse(ApiResponse):
    """Body: ``{ok, runId, createdAt, orchestrator, runSummary, exports, result, meta}``."""


class ExportResponse(ApiResponse):
    """Body: rendered export text."""
