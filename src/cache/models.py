# src/cache/models.py - v2
"""Cache domain models: CacheEnvelope, CacheLookupResult."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from matrixmint.core.models import AnalysisResult


class CacheEnvelope(BaseModel):
    """On-disk (and in-memory) cache record for one key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    saved_at_unix_ms: int
    data: AnalysisResult
    model_used: str | None = None

    def age_ms(self, now_ms: int) -> int:
        return max(0, now_ms - self.saved_at_unix_ms)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CacheLookupResult(BaseModel):
    """Outcome of a two-tier cache read."""

    hit: bool = False
    key: str
    age_seconds: int | None = None
    source: Literal["memory", "disk", "none"] = "none"
    model_used: str | None = None
    entry: CacheEnvelope | None = None
