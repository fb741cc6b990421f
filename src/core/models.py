# src/core/models.py - v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
The compliance matrix serializes with camelCase aliases so the wire shape
matches the JSON schema handed to the generative service.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CoverageStatus = Literal["Covered", "Partial", "Missing"]
RequirementCategory = Literal["Functional", "NonFunctional"]

EVIDENCE_MISMATCH_FLAG = "Evidence mismatch"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === EXECUTION REQUEST ===


class ExecutionMode(str, Enum):
    """Requested execution lane."""

    LIVE = "live"
    CACHE = "cache"
    OFFLINE = "offline"
    AUTO = "auto"


class InvalidModeError(ValueError):
    """Raised for a mode string outside ExecutionMode."""


def parse_mode(value: str | ExecutionMode | None, default: ExecutionMode = ExecutionMode.AUTO) -> ExecutionMode:
    """Parse a user-supplied mode string; empty means *default*."""
    if isinstance(value, ExecutionMode):
        return value
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidModeError(f"Mode must be a string, got {type(value).__name__}")
    if not value.strip():
        return default
    try:
        return ExecutionMode(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in ExecutionMode)
        raise InvalidModeError(f"Unknown mode {value!r}; expected one of: {allowed}") from None


class AnalysisRequest(BaseModel):
    """One analysis call. Immutable."""

    model_config = ConfigDict(frozen=True)

    source_text: str
    evidence_text: str
    model_requested: str
    mode: ExecutionMode = ExecutionMode.AUTO
    bust_cache: bool = False
    clear_cache: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, v: object) -> ExecutionMode:  # noqa: N805
        return parse_mode(v)  # type: ignore[arg-type]


# === COMPLIANCE MATRIX ===


class RequirementRow(_CamelModel):
    """One requirement and its coverage against the capability brief."""

    id: str
    category: RequirementCategory = "Functional"
    text: str = ""
    status: CoverageStatus
    response_summary: str = ""
    evidence_ids: list[str] = Field(default_factory=list)
    evidence_quotes: list[str] = Field(default_factory=list)
    gaps_or_questions: list[str] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list)


class ResultSummary(_CamelModel):
    """Aggregate counts, coverage, proof counters, risks and next actions."""

    total_requirements: int = 0
    covered_count: int = 0
    partial_count: int = 0
    missing_count: int = 0
    coverage_percent: float = Field(default=0.0, ge=0, le=100)
    top_risks: list[str] = Field(default_factory=list)
    next_actions: list[str] = Field(default_factory=list)
    proof_verified_count: int = 0
    proof_total_evidence_refs: int = 0
    proof_percent: float = 0.0
    proof_notes: list[str] = Field(default_factory=list)


class ProposalOutline(_CamelModel):
    """Proposal skeleton aligned to the RFP response format."""

    executive_summary: str = ""
    sections: list[str] = Field(default_factory=list)
    evidence_verified: bool = False
    evidence_verification_notes: list[str] = Field(default_factory=list)


class AnalysisResult(_CamelModel):
    """Compliance matrix plus summary and proposal outline."""

    summary: ResultSummary
    requirements: list[RequirementRow]
    proposal_outline: ProposalOutline = Field(default_factory=ProposalOutline)

    def to_wire(self) -> dict:
        """Serialize with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
