# src/storage/models.py - v2
"""Run persistence models: RunBundle, RunSummary, RunListing."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from matrixmint.core.models import AnalysisResult, ExecutionMode
from matrixmint.exports.formatters import proof_label
from matrixmint.pipeline.models import AttemptRecord, CacheMeta, LadderLane, OrchestratorMeta


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RunOrchestrator(_WireModel):
    """How a run was executed, as shown to the caller."""

    run_id: str
    mode_requested: ExecutionMode
    model_requested: str
    started_at: datetime
    finished_at: datetime
    ladder_used: LadderLane
    model_used: str | None = None
    fallback_used: str | None = None
    elapsed_ms: int = 0
    attempts: list[AttemptRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    cache: CacheMeta = Field(default_factory=CacheMeta)


class RunSummary(_WireModel):
    """Headline numbers of a run: coverage, counts and proof."""

    total_requirements: int = 0
    covered_count: int = 0
    partial_count: int = 0
    missing_count: int = 0
    coverage_percent: float = 0.0
    proof_verified_count: int = 0
    proof_total_evidence_refs: int = 0
    proof_percent: float = 0.0
    proof_label: str = ""

    @classmethod
    def from_result(cls, result: AnalysisResult) -> RunSummary:
        s = result.summary
        return cls(
            total_requirements=s.total_requirements,
            covered_count=s.covered_count,
            partial_count=s.partial_count,
            missing_count=s.missing_count,
            coverage_percent=s.coverage_percent,
            proof_verified_count=s.proof_verified_count,
            proof_total_evidence_refs=s.proof_total_evidence_refs,
            proof_percent=s.proof_percent,
            proof_label=proof_label(
                s.proof_verified_count, s.proof_total_evidence_refs, s.proof_percent
            ),
        )


class RunBundle(_WireModel):
    """Everything a run produced. Created once, never mutated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    run_id: str
    created_at: datetime
    orchestrator: RunOrchestrator
    run_summary: RunSummary
    result: AnalysisResult
    meta: OrchestratorMeta
    exports: dict[str, str] = Field(default_factory=dict)


class RunListing(_WireModel):
    """Listing entry: summary fields only, no result or exports."""

    run_id: str
    created_at: datetime
    orchestrator: RunOrchestrator
    run_summary: RunSummary

    @classmethod
    def from_bundle(cls, bundle: RunBundle) -> RunListing:
        return cls(
            run_id=bundle.run_id,
            created_at=bundle.created_at,
            orchestrator=bundle.orchestrator,
            run_summary=bundle.run_summary,
        )
