# src/storage/run_manager.py - v2
"""Run lifecycle: run id generation and bundle assembly from an outcome.

Run id format: ``matrixmint_<unix_ms>_<hex6>``.
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, timezone

from matrixmint.core.clock import now_ms
from matrixmint.exports.bundle import build_export_bundle
from matrixmint.pipeline.models import OrchestrationOutcome
from matrixmint.storage.models import RunBundle, RunOrchestrator, RunSummary

RUN_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def generate_run_id(unix_ms: int | None = None) -> str:
    """Generate a run_id: matrixmint_{unix_ms}_{uuid4_short}."""
    ms = now_ms() if unix_ms is None else unix_ms
    return f"matrixmint_{ms}_{uuid.uuid4().hex[:6]}"


def is_valid_run_id(run_id: str) -> bool:
    """Run ids double as file names; anything else is rejected before touching disk."""
    return bool(RUN_ID_RE.match(run_id))


def build_orchestrator_block(
    run_id: str,
    outcome: OrchestrationOutcome,
    started_at: datetime,
    finished_at: datetime,
) -> RunOrchestrator:
    meta = outcome.meta
    return RunOrchestrator(
        run_id=run_id,
        mode_requested=meta.mode_requested,
        model_requested=meta.model_requested,
        started_at=started_at,
        finished_at=finished_at,
        ladder_used=meta.ladder_used,
        model_used=meta.model_used,
        fallback_used=meta.fallback_used,
        elapsed_ms=int((finished_at - started_at).total_seconds() * 1000),
        attempts=meta.attempts,
        warnings=meta.warnings,
        cache=meta.cache,
    )


def create_run_bundle(
    run_id: str,
    outcome: OrchestrationOutcome,
    started_at: datetime,
    finished_at: datetime | None = None,
    today: date | None = None,
) -> RunBundle:
    """Assemble the immutable bundle for a successful run.

    Args:
        run_id: Run identifier.
        outcome: Successful orchestration outcome (data present).
        started_at: When the run started (UTC).
        finished_at: When the run finished (UTC, default now).
        today: Date stamped into exports (default today, UTC).

    Raises:
        ValueError: If the outcome carries no result.
    """
    if outcome.data is None:
        raise ValueError("Cannot build a run bundle from an outcome without data")
    finished = finished_at or datetime.now(timezone.utc)
    return RunBundle(
        run_id=run_id,
        created_at=started_at,
        orchestrator=build_orchestrator_block(run_id, outcome, started_at, finished),
        run_summary=RunSummary.from_result(outcome.data),
        result=outcome.data,
        meta=outcome.meta,
        exports=build_export_bundle(outcome.data, today or finished.date()),
    )
