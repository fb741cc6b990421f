# tests/unit/storage/test_unit_run_manager.py - v2
"""Tests for storage/run_manager.py - run ids and bundle assembly."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

import pytest

from matrixmint.core.models import ExecutionMode
from matrixmint.pipeline.models import OrchestrationOutcome, OrchestratorMeta
from matrixmint.storage.run_manager import (
    create_run_bundle,
    generate_run_id,
    is_valid_run_id,
)

from support import PRIMARY_MODEL, make_result

STARTED = datetime(2026, 2, 7, 14, 0, 0, tzinfo=timezone.utc)


def _outcome(data=True) -> OrchestrationOutcome:
    return OrchestrationOutcome(
        ok=data,
        status_code=200 if data else 429,
        data=make_result() if data else None,
        meta=OrchestratorMeta(
            mode_requested=ExecutionMode.AUTO,
            ladder_used="live" if data else "none",
            model_used=PRIMARY_MODEL if data else None,
            model_requested=PRIMARY_MODEL,
            warnings=["w1"],
        ),
    )


class TestGenerateRunId:
    def test_format(self):
        run_id = generate_run_id(1_700_000_000_123)
        assert re.fullmatch(r"matrixmint_1700000000123_[0-9a-f]{6}", run_id)

    def test_unique(self):
        assert generate_run_id(1) != generate_run_id(1)

    def test_valid_ids(self):
        assert is_valid_run_id(generate_run_id())
        assert not is_valid_run_id("../etc/passwd")
        assert not is_valid_run_id("")


class TestCreateRunBundle:
    def test_bundle_fields(self):
        finished = STARTED + timedelta(seconds=2)
        bundle = create_run_bundle("matrixmint_1_abc123", _outcome(), STARTED, finished, today=date(2026, 2, 7))
        assert bundle.run_id == "matrixmint_1_abc123"
        assert bundle.created_at == STARTED
        assert bundle.orchestrator.ladder_used == "live"
        assert bundle.orchestrator.elapsed_ms == 2000
        assert bundle.orchestrator.warnings == ["w1"]
        assert set(bundle.exports) == {
            "proofpack", "bidpacket", "clarificationsEmail", "risksCsv", "proposalDraft",
        }
        assert "2026-02-07" in bundle.exports["proofpack"]

    def test_run_summary_carries_proof_label(self):
        result = make_result()
        result.summary.proof_verified_count = 5
        result.summary.proof_total_evidence_refs = 6
        result.summary.proof_percent = 83.3
        outcome = _outcome().model_copy(update={"data": result})
        bundle = create_run_bundle("r1", outcome, STARTED)
        assert bundle.run_summary.proof_label == "83% (5/6)"

    def test_wire_shape_is_camel_case(self):
        wire = create_run_bundle("r1", _outcome(), STARTED).to_wire()
        assert {"runId", "createdAt", "orchestrator", "runSummary", "result", "meta", "exports"} <= set(wire)
        assert wire["orchestrator"]["modeRequested"] == "auto"

    def test_requires_data(self):
        with pytest.raises(ValueError):
            create_run_bundle("r1", _outcome(data=False), STARTED)
