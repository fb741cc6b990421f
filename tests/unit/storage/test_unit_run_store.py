# tests/unit/storage/test_unit_run_store.py - v1
"""Tests for storage/run_store.py - bounded memory + disk replay store."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest

from matrixmint.core.models import ExecutionMode
from matrixmint.pipeline.models import OrchestrationOutcome, OrchestratorMeta
from matrixmint.storage.local_writer import LocalWriter
from matrixmint.storage.run_manager import create_run_bundle
from matrixmint.storage.run_store import LocalRunStore

from support import PRIMARY_MODEL, make_result

BASE = datetime(2026, 2, 7, 14, 0, 0, tzinfo=timezone.utc)


def _bundle(run_id: str, minutes: int = 0):
    outcome = OrchestrationOutcome(
        ok=True,
        status_code=200,
        data=make_result(),
        meta=OrchestratorMeta(
            mode_requested=ExecutionMode.OFFLINE,
            ladder_used="offline",
            model_used="offline",
            model_requested=PRIMARY_MODEL,
        ),
    )
    return create_run_bundle(run_id, outcome, BASE + timedelta(minutes=minutes))


class TestLocalRunStore:
    @pytest.mark.asyncio
    async def test_save_and_get_from_memory(self, tmp_path):
        store = LocalRunStore(LocalWriter(tmp_path))
        await store.save_run(_bundle("run_a"))
        got = await store.get_run("run_a")
        assert got is not None
        assert got.run_id == "run_a"
        assert (tmp_path / "run_a.json").exists()

    @pytest.mark.asyncio
    async def test_get_rehydrates_from_disk(self, tmp_path):
        await LocalRunStore(LocalWriter(tmp_path)).save_run(_bundle("run_a"))
        fresh = LocalRunStore(LocalWriter(tmp_path))
        got = await fresh.get_run("run_a")
        assert got is not None
        assert got.exports["risksCsv"].startswith("RequirementID,")
        assert got.result.requirements[0].id == "FR-01"

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, tmp_path):
        store = LocalRunStore(LocalWriter(tmp_path))
        assert await store.get_run("missing") is None
        assert await store.get_run("../escape") is None

    @pytest.mark.asyncio
    async def test_memory_is_bounded(self):
        store = LocalRunStore(None, memory_limit=2)
        for i in range(3):
            await store.save_run(_bundle(f"run_{i}", minutes=i))
        assert await store.get_run("run_0") is None
        assert await store.get_run("run_2") is not None

    @pytest.mark.asyncio
    async def test_list_sorted_by_mtime_desc(self, tmp_path):
        store = LocalRunStore(LocalWriter(tmp_path))
        for i, name in enumerate(["run_old", "run_mid", "run_new"]):
            await store.save_run(_bundle(name, minutes=i))
            os.utime(tmp_path / f"{name}.json", (1_000_000 + i, 1_000_000 + i))
        listing = await store.list_runs(limit=2)
        assert [e.run_id for e in listing] == ["run_new", "run_mid"]
        assert listing[0].run_summary.total_requirements == 3

    @pytest.mark.asyncio
    async def test_list_skips_corrupt_files(self, tmp_path):
        store = LocalRunStore(LocalWriter(tmp_path))
        await store.save_run(_bundle("run_ok"))
        (tmp_path / "run_bad.json").write_text("{oops", encoding="utf-8")
        assert [e.run_id for e in await store.list_runs()] == ["run_ok"]

    @pytest.mark.asyncio
    async def test_list_falls_back_to_memory(self):
        store = LocalRunStore(None)
        await store.save_run(_bundle("run_a", minutes=0))
        await store.save_run(_bundle("run_b", minutes=5))
        assert [e.run_id for e in await store.list_runs()] == ["run_b", "run_a"]

    @pytest.mark.asyncio
    async def test_disk_failure_keeps_run_in_memory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        store = LocalRunStore(LocalWriter(blocker))
        await store.save_run(_bundle("run_a"))  # must not raise
        assert await store.get_run("run_a") is not None
        assert [e.run_id for e in await store.list_runs()] == ["run_a"]
