# tests/unit/logging/test_unit_context.py - v1
"""Tests for logging/context.py - contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from matrixmint.logging.context import clear_context, get_context, log_context, set_lane


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.lane is None
        assert ctx.as_dict() == {}

    def test_set_lane(self):
        set_lane("cache")
        ctx = get_context()
        assert ctx.lane == "cache"
        assert ctx.model is None

    def test_block_restores(self):
        with log_context(run_id="r1", cache_key="abc"):
            assert get_context().as_dict() == {"run_id": "r1", "cache_key": "abc"}
            with log_context(run_id="r2"):
                assert get_context().run_id == "r2"
            assert get_context().run_id == "r1"
        assert get_context().run_id is None

    def test_lane_reset_by_block(self):
        with log_context(lane=None):
            set_lane("live", "m")
        assert get_context().lane is None
        assert get_context().model is None

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            with log_context(agent="x"):
                pass

    def test_clear(self):
        set_lane("offline", "offline")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def worker(run_id: str) -> str | None:
            with log_context(run_id=run_id):
                await asyncio.sleep(0)
                return get_context().run_id

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]
