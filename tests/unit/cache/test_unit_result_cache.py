# tests/unit/cache/test_unit_result_cache.py - v1
"""Tests for cache/result_cache.py - memory tier in front of the disk tier."""

from __future__ import annotations

import pytest

from matrixmint.cache.json_store import JsonCacheStore
from matrixmint.cache.models import CacheEnvelope
from matrixmint.cache.result_cache import TieredResultCache
from matrixmint.storage.local_writer import LocalWriter

from support import FakeClock, make_result

TTL_S = 3600
KEY = "c" * 64


@pytest.fixture
def fake_clock():
    return FakeClock()


def _disk(tmp_path, clock) -> JsonCacheStore:
    return JsonCacheStore(LocalWriter(tmp_path), ttl_seconds=TTL_S, clock=clock)


def _envelope(clock, model="gemini-3-flash-preview") -> CacheEnvelope:
    return CacheEnvelope(saved_at_unix_ms=clock(), data=make_result(), model_used=model)


class TestTieredResultCache:
    @pytest.mark.asyncio
    async def test_memory_hit_first(self, tmp_path, fake_clock):
        cache = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        await cache.put(KEY, _envelope(fake_clock))
        result = await cache.lookup(KEY)
        assert result.hit is True
        assert result.source == "memory"

    @pytest.mark.asyncio
    async def test_disk_hit_populates_memory(self, tmp_path, fake_clock):
        first = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        await first.put(KEY, _envelope(fake_clock))

        # A fresh process: empty memory, same disk.
        second = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        assert second.memory_size == 0
        result = await second.lookup(KEY)
        assert result.hit is True
        assert result.source == "disk"
        assert second.memory_size == 1
        assert (await second.lookup(KEY)).source == "memory"

    @pytest.mark.asyncio
    async def test_ttl_boundary_in_memory(self, fake_clock):
        cache = TieredResultCache(TTL_S, clock=fake_clock)
        await cache.put(KEY, _envelope(fake_clock))
        fake_clock.advance((TTL_S - 1) * 1000)
        assert (await cache.lookup(KEY)).hit is True
        fake_clock.advance(2000)
        assert (await cache.lookup(KEY)).hit is False
        assert cache.memory_size == 0

    @pytest.mark.asyncio
    async def test_memory_is_authoritative_over_disk(self, tmp_path, fake_clock):
        cache = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        await cache.put(KEY, _envelope(fake_clock, model="gemini-3-flash-preview"))
        # Another writer replaces the disk file; this process keeps its own view.
        other = _disk(tmp_path, fake_clock)
        await other.put(KEY, _envelope(fake_clock, model="gemini-3-pro-preview"))
        assert (await cache.lookup(KEY)).model_used == "gemini-3-flash-preview"

    @pytest.mark.asyncio
    async def test_memory_only(self, fake_clock):
        cache = TieredResultCache(TTL_S, clock=fake_clock)
        assert (await cache.lookup(KEY)).hit is False
        await cache.put(KEY, _envelope(fake_clock))
        assert (await cache.lookup(KEY)).hit is True

    @pytest.mark.asyncio
    async def test_clear_empties_both_tiers(self, tmp_path, fake_clock):
        cache = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        await cache.put(KEY, _envelope(fake_clock))
        removed = await cache.clear()
        assert removed == 1
        assert cache.memory_size == 0
        assert (await cache.lookup(KEY)).hit is False

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path, fake_clock):
        cache = TieredResultCache(TTL_S, disk=_disk(tmp_path, fake_clock), clock=fake_clock)
        await cache.put(KEY, _envelope(fake_clock))
        await cache.delete(KEY)
        assert (await cache.lookup(KEY)).hit is False
