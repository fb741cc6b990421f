# tests/unit/cache/test_unit_cache_factory.py - v2
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from matrixmint.cache.cache_factory import create_cache_store
from matrixmint.cache.models import CacheEnvelope
from matrixmint.cache.result_cache import TieredResultCache
from matrixmint.config.settings import load_settings

from support import make_result


class TestCreateCacheStore:
    def test_returns_tiered_cache(self, settings):
        assert isinstance(create_cache_store(settings), TieredResultCache)

    @pytest.mark.asyncio
    async def test_disk_enabled_writes_under_cache_root(self, settings, clock):
        cache = create_cache_store(settings, clock=clock)
        await cache.put("k" * 64, CacheEnvelope(saved_at_unix_ms=clock(), data=make_result()))
        assert (settings.cache_root / f"{'k' * 64}.json").exists()

    @pytest.mark.asyncio
    async def test_disk_disabled_is_memory_only(self, tmp_path, clock):
        s = load_settings(_env_file=None, cache_disk_enabled=False, cache_root=tmp_path / "c")
        cache = create_cache_store(s, clock=clock)
        await cache.put("k" * 64, CacheEnvelope(saved_at_unix_ms=clock(), data=make_result()))
        assert (await cache.lookup("k" * 64)).hit is True
        assert not (tmp_path / "c").exists()
