# src/cache/result_cache.py - v1
"""Two-tier result cache: in-process memory map in front of a disk store.

Memory is authoritative for the lifetime of the process; the disk tier only
carries entries across restarts and is never reconciled against memory.
TTL is evaluated at read time on both tiers.
"""

from __future__ import annotations

import logging

from matrixmint.cache.base_cache_store import BaseCacheStore
from matrixmint.cache.models import CacheEnvelope, CacheLookupResult
from matrixmint.core.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class TieredResultCache(BaseCacheStore):
    """Memory + optional disk cache with a single read path."""

    def __init__(
        self,
        ttl_seconds: int,
        disk: BaseCacheStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._ttl_ms = ttl_seconds * 1000
        self._disk = disk
        self._clock = clock or now_ms
        self._memory: dict[str, CacheEnvelope] = {}

    async def lookup(self, key: str) -> CacheLookupResult:
        entry = self._memory.get(key)
        if entry is not None:
            age_ms = entry.age_ms(self._clock())
            if age_ms <= self._ttl_ms:
                return CacheLookupResult(
                    hit=True,
                    key=key,
                    age_seconds=age_ms // 1000,
                    source="memory",
                    model_used=entry.model_used,
                    entry=entry,
                )
            self._memory.pop(key, None)

        if self._disk is None:
            return CacheLookupResult(key=key)

        result = await self._disk.lookup(key)
        if result.hit and result.entry is not None:
            self._memory[key] = result.entry
        return result

    async def put(self, key: str, entry: CacheEnvelope) -> None:
        self._memory[key] = entry
        if self._disk is not None:
            await self._disk.put(key, entry)

    async def delete(self, key: str) -> None:
        self._memory.pop(key, None)
        if self._disk is not None:
            await self._disk.delete(key)

    async def clear(self) -> int:
        dropped = len(self._memory)
        self._memory.clear()
        removed = await self._disk.clear() if self._disk is not None else 0
        logger.info("Cache cleared: %d memory entries, %d disk files", dropped, removed)
        return removed

    @property
    def memory_size(self) -> int:
        return len(self._memory)
