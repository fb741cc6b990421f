# src/cache/base_cache_store.py - v2
"""Abstract cache store interface.

Implementations must treat corrupt or expired entries as misses and must
never raise on a failed best-effort write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from matrixmint.cache.models import CacheEnvelope, CacheLookupResult


class BaseCacheStore(ABC):
    """Unified interface for result cache backends."""

    @abstractmethod
    async def lookup(self, key: str) -> CacheLookupResult:
        """Read an entry; misses carry hit=False."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEnvelope) -> None:
        """Store an entry."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove one entry from every tier."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove all entries. Returns the number of disk files removed."""
