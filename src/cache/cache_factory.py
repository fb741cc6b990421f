# src/cache/cache_factory.py - v3
"""Factory for result cache instantiation."""

from __future__ import annotations

from matrixmint.cache.base_cache_store import BaseCacheStore
from matrixmint.cache.result_cache import TieredResultCache
from matrixmint.config.settings import Settings
from matrixmint.core.clock import Clock


def create_cache_store(
    settings: Settings | None = None,
    clock: Clock | None = None,
) -> BaseCacheStore:
    """Instantiate the two-tier result cache.

    Args:
        settings: Application settings. Defaults to memory + ./.matrixmint_cache.
        clock: Optional millisecond clock (tests).

    Returns:
        Configured BaseCacheStore implementation.
    """
    settings = settings or Settings()

    if not settings.cache_disk_enabled:
        return TieredResultCache(ttl_seconds=settings.cache_ttl_seconds, clock=clock)

    from matrixmint.cache.json_store import JsonCacheStore
    from matrixmint.storage.local_writer import LocalWriter

    disk = JsonCacheStore(
        writer=LocalWriter(settings.cache_root),
        ttl_seconds=settings.cache_ttl_seconds,
        clock=clock,
    )
    return TieredResultCache(
        ttl_seconds=settings.cache_ttl_seconds, disk=disk, clock=clock
    )
