# src/cache/json_store.py - v2
"""JSON file-based cache store (disk tier).

One file per key under the cache root, holding the envelope
``{"savedAtUnixMs": ..., "data": ..., "modelUsed": ...}``. Writes are atomic
(temp file + rename). Corrupt, partially shaped and expired files are misses.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from matrixmint.cache.base_cache_store import BaseCacheStore
from matrixmint.cache.models import CacheEnvelope, CacheLookupResult
from matrixmint.core.clock import Clock, now_ms
from matrixmint.storage.base_output_writer import BaseOutputWriter

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(
        self,
        writer: BaseOutputWriter,
        ttl_seconds: int,
        clock: Clock | None = None,
    ) -> None:
        self._writer = writer
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock or now_ms

    async def lookup(self, key: str) -> CacheLookupResult:
        """Read and validate the entry for *key*."""
        name = self._entry_name(key)
        try:
            raw = await self._writer.read(name)
        except FileNotFoundError:
            return CacheLookupResult(key=key)
        except OSError as e:
            logger.warning("Cache read failed for %s: %s", key[:12], e)
            return CacheLookupResult(key=key)

        try:
            entry = CacheEnvelope.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", key[:12], str(e)[:200])
            return CacheLookupResult(key=key)

        age_ms = entry.age_ms(self._clock())
        if age_ms > self._ttl_ms:
            logger.debug("Cache entry %s expired (age %ds)", key[:12], age_ms // 1000)
            return CacheLookupResult(key=key)

        return CacheLookupResult(
            hit=True,
            key=key,
            age_seconds=age_ms // 1000,
            source="disk",
            model_used=entry.model_used,
            entry=entry,
        )

    async def put(self, key: str, entry: CacheEnvelope) -> None:
        """Persist an entry; failures are logged and swallowed."""
        try:
            await self._writer.write(self._entry_name(key), entry.model_dump_json(by_alias=True))
        except OSError as e:
            logger.warning("Cache disk write failed for %s (continuing): %s", key[:12], e)

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        try:
            await self._writer.delete(self._entry_name(key))
        except OSError as e:
            logger.warning("Cache delete failed for %s: %s", key[:12], e)

    async def clear(self) -> int:
        """Remove every cached file."""
        removed = 0
        try:
            names = await self._writer.list_dir("")
        except OSError as e:
            logger.warning("Cache directory not readable: %s", e)
            return 0
        for name in names:
            if not name.endswith(".json"):
                continue
            try:
                if await self._writer.delete(name):
                    removed += 1
            except OSError as e:
                logger.warning("Cache delete failed for %s: %s", name, e)
        return removed

    @staticmethod
    def _entry_name(key: str) -> str:
        """Return file name for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return f"{safe_key}.json"
