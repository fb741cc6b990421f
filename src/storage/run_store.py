# src/storage/run_store.py - v1
"""Run replay store: bounded in-memory map in front of one JSON file per run.

Disk is best effort. Write failures are logged and the run stays in memory;
read failures fall back to memory. Nothing here raises on disk problems.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict

from pydantic import ValidationError

from matrixmint.storage.base_output_writer import BaseOutputWriter
from matrixmint.storage.models import RunBundle, RunListing
from matrixmint.storage.run_manager import is_valid_run_id

logger = logging.getLogger(__name__)

_EXT = ".json"


class BaseRunStore(ABC):
    """Unified interface for run persistence backends."""

    @abstractmethod
    async def save_run(self, bundle: RunBundle) -> None:
        """Persist a run bundle."""

    @abstractmethod
    async def get_run(self, run_id: str) -> RunBundle | None:
        """Return the bundle, or None if unknown."""

    @abstractmethod
    async def list_runs(self, limit: int = 50) -> list[RunListing]:
        """Newest-first summaries."""


class LocalRunStore(BaseRunStore):
    """Memory (most recent N) + local JSON files.

    Args:
        writer: Disk backend rooted at the runs directory (None = memory only).
        memory_limit: Runs kept in memory.
    """

    def __init__(self, writer: BaseOutputWriter | None, memory_limit: int = 25) -> None:
        self._writer = writer
        self._memory_limit = memory_limit
        self._memory: OrderedDict[str, RunBundle] = OrderedDict()

    def _remember(self, bundle: RunBundle) -> None:
        self._memory[bundle.run_id] = bundle
        self._memory.move_to_end(bundle.run_id)
        while len(self._memory) > self._memory_limit:
            self._memory.popitem(last=False)

    async def save_run(self, bundle: RunBundle) -> None:
        self._remember(bundle)
        if self._writer is None:
            return
        try:
            await self._writer.write(
                f"{bundle.run_id}{_EXT}", bundle.model_dump_json(by_alias=True, indent=2)
            )
        except OSError as e:
            logger.warning("Run %s kept in memory only, disk write failed: %s", bundle.run_id, e)

    async def get_run(self, run_id: str) -> RunBundle | None:
        if not is_valid_run_id(run_id):
            return None
        bundle = self._memory.get(run_id)
        if bundle is not None:
            return bundle
        bundle = await self._read(f"{run_id}{_EXT}")
        if bundle is not None:
            self._remember(bundle)
        return bundle

    async def list_runs(self, limit: int = 50) -> list[RunListing]:
        listings = await self._list_from_disk(limit)
        if listings:
            return listings
        recent = sorted(self._memory.values(), key=lambda b: b.created_at, reverse=True)
        return [RunListing.from_bundle(b) for b in recent[:limit]]

    async def _list_from_disk(self, limit: int) -> list[RunListing]:
        if self._writer is None:
            return []
        try:
            names = [n for n in await self._writer.list_dir("") if n.endswith(_EXT)]
            stamped = [(await self._writer.modified_at(n), n) for n in names]
        except OSError as e:
            logger.warning("Run listing from disk failed, using memory: %s", e)
            return []

        stamped.sort(reverse=True)
        listings: list[RunListing] = []
        for _, name in stamped:
            if len(listings) >= limit:
                break
            bundle = await self._read(name)
            if bundle is not None:
                listings.append(RunListing.from_bundle(bundle))
        return listings

    async def _read(self, name: str) -> RunBundle | None:
        if self._writer is None:
            return None
        try:
            raw = await self._writer.read(name)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Run file %s unreadable: %s", name, e)
            return None
        try:
            return RunBundle.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning("Ignoring corrupt run file %s: %s", name, str(e)[:200])
            return None
