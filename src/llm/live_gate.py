# src/llm/live_gate.py - v1
"""Serialization and minimum-spacing throttle around live generative calls.

At most one call is in flight per gate. Each call waits for the previous
one to finish and for ``min_gap_ms`` to elapse since that completion, then
runs under a caller-supplied timeout. The gate never retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

from matrixmint.llm.errors import LiveCallTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseLiveGate(ABC):
    """Unified interface for live-call gates."""

    @abstractmethod
    async def run(self, fn: Callable[[], Awaitable[T]], timeout_s: float) -> T:
        """Run *fn* once the gate allows it.

        Raises:
            LiveCallTimeout: If *fn* exceeds *timeout_s* (the call is cancelled).
        """


class AsyncLiveGate(BaseLiveGate):
    """Size-1 semaphore plus a last-completion timestamp."""

    def __init__(
        self,
        min_gap_ms: int = 1200,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._min_gap_s = min_gap_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(1)
        self._last_completed_at: float | None = None
        self._calls = 0

    @property
    def calls(self) -> int:
        """Number of calls that have passed through the gate."""
        return self._calls

    async def run(self, fn: Callable[[], Awaitable[T]], timeout_s: float) -> T:
        async with self._semaphore:
            if self._last_completed_at is not None:
                wait_s = self._last_completed_at + self._min_gap_s - self._clock()
                if wait_s > 0:
                    logger.debug("Live gate spacing: waiting %.2fs", wait_s)
                    await self._sleep(wait_s)
            try:
                return await asyncio.wait_for(fn(), timeout=timeout_s)
            except asyncio.TimeoutError as e:
                raise LiveCallTimeout(timeout_s) from e
            finally:
                self._last_completed_at = self._clock()
                self._calls += 1
