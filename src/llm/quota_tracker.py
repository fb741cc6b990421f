# src/llm/quota_tracker.py - v1
"""Per-model quota circuit breaker state.

The tracker only stores and reports state. Deciding what to do about a
blocked model is the orchestrator's job. The in-memory implementation is
process-local; a shared-storage backend can implement BaseQuotaTracker for
multi-process deployments.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod

from pydantic import BaseModel

from matrixmint.core.clock import Clock, now_ms

logger = logging.getLogger(__name__)

_LAST_ERROR_CHARS = 300


class QuotaState(BaseModel):
    """Breaker state for one model."""

    blocked_until_unix_ms: int = 0
    last_error: str | None = None
    strikes: int = 0


class QuotaSnapshot(BaseModel):
    """Caller-facing view of a model's breaker."""

    model: str
    blocked: bool
    blocked_until_unix_ms: int
    retry_after_seconds: int
    last_error: str | None = None


class BaseQuotaTracker(ABC):
    """Unified interface for quota breaker backends."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or now_ms

    @abstractmethod
    async def get_state(self, model: str) -> QuotaState:
        """Return the stored state (default state if never blocked)."""

    @abstractmethod
    async def set_state(self, model: str, state: QuotaState) -> None:
        """Persist state for a model."""

    @abstractmethod
    async def reset(self, model: str | None = None) -> None:
        """Forget state for one model, or for all models."""

    async def block(self, model: str, delay_ms: int, last_error: str | None = None) -> QuotaState:
        """Trip the breaker for *model* for *delay_ms* from now. Strikes are kept."""
        previous = await self.get_state(model)
        state = QuotaState(
            blocked_until_unix_ms=self._clock() + max(0, delay_ms),
            last_error=(last_error or "")[:_LAST_ERROR_CHARS] or None,
            strikes=previous.strikes,
        )
        await self.set_state(model, state)
        logger.warning(
            "Quota breaker tripped for %s for %ds", model, math.ceil(delay_ms / 1000)
        )
        return state

    async def record_strike(self, model: str) -> int:
        """Count one more consecutive quota failure; returns the new count."""
        state = await self.get_state(model)
        updated = state.model_copy(update={"strikes": state.strikes + 1})
        await self.set_state(model, updated)
        return updated.strikes

    async def clear_strikes(self, model: str) -> None:
        """Reset the escalation after a success. The block window is untouched."""
        state = await self.get_state(model)
        if state.strikes:
            await self.set_state(model, state.model_copy(update={"strikes": 0}))

    async def retry_after_seconds(self, model: str) -> int:
        state = await self.get_state(model)
        return max(0, math.ceil((state.blocked_until_unix_ms - self._clock()) / 1000))

    async def is_blocked(self, model: str) -> bool:
        state = await self.get_state(model)
        return self._clock() < state.blocked_until_unix_ms

    async def snapshot(self, model: str) -> QuotaSnapshot:
        state = await self.get_state(model)
        now = self._clock()
        return QuotaSnapshot(
            model=model,
            blocked=now < state.blocked_until_unix_ms,
            blocked_until_unix_ms=state.blocked_until_unix_ms,
            retry_after_seconds=max(0, math.ceil((state.blocked_until_unix_ms - now) / 1000)),
            last_error=state.last_error,
        )


class InMemoryQuotaTracker(BaseQuotaTracker):
    """Process-local breaker state."""

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._states: dict[str, QuotaState] = {}

    async def get_state(self, model: str) -> QuotaState:
        return self._states.get(model) or QuotaState()

    async def set_state(self, model: str, state: QuotaState) -> None:
        self._states[model] = state

    async def reset(self, model: str | None = None) -> None:
        if model is None:
            self._states.clear()
        else:
            self._states.pop(model, None)
