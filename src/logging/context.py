# src/logging/context.py - v2
"""Contextual logging support: attach run_id, cache_key, lane and model to log records.

Values live in contextvars, so concurrent requests on one event loop each
see their own context.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_cache_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_key", default=None
)
_lane: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "lane", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)

_VARS: dict[str, contextvars.ContextVar[str | None]] = {
    "run_id": _run_id,
    "cache_key": _cache_key,
    "lane": _lane,
    "model": _model,
}


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    cache_key: str | None = None
    lane: str | None = None
    model: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        cache_key=_cache_key.get(),
        lane=_lane.get(),
        model=_model.get(),
    )


def set_lane(lane: str | None, model: str | None = None) -> None:
    """Set the execution lane (and model) for subsequent records."""
    _lane.set(lane)
    _model.set(model)


@contextmanager
def log_context(**values: str | None) -> Iterator[None]:
    """Bind context values for the duration of a block, then restore them.

    Raises:
        KeyError: For a name that is not a known context field.
    """
    tokens = [(_VARS[name], _VARS[name].set(value)) for name, value in values.items()]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    for var in _VARS.values():
        var.set(None)
