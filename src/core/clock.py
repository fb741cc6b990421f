# src/core/clock.py - v1
"""Wall-clock helpers. Components take a Clock so tests can pin time."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Current unix time in milliseconds."""
    return int(time.time() * 1000)
