"""Epoch-millisecond clocks injected into the caching services."""

from __future__ import annotations

import time
from collections.abc import Callable

__all__ = ["Clock", "ManualClock", "system_clock"]

Clock = Callable[[], int]


def system_clock() -> int:
    """Return the current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


class ManualClock:
    """Clock whose time only moves when told to.

    Used wherever a deterministic notion of "now" is needed, most notably in
    the test-suite when asserting TTL boundaries.
    """

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, milliseconds: int) -> int:
        self.now_ms += milliseconds
        return self.now_ms
