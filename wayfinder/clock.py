"""Time sources for Wayfinder."""

import time


class SystemClock:
    """Wall clock in epoch milliseconds"""

    def now(self) -> float:
        return time.time() * 1000


class ManualClock:
    """Clock that only moves when told to (tests and trace replay)"""

    def __init__(self, start_ms: float = 0):
        self._now = start_ms

    def now(self) -> float:
        return self._now

    def advance(self, ms: float):
        self._now += ms

    def set(self, ms: float):
        self._now = ms
