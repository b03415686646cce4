"""
core/clock.py

Time is read, never scheduled.

The core samples a millisecond clock once per tick. The clock is
injected so studies can run in real time and tests can run in
whatever time they like.
"""

from __future__ import annotations
import time


class MonotonicClock:
    """Wall-clock milliseconds from a monotonic source."""

    def now(self) -> float:
        return time.perf_counter() * 1000.0

    def __repr__(self) -> str:
        return "MonotonicClock()"


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.time = float(start)

    def now(self) -> float:
        return self.time

    def advance(self, ms: float) -> float:
        """Move time forward by `ms` and return the new reading."""
        if ms < 0:
            raise ValueError(f"Clock cannot move backwards (advance by {ms})")
        self.time += ms
        return self.time

    def __repr__(self) -> str:
        return f"ManualClock(time={self.time:.1f})"
