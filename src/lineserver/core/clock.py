"""
Minute-boundary clock that ages idle clients.

The clock remembers the start of the last tick period it serviced. When the
wall clock has moved a full period past it, a tick is due and the boundary
snaps forward to the start of the current period:

    12:00:00        12:00:59   12:01:00.4        12:02:00.9
       │ last = 12:00:00 │         │ tick, last = 12:01:00
       └─────────────────┴─────────┴──────────────────┴ tick, last = 12:02:00

The reactor polls it once per loop iteration, so a tick fires within about
one poll interval of the boundary. Several missed periods (a handler that
blocked for minutes) still produce a single tick.
"""

import time
from typing import Callable

from .client_table import ClientSlot


class TimeoutClock:
    """
    Decides when a tick is due and which clients have been idle too long.

    Args:
        tick_seconds: Length of one period (60 for once a minute).
        max_idle_ticks: A slot times out once its idle count exceeds this.
        time_func: Wall clock source; tests pass a fake.
    """

    def __init__(
        self,
        tick_seconds: int = 60,
        max_idle_ticks: int = 9,
        time_func: Callable[[], float] = time.time,
    ):
        self.tick_seconds = tick_seconds
        self.max_idle_ticks = max_idle_ticks
        self._time = time_func
        self._last = self._boundary(self._time())

    def _boundary(self, now: float) -> float:
        return now - (now % self.tick_seconds)

    @property
    def last_tick(self) -> float:
        """Start of the most recently serviced period."""
        return self._last

    def advance(self) -> bool:
        """Return True (and move the boundary) if a tick is due."""
        now = self._time()
        if now - self._last < self.tick_seconds:
            return False
        self._last = self._boundary(now)
        return True

    def age(self, slot: ClientSlot) -> bool:
        """Count one idle tick on ``slot``; True if it has now timed out."""
        slot.idle_ticks += 1
        return slot.idle_ticks > self.max_idle_ticks
