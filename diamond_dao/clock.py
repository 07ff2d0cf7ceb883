"""
Clock collaborators.

Every state-mutating governance call reads the time exactly once and uses
that value for every check in the call. Clocks never go backwards.
"""

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Time source used for proposal creation and expiry comparison."""

    def now(self) -> float:
        ...


class SystemClock:
    """Wall-clock time, clamped so that successive reads never decrease."""

    def __init__(self):
        self._last = 0.0
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            current = time.time()
            if current < self._last:
                current = self._last
            self._last = current
            return current

    def __repr__(self) -> str:
        return "<SystemClock>"


class ManualClock:
    """
    Manually driven clock for tests and simulations.

    Args:
        start: Initial timestamp (defaults to the current wall-clock time)
    """

    def __init__(self, start: Optional[float] = None):
        self._now = float(time.time() if start is None else start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward by *seconds* and return the new time."""
        if seconds < 0:
            raise ValueError(f"Cannot move clock backwards by {seconds}s")
        self._now += seconds
        return self._now

    def set(self, timestamp: float) -> None:
        if timestamp < self._now:
            raise ValueError(
                f"Cannot set clock to {timestamp}: earlier than {self._now}"
            )
        self._now = float(timestamp)

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
