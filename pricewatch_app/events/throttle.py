"""Minimum-interval gate for display updates."""

import time
from collections.abc import Callable
from typing import Optional


class DisplayThrottle:
    """
    Forward at most one update per interval.

    The gate is global to the display sink rather than per instrument: the
    display only ever shows the active instrument, and the gate is reset on
    every stream restart so a freshly selected instrument shows immediately.
    """

    def __init__(self, min_interval_seconds: float = 0.25,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.min_interval = min_interval_seconds
        self._clock = clock
        self._last: Optional[float] = None
        self.passed = 0
        self.suppressed = 0

    def allow(self) -> bool:
        """True if enough time elapsed since the last allowed update."""
        now = self._clock()
        if self._last is not None and now - self._last < self.min_interval:
            self.suppressed += 1
            return False
        self._last = now
        self.passed += 1
        return True

    def reset(self) -> None:
        self._last = None
