"""Clock abstraction for timer adapters.

TimerQueue reads time through a Clock so timer dispatch can be driven
deterministically. Production code uses SystemClock; tests inject
ManualClock and advance it explicitly.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source in seconds."""

    def monotonic(self) -> float: ...


class SystemClock:
    """Clock backed by time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to.

    Example:
        clock = ManualClock()
        timers = TimerQueue(engine, clock=clock)
        timers.call_later(1.0, callback)

        clock.advance(1.0)
        timers.run_due()  # callback fires
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def monotonic(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move time forward.

        Raises:
            ValueError: If seconds is negative (time never goes backwards).
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._now += seconds


DEFAULT_CLOCK: Clock = SystemClock()
