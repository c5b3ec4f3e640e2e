"""TimerQueue: timer scheduling with context propagation.

call_later() is a branch point: the registration snapshot becomes the
timer token's solid edge. When the timer fires, the token is resolved at a
timer-fire merge point and the callback runs under the merged snapshot.

post() models an external completion queue: there is no registration site,
only the posting site as a dotted candidate, so execution-flow variables
follow the poster while source-graph variables fall back to the initial
snapshot.
"""

from __future__ import annotations

__all__ = ["TimerHandle", "TimerQueue"]

import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from weft.adapters.base import AdapterBase
from weft.adapters.clock import DEFAULT_CLOCK, Clock, ManualClock
from weft.contracts.enums import EdgeKind, MergeKind

if TYPE_CHECKING:
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken

slog = structlog.get_logger(__name__)


@dataclass(eq=False)
class TimerHandle:
    """Handle for a scheduled timer.

    Attributes:
        token: Operation token carrying the timer's edges
        callback: Function to call when the timer fires
        args: Positional arguments for the callback
        interval: Repeat interval in seconds (None = one-shot)
        merge_kind: Merge point kind used at dispatch
    """

    token: OperationToken
    callback: Callable[..., Any]
    args: tuple[Any, ...]
    interval: float | None = None
    merge_kind: MergeKind = MergeKind.TIMER_FIRE
    cancelled: bool = field(default=False, init=False)
    fired: int = field(default=0, init=False)


@dataclass(order=True)
class _Entry:
    due: float
    order: int
    handle: TimerHandle = field(compare=False)


class TimerQueue(AdapterBase):
    """Single-threaded timer queue driven by run_due().

    Callbacks run to completion one at a time in due order (ties in
    scheduling order). Exceptions from a callback propagate out of
    run_due(); timers not yet dispatched stay queued.

    Example:
        timers = TimerQueue(engine, clock=ManualClock())

        engine.set(request_id, "r-1")
        timers.call_later(0.5, handle_timeout)
        engine.set(request_id, "r-2")

        timers.advance(0.5)  # handle_timeout sees request_id == "r-1"
    """

    name: ClassVar[str] = "timer"

    def __init__(self, engine: ContextEngine, *, clock: Clock | None = None) -> None:
        super().__init__(engine)
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._heap: list[_Entry] = []
        self._order = itertools.count()

    def __len__(self) -> int:
        return sum(1 for entry in self._heap if not entry.handle.cancelled)

    def _push(self, due: float, handle: TimerHandle) -> TimerHandle:
        heapq.heappush(self._heap, _Entry(due, next(self._order), handle))
        return handle

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Schedule callback once after delay seconds.

        Raises:
            ValueError: If delay is negative
        """
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        token = self._branch(detail=getattr(callback, "__name__", None))
        return self._push(self._clock.monotonic() + delay, TimerHandle(token, callback, args))

    def call_every(self, interval: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Schedule callback repeatedly every interval seconds until cancelled.

        Every firing merges the same token, so all firings see the
        registration context (plus any chained state).

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        token = self._branch(detail=getattr(callback, "__name__", None))
        return self._push(self._clock.monotonic() + interval, TimerHandle(token, callback, args, interval=interval))

    def post(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Queue callback for the next run_due() with no registration site."""
        token = self._engine.open_token(label=self._label("posted"))
        self._branch(token, EdgeKind.DOTTED)
        return self._push(self._clock.monotonic(), TimerHandle(token, callback, args, merge_kind=MergeKind.QUEUE_DISPATCH))

    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a timer. The token is marked cancelled and never dispatched."""
        if handle.cancelled:
            return
        handle.cancelled = True
        self._engine.cancel(handle.token)

    def run_due(self) -> int:
        """Fire every timer whose due time has passed.

        Returns:
            Number of callbacks invoked
        """
        fired = 0
        now = self._clock.monotonic()
        while self._heap and self._heap[0].due <= now:
            entry = heapq.heappop(self._heap)
            handle = entry.handle
            if handle.cancelled:
                continue
            interval = handle.interval
            if interval is not None:
                # Reschedule before running so the callback may cancel it
                self._push(entry.due + interval, handle)
            handle.fired += 1
            fired += 1
            slog.debug("timer_fired", token_id=handle.token.token_id, label=handle.token.label, fired=handle.fired)
            self._invoke(handle.token, handle.merge_kind, handle.callback, *handle.args, final=interval is None)
        return fired

    def advance(self, seconds: float) -> int:
        """Advance a ManualClock and fire due timers.

        Raises:
            TypeError: If the queue is not driven by a ManualClock
        """
        if not isinstance(self._clock, ManualClock):
            raise TypeError("advance() requires a ManualClock")
        self._clock.advance(seconds)
        return self.run_due()
