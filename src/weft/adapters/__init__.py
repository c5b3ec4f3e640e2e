"""Scheduler adapters: the contract external schedulers implement, plus working examples."""

from weft.adapters.asyncio_loop import LoopAdapter
from weft.adapters.base import AdapterBase, SchedulerAdapter
from weft.adapters.clock import Clock, ManualClock, SystemClock
from weft.adapters.deferred import Deferred, DeferredState, MicrotaskQueue
from weft.adapters.listener import EventEmitter, Listener
from weft.adapters.suspension import Suspension
from weft.adapters.timer import TimerHandle, TimerQueue

__all__ = [
    "AdapterBase",
    "Clock",
    "Deferred",
    "DeferredState",
    "EventEmitter",
    "Listener",
    "LoopAdapter",
    "ManualClock",
    "SchedulerAdapter",
    "Suspension",
    "SystemClock",
    "TimerHandle",
    "TimerQueue",
]
