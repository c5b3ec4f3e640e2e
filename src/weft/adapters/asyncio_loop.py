"""LoopAdapter: explicit context-propagating scheduling on an asyncio loop.

Nothing is patched: callers schedule through the adapter instead of the
loop. call_soon_threadsafe() captures the calling thread's snapshot, so
context crosses from a worker thread's stack into the loop thread's stack.
"""

from __future__ import annotations

__all__ = ["LoopAdapter"]

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar

from weft.adapters.base import AdapterBase
from weft.contracts.enums import MergeKind

if TYPE_CHECKING:
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken


class LoopAdapter(AdapterBase):
    """Schedules callbacks on an event loop with merged snapshots.

    Example:
        async def main():
            loop_adapter = LoopAdapter(engine)
            loop_adapter.call_soon(on_ready)
            await asyncio.sleep(0)
    """

    name: ClassVar[str] = "asyncio"

    def __init__(self, engine: ContextEngine, loop: asyncio.AbstractEventLoop | None = None) -> None:
        super().__init__(engine)
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The bound loop, or the running loop when none was given.

        Raises:
            RuntimeError: If no loop was given and none is running
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        token = self._branch(detail=getattr(callback, "__name__", None))
        return self.loop.call_soon(self._dispatch, token, callback, args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        token = self._branch(detail=getattr(callback, "__name__", None))
        return self.loop.call_later(delay, self._dispatch, token, callback, args)

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        """Schedule from another thread; the calling thread's snapshot is captured."""
        token = self._branch(detail=getattr(callback, "__name__", None))
        return self.loop.call_soon_threadsafe(self._dispatch, token, callback, args)

    def _dispatch(self, token: OperationToken, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._invoke(token, MergeKind.LOOP_CALLBACK, callback, *args)
