"""EventEmitter: listener registration and synchronous dispatch.

Registration opens a token that holds the registering context for the
listener's lifetime. Each emit() opens a fresh dispatch token whose first
solid edge is the registration snapshot and whose later solid edge is the
emit site, then resolves it once. Execution-flow variables follow the
emitter (the most recent solid edge) while source-graph variables keep
the registration value (the earliest solid edge).

Dispatch tokens have no parent, so a listener that re-emits its own event
never leaves a chained edge behind for later dispatches.
"""

from __future__ import annotations

__all__ = ["EventEmitter", "Listener"]

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from weft.adapters.base import AdapterBase
from weft.contracts.enums import EdgeKind, MergeKind

if TYPE_CHECKING:
    from weft.core.snapshot import Snapshot
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken

slog = structlog.get_logger(__name__)


@dataclass(eq=False)
class Listener:
    """A registered listener, its registration token and the context it was registered in."""

    event: str
    callback: Callable[..., Any]
    token: OperationToken
    registration: Snapshot
    once: bool = False


class EventEmitter(AdapterBase):
    """Named-event listener registry with context-propagating dispatch.

    Example:
        emitter = EventEmitter(engine)
        emitter.on("message", handle_message)
        emitter.emit("message", payload)
    """

    name: ClassVar[str] = "listener"

    def __init__(self, engine: ContextEngine) -> None:
        super().__init__(engine)
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, callback: Callable[..., Any]) -> Listener:
        """Register a persistent listener."""
        return self._add(event, callback, once=False)

    def once(self, event: str, callback: Callable[..., Any]) -> Listener:
        """Register a listener removed after its first invocation."""
        return self._add(event, callback, once=True)

    def _add(self, event: str, callback: Callable[..., Any], *, once: bool) -> Listener:
        registration = self._engine.current()
        token = self._branch(detail=event, snapshot=registration)
        listener = Listener(event=event, callback=callback, token=token, registration=registration, once=once)
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, callback: Callable[..., Any]) -> bool:
        """Remove the first listener registered for callback.

        Returns:
            True if a listener was removed
        """
        for listener in self._listeners.get(event, []):
            if listener.callback is callback:
                self._remove(listener)
                return True
        return False

    def _remove(self, listener: Listener) -> None:
        self._listeners[listener.event].remove(listener)
        if not listener.token.settled:
            self._engine.cancel(listener.token)
            self._engine.recorder.settle(listener.token)
        slog.debug("listener_removed", token_id=listener.token.token_id, event=listener.event)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        """Invoke every listener for event, in registration order.

        Listeners added during dispatch are not called for this emit.
        Listener exceptions propagate; remaining listeners are skipped.

        Returns:
            Number of listeners invoked
        """
        listeners = list(self._listeners.get(event, []))
        invoked = 0
        for listener in listeners:
            if listener not in self._listeners[event]:
                continue  # removed by an earlier listener in this dispatch
            dispatch = self._branch(detail=f"{event}:dispatch", snapshot=listener.registration)
            self._branch(dispatch, EdgeKind.SOLID)
            if listener.once:
                self._listeners[event].remove(listener)
                self._engine.recorder.settle(listener.token)
            invoked += 1
            self._invoke(dispatch, MergeKind.LISTENER_INVOKE, listener.callback, *args)
        return invoked
