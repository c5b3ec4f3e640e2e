"""Deferred: promise-like resolution objects with context propagation.

Branch points:
    then()     solid edge on a new reaction token (the registration site)
    resolve()  dotted edge on every pending reaction (the resolution site)

Merge points:
    reactions run from MicrotaskQueue.drain() at resolution-then-invoke

Resolving a Deferred with another Deferred adopts it. The outer deferred's
chain anchor becomes the parent of the inner one's, and the adoption
reaction is chained under the outer anchor. When the inner deferred
settles, the outer's reactions receive edges whose snapshot came out of
resolving the adoption reaction - chained edges - so execution-flow
variables see the context in which the inner resolution was arranged.
"""

from __future__ import annotations

__all__ = ["Deferred", "DeferredState", "MicrotaskQueue"]

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar

from weft.adapters.base import AdapterBase
from weft.contracts.enums import EdgeKind, MergeKind

if TYPE_CHECKING:
    from weft.core.snapshot import Snapshot
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken


class DeferredState(StrEnum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(eq=False)
class _Reaction:
    token: OperationToken
    on_fulfilled: Callable[[Any], Any] | None
    on_rejected: Callable[[BaseException], Any] | None
    child: Deferred | None
    merge_kind: MergeKind
    scheduled: bool = False


class MicrotaskQueue(AdapterBase):
    """FIFO job queue that runs deferred reactions.

    Example:
        queue = MicrotaskQueue(engine)
        d = queue.deferred()
        d.then(print)
        d.resolve("done")
        queue.drain()
    """

    name: ClassVar[str] = "deferred"

    def __init__(self, engine: ContextEngine) -> None:
        super().__init__(engine)
        self._jobs: deque[Callable[[], None]] = deque()

    def __len__(self) -> int:
        return len(self._jobs)

    def deferred(self, label: str | None = None) -> Deferred:
        return Deferred(self, label=label)

    def resolved(self, value: Any) -> Deferred:
        d = Deferred(self)
        d.resolve(value)
        return d

    def rejected(self, error: BaseException) -> Deferred:
        d = Deferred(self)
        d.reject(error)
        return d

    def enqueue(self, job: Callable[[], None]) -> None:
        self._jobs.append(job)

    def drain(self) -> int:
        """Run jobs until the queue is empty, including jobs queued meanwhile.

        Returns:
            Number of jobs run
        """
        ran = 0
        while self._jobs:
            job = self._jobs.popleft()
            job()
            ran += 1
        return ran


class Deferred:
    """A value that settles later; reactions run with propagated context.

    then() returns a new Deferred settled with the handler's result (or
    rejected with what the handler raised), so chains compose the usual
    way. Settling twice is ignored, but the attempt is still recorded: the
    reactions that already ran get late edges.
    """

    def __init__(self, queue: MicrotaskQueue, *, label: str | None = None) -> None:
        self._queue = queue
        self._engine = queue.engine
        # Chain anchor: never resolved, carries the creation site and links adopted deferreds
        self._anchor = queue._branch(detail=label or "anchor")
        self._state = DeferredState.PENDING
        self._result: Any = None
        self._adopting = False
        self._settle_snapshot: Snapshot | None = None
        self._reactions: list[_Reaction] = []

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def anchor(self) -> OperationToken:
        return self._anchor

    @property
    def result(self) -> Any:
        """Fulfilled value or rejection error.

        Raises:
            RuntimeError: If the deferred is still pending
        """
        if self._state == DeferredState.PENDING:
            raise RuntimeError("Deferred is still pending")
        return self._result

    def then(
        self,
        on_fulfilled: Callable[[Any], Any] | None = None,
        on_rejected: Callable[[BaseException], Any] | None = None,
    ) -> Deferred:
        """Register reactions; returns a Deferred for the handler's outcome."""
        child = Deferred(self._queue)
        self._subscribe(on_fulfilled, on_rejected, child, MergeKind.RESOLUTION_THEN_INVOKE)
        return child

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> Deferred:
        return self.then(None, on_rejected)

    def resolve(self, value: Any) -> None:
        """Fulfil with value, or adopt value's outcome if it is a Deferred."""
        if self._state != DeferredState.PENDING or self._adopting:
            self._record_late_settle()
            return
        if isinstance(value, Deferred):
            if value is self:
                self._settle(DeferredState.REJECTED, TypeError("A Deferred cannot be resolved with itself"))
                return
            self._adopt(value)
            return
        self._settle(DeferredState.FULFILLED, value)

    def reject(self, error: BaseException) -> None:
        if self._state != DeferredState.PENDING or self._adopting:
            self._record_late_settle()
            return
        self._settle(DeferredState.REJECTED, error)

    def _adopt(self, inner: Deferred) -> None:
        self._adopting = True
        inner_anchor = inner._anchor
        if inner_anchor.parent is None and inner_anchor.token_id not in self._anchor.ancestry():
            self._engine.link(inner_anchor, self._anchor)
        # Settles this deferred from inside the merged context of the adoption reaction
        inner._subscribe(self._settle_fulfilled, self._settle_rejected, None, MergeKind.RESOLUTION_SETTLE, parent=self._anchor)

    def _settle_fulfilled(self, value: Any) -> None:
        self._settle(DeferredState.FULFILLED, value)

    def _settle_rejected(self, error: BaseException) -> None:
        self._settle(DeferredState.REJECTED, error)

    def _subscribe(
        self,
        on_fulfilled: Callable[[Any], Any] | None,
        on_rejected: Callable[[BaseException], Any] | None,
        child: Deferred | None,
        merge_kind: MergeKind,
        *,
        parent: OperationToken | None = None,
    ) -> None:
        token = self._queue._branch(detail=merge_kind.value, parent=parent if parent is not None else self._anchor)
        reaction = _Reaction(token, on_fulfilled, on_rejected, child, merge_kind)
        self._reactions.append(reaction)
        if self._state != DeferredState.PENDING:
            # Already settled: the captured resolution site is the candidate
            self._engine.record_branch(token, EdgeKind.DOTTED, snapshot=self._settle_snapshot)
            self._schedule(reaction)

    def _settle(self, state: DeferredState, result: Any) -> None:
        self._state = state
        self._result = result
        self._adopting = False
        self._settle_snapshot = self._engine.current()
        for reaction in self._reactions:
            if not reaction.scheduled:
                self._engine.record_branch(reaction.token, EdgeKind.DOTTED)
                self._schedule(reaction)

    def _record_late_settle(self) -> None:
        for reaction in self._reactions:
            if reaction.scheduled:
                self._engine.record_branch(reaction.token, EdgeKind.DOTTED)

    def _schedule(self, reaction: _Reaction) -> None:
        reaction.scheduled = True
        self._queue.enqueue(lambda: self._queue._invoke(reaction.token, reaction.merge_kind, self._react, reaction))

    def _react(self, reaction: _Reaction) -> None:
        fulfilled = self._state == DeferredState.FULFILLED
        handler = reaction.on_fulfilled if fulfilled else reaction.on_rejected
        child = reaction.child
        if child is None:
            if handler is not None:
                handler(self._result)
            return
        if handler is None:
            if fulfilled:
                child.resolve(self._result)
            else:
                child.reject(self._result)
            return
        try:
            outcome = handler(self._result)
        except Exception as exc:
            child.reject(exc)
        else:
            child.resolve(outcome)
