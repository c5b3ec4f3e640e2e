"""Scheduler adapter interface.

Every scheduler that defers work must call the engine at two points:

1. At each branch-worthy interaction (registering a callback, settling a
   deferred, emitting an event): ContextEngine.record_branch()
2. Immediately around each invocation of a previously scheduled callback:
   ContextEngine.resolve() + ActiveContextStack.activate() (or
   ContextEngine.invoke(), which does both)

Adapters are independent of each other; they share only the engine.
"""

from __future__ import annotations

__all__ = ["AdapterBase", "SchedulerAdapter"]

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, TypeVar, runtime_checkable

from weft.contracts.enums import EdgeKind, MergeKind

if TYPE_CHECKING:
    from weft.core.snapshot import Snapshot
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken

R = TypeVar("R")


@runtime_checkable
class SchedulerAdapter(Protocol):
    """Structural contract for a scheduler adapter."""

    name: ClassVar[str]

    @property
    def engine(self) -> ContextEngine: ...


class AdapterBase:
    """Shared plumbing for adapters: labeled branches and wrapped invocation.

    Subclasses set ``name`` and use _branch() at interaction points and
    _invoke() at dispatch.
    """

    name: ClassVar[str] = "adapter"

    def __init__(self, engine: ContextEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> ContextEngine:
        return self._engine

    def _label(self, detail: str | None) -> str:
        return f"{self.name}:{detail}" if detail else self.name

    def _branch(
        self,
        token: OperationToken | None = None,
        edge_kind: EdgeKind = EdgeKind.SOLID,
        *,
        detail: str | None = None,
        snapshot: Snapshot | None = None,
        merge_kind: MergeKind | None = None,
        parent: OperationToken | None = None,
    ) -> OperationToken:
        return self._engine.record_branch(
            token,
            edge_kind,
            snapshot=snapshot,
            merge_kind=merge_kind,
            parent=parent,
            label=self._label(detail) if token is None else None,
        )

    def _invoke(
        self,
        token: OperationToken,
        merge_kind: MergeKind,
        callback: Callable[..., R],
        *args: Any,
        final: bool = True,
    ) -> R:
        return self._engine.invoke(token, merge_kind, callback, *args, final=final)
