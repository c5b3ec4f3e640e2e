"""ContextEngine: the facade scheduler adapters and hosts talk to.

Bundles one VariableRegistry, the realm's initial snapshot, a
BranchRecorder, a MergeResolver, pluggy observers, and one
ActiveContextStack per thread. Each thread is an isolate: it owns its
stack, while the registry and all snapshots are shared.
"""

from __future__ import annotations

__all__ = ["ContextEngine"]

import threading
from collections.abc import Callable, Mapping
from contextlib import AbstractContextManager
from typing import Any, ParamSpec, TypeVar

import structlog

from weft.contracts.enums import EdgeKind, MergeKind
from weft.contracts.errors import AlreadyBootstrappedError, UnknownVariableError
from weft.contracts.records import HistoryEntry
from weft.core.config import WeftSettings
from weft.core.registry import MISSING, ContextVariable, MergeStrategy, VariableRegistry, default_registry
from weft.core.snapshot import Snapshot
from weft.engine.merge import MergeResolver
from weft.engine.stack import ActiveContextStack
from weft.engine.tokens import BranchRecorder, OperationToken
from weft.plugins.manager import ObserverManager

P = ParamSpec("P")
R = TypeVar("R")

slog = structlog.get_logger(__name__)


class ContextEngine:
    """Context propagation engine.

    Example:
        engine = ContextEngine(VariableRegistry())
        trace_id = engine.declare("trace_id", default=None)
        engine.bootstrap()

        # Application code
        engine.set(trace_id, "abc")

        # Scheduler adapter: registration
        token = engine.record_branch()

        # Scheduler adapter: dispatch
        engine.invoke(token, MergeKind.TIMER_FIRE, callback)
    """

    def __init__(
        self,
        registry: VariableRegistry | None = None,
        *,
        settings: WeftSettings | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            registry: Variables to propagate (defaults to the process-wide registry)
            settings: Engine settings (defaults to WeftSettings())
        """
        self.settings = settings if settings is not None else WeftSettings()
        self.registry = registry if registry is not None else default_registry()
        self.observers = ObserverManager()
        self._initial: Snapshot | None = None
        self._bootstrap_lock = threading.Lock()
        self._local = threading.local()
        self.recorder = BranchRecorder(
            self.current,
            history_limit=self.settings.history_limit,
            warn_on_late_edges=self.settings.warn_on_late_edges,
            observers=self.observers,
        )
        self.resolver = MergeResolver(
            self.registry,
            self.recorder,
            initial_snapshot=lambda: self._initial,
            stack=lambda: self.stack,
            observers=self.observers,
        )

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    @property
    def initial_snapshot(self) -> Snapshot | None:
        return self._initial

    @property
    def bootstrapped(self) -> bool:
        return self._initial is not None

    def bootstrap(self, values: Mapping[str | ContextVariable, Any] | None = None, /, **overrides: Any) -> Snapshot:
        """Create the realm's one initial snapshot.

        Declared defaults fill every entry; values and keyword overrides
        (keyed by variable key or ContextVariable) replace them. The calling
        thread's stack is rebased onto the initial snapshot when idle.

        Raises:
            AlreadyBootstrappedError: If called twice
            UnknownVariableError: If an override names an undeclared key
        """
        merged: dict[str | ContextVariable, Any] = {**(values or {}), **overrides}
        entries: dict[ContextVariable, Any] = {v: v.default for v in self.registry.variables() if v.default is not MISSING}
        for key, value in merged.items():
            variable = key if isinstance(key, ContextVariable) else self.registry.get(key)
            if variable is None:
                raise UnknownVariableError(str(key))
            entries[variable] = value

        with self._bootstrap_lock:
            if self._initial is not None:
                raise AlreadyBootstrappedError("ContextEngine.bootstrap() may only run once per engine")
            self._initial = Snapshot(entries)

        stack: ActiveContextStack | None = getattr(self._local, "stack", None)
        if stack is not None and stack.depth == 1:
            stack.reset(self._initial)

        slog.info("bootstrap_completed", variables=len(entries))
        return self._initial

    def run(self, main: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
        """Run main in the outermost frame with the initial snapshot active."""
        initial = self._initial if self._initial is not None else self.bootstrap()
        return self.stack.with_snapshot(initial, main, *args, **kwargs)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def declare(self, key: str, default: Any = MISSING, strategy: MergeStrategy | None = None) -> ContextVariable:
        return self.registry.declare(key, default, strategy)

    def variable(self, key: str) -> ContextVariable | None:
        return self.registry.get(key)

    # ------------------------------------------------------------------
    # Active-context stack (per thread)
    # ------------------------------------------------------------------

    @property
    def stack(self) -> ActiveContextStack:
        """The calling thread's stack, created on first use."""
        stack: ActiveContextStack | None = getattr(self._local, "stack", None)
        if stack is None:
            base = self._initial if self._initial is not None else Snapshot()
            stack = ActiveContextStack(base, enforce_purity=self.settings.enforce_pure_strategies)
            self._local.stack = stack
        return stack

    def current(self) -> Snapshot:
        return self.stack.current()

    def get(self, variable: ContextVariable) -> Any:
        return self.stack.get(variable)

    def set(self, variable: ContextVariable, value: Any) -> None:
        self.stack.set_variable(variable, value)

    def activate(self, snapshot: Snapshot) -> AbstractContextManager[Snapshot]:
        return self.stack.activate(snapshot)

    def with_snapshot(self, snapshot: Snapshot, body: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
        return self.stack.with_snapshot(snapshot, body, *args, **kwargs)

    # ------------------------------------------------------------------
    # Branch / merge
    # ------------------------------------------------------------------

    def record_branch(
        self,
        token: OperationToken | None = None,
        edge_kind: EdgeKind = EdgeKind.SOLID,
        *,
        snapshot: Snapshot | None = None,
        merge_kind: MergeKind | None = None,
        parent: OperationToken | None = None,
        label: str | None = None,
    ) -> OperationToken:
        return self.recorder.record_branch(
            token,
            edge_kind,
            snapshot=snapshot,
            merge_kind=merge_kind,
            parent=parent,
            label=label,
        )

    def open_token(self, *, parent: OperationToken | None = None, label: str | None = None) -> OperationToken:
        return self.recorder.open_token(parent=parent, label=label)

    def link(self, child: OperationToken, parent: OperationToken) -> None:
        self.recorder.link(child, parent)

    def cancel(self, token: OperationToken) -> None:
        self.recorder.cancel(token)

    def resolve(self, token: OperationToken, merge_kind: MergeKind, *, final: bool = True) -> Snapshot:
        return self.resolver.resolve(token, merge_kind, final=final)

    def invoke(
        self,
        token: OperationToken,
        merge_kind: MergeKind,
        callback: Callable[..., R],
        *args: Any,
        final: bool = True,
        **kwargs: Any,
    ) -> R:
        """Resolve token and run callback with the merged snapshot active.

        If resolution fails nothing is activated and the callback never runs.
        """
        snapshot = self.resolver.resolve(token, merge_kind, final=final)
        return self.stack.with_snapshot(snapshot, callback, *args, **kwargs)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self.recorder.history
