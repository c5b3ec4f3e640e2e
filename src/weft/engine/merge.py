"""MergeResolver: computes the snapshot a scheduled callback runs under.

Called by a scheduler adapter immediately before it invokes a previously
registered callback. The resolver gathers the token's eligible edges,
applies each variable's merge strategy to them, and assembles one new
snapshot. Activation is the adapter's job (ActiveContextStack.activate).

Strategy dispatch:
    execution-flow  deepest chained edge (ties: latest), else latest solid
                    edge, else latest dotted edge
    source-graph    earliest solid edge (the registration site), else the
                    synthesized initial-snapshot edge, else (before
                    bootstrap) the earliest dotted edge
    custom(fn)      fn(MergeRequest); runs with the active context read-only
"""

from __future__ import annotations

__all__ = ["MergeResolver", "select_execution_flow", "select_source_graph"]

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from weft.contracts.enums import EdgeKind, MergeKind, MergeStrategyKind
from weft.contracts.errors import MissingInitialSnapshotError
from weft.contracts.records import MergeEdge, MergeRequest
from weft.core.registry import MISSING, ContextVariable, VariableRegistry
from weft.core.snapshot import Snapshot
from weft.engine.stack import ActiveContextStack
from weft.engine.tokens import BranchRecorder, OperationToken

if TYPE_CHECKING:
    from weft.plugins.manager import ObserverManager

slog = structlog.get_logger(__name__)

# Sequence of the synthesized initial-snapshot edge: older than any recorded edge
INITIAL_EDGE_SEQUENCE = -1


def select_execution_flow(edges: Sequence[MergeEdge]) -> MergeEdge:
    """Pick the most causally-immediate predecessor.

    Chained edges (output of a prior resolve in the same chain) win, deepest
    first; otherwise the latest solid edge; otherwise, for pure queue
    dispatch, the latest dotted edge.
    """
    chained = [edge for edge in edges if edge.is_chained]
    if chained:
        return max(chained, key=lambda edge: (edge.chain_depth, edge.sequence))
    solid = [edge for edge in edges if edge.is_solid]
    if solid:
        return max(solid, key=lambda edge: edge.sequence)
    return max(edges, key=lambda edge: edge.sequence)


def select_source_graph(edges: Sequence[MergeEdge]) -> MergeEdge:
    """Pick the registration-site edge, ignoring dotted edges and chaining."""
    solid = [edge for edge in edges if edge.is_solid]
    if solid:
        return min(solid, key=lambda edge: edge.sequence)
    # The initial-snapshot edge when bootstrapped, else the earliest dotted edge
    return min(edges, key=lambda edge: edge.sequence)


class MergeResolver:
    """Applies per-variable merge strategies to a token's edges.

    Example:
        resolver = MergeResolver(registry, recorder, initial_snapshot=engine_initial, stack=engine_stack)

        snapshot = resolver.resolve(token, MergeKind.TIMER_FIRE)
        with stack.activate(snapshot):
            callback()
    """

    def __init__(
        self,
        registry: VariableRegistry,
        recorder: BranchRecorder,
        *,
        initial_snapshot: Callable[[], Snapshot | None],
        stack: Callable[[], ActiveContextStack],
        observers: ObserverManager | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            registry: Declared variables to resolve
            recorder: Recorder that owns the state-history log and settles tokens
            initial_snapshot: Returns the realm's initial snapshot (None before bootstrap)
            stack: Returns the calling isolate's stack (for the purity guard)
            observers: Optional pluggy observer manager
        """
        self._registry = registry
        self._recorder = recorder
        self._initial_snapshot = initial_snapshot
        self._stack = stack
        self._observers = observers

    def eligible_edges(self, token: OperationToken, merge_kind: MergeKind) -> tuple[MergeEdge, ...]:
        """Edges that take part in a merge of the given kind, in recording order.

        Prepends a dotted edge for the initial snapshot when the token has no
        eligible solid edge (queue-driven dispatch) and bootstrap has run.

        Raises:
            MissingInitialSnapshotError: If no edge is eligible and bootstrap
                never ran
        """
        edges = [edge for edge in token.edges if edge.eligible_for(merge_kind)]
        if not any(edge.is_solid for edge in edges):
            initial = self._initial_snapshot()
            if initial is not None:
                edges.insert(0, MergeEdge(snapshot=initial, kind=EdgeKind.DOTTED, sequence=INITIAL_EDGE_SEQUENCE))
            elif not edges:
                raise MissingInitialSnapshotError(token.token_id)
        return tuple(edges)

    def resolve(self, token: OperationToken, merge_kind: MergeKind, *, final: bool = True) -> Snapshot:
        """Compute the merged snapshot for a callback about to run.

        Args:
            token: Token whose recorded edges are merged
            merge_kind: Kind of merge point (selects eligible edges)
            final: Settle the token; edges recorded afterwards are late edges.
                Repeating operations (intervals, generator resumption)
                pass False.

        Returns:
            New snapshot whose lineage is the token's ancestry

        Raises:
            MissingInitialSnapshotError: Bootstrap skipped and no eligible edge
            Exception: Whatever a custom strategy raises, unchanged. Nothing
                is settled or recorded in that case.
        """
        merge_kind = MergeKind(merge_kind)
        edges = self.eligible_edges(token, merge_kind)

        # Built-in strategies are variable-independent: select once per merge
        execution_edge = select_execution_flow(edges)
        source_edge = select_source_graph(edges)

        entries: dict[ContextVariable, Any] = {}
        with self._stack().read_only():
            for variable in self._registry.variables():
                kind = variable.strategy.kind
                if kind == MergeStrategyKind.CUSTOM:
                    value = self._run_custom(variable, token, merge_kind, edges)
                    if value is not MISSING:
                        entries[variable] = value
                    continue
                winner = execution_edge if kind == MergeStrategyKind.EXECUTION_FLOW else source_edge
                if variable in winner.snapshot:
                    entries[variable] = winner.snapshot[variable]

        snapshot = Snapshot(entries, lineage=token.ancestry())
        self._recorder.record_merge(token, merge_kind, final=final)
        slog.debug(
            "merge_resolved",
            token_id=token.token_id,
            label=token.label,
            merge_kind=merge_kind.value,
            edge_count=len(edges),
            final=final,
            cancelled=token.cancelled,
        )
        if self._observers is not None:
            self._observers.merge_resolved(token, merge_kind, snapshot)
        return snapshot

    def _run_custom(
        self,
        variable: ContextVariable,
        token: OperationToken,
        merge_kind: MergeKind,
        edges: tuple[MergeEdge, ...],
    ) -> Any:
        function = variable.strategy.function
        if function is None:
            raise RuntimeError(f"Custom strategy for '{variable.key}' has no function")
        request = MergeRequest(
            variable=variable,
            merge_kind=merge_kind,
            edges=edges,
            cancelled=token.cancelled,
            token_id=token.token_id,
        )
        try:
            return function(request)
        except Exception as exc:
            slog.warning(
                "custom_strategy_failed",
                token_id=token.token_id,
                variable=variable.key,
                merge_kind=merge_kind.value,
                error=type(exc).__name__,
            )
            raise
