"""Operation tokens and the BranchRecorder.

A scheduler adapter calls the recorder at every branch-worthy interaction
point (registering a callback, settling a deferred, emitting an event).
Each call appends a labeled MergeEdge carrying the then-current snapshot to
an operation token; the MergeResolver later merges those edges.
"""

from __future__ import annotations

__all__ = ["BranchRecorder", "OperationToken"]

import itertools
import threading
import uuid
from collections import deque
from typing import TYPE_CHECKING

import structlog

from weft.contracts.enums import EdgeKind, HistoryEntryKind, MergeKind
from weft.contracts.errors import TokenChainError
from weft.contracts.records import HistoryEntry, MergeEdge
from weft.contracts.types import TokenID
from weft.core.snapshot import Snapshot

if TYPE_CHECKING:
    from collections.abc import Callable

    from weft.plugins.manager import ObserverManager

slog = structlog.get_logger(__name__)

# Process-wide edge recording order. next() on itertools.count is atomic
# under the GIL, so edges are totally ordered across tokens and threads.
_EDGE_SEQUENCE = itertools.count()


class OperationToken:
    """Opaque handle for one branching operation.

    Owns an append-only, ordered list of MergeEdges. Tokens may be chained
    under a parent token (e.g. a deferred adopting another deferred); chain
    links are set at most once and never form a cycle. Snapshots refer to
    tokens by id only.

    Attributes:
        token_id: Unique id (uuid4 hex)
        label: Optional human-readable label for diagnostics
        cancelled: Set by BranchRecorder.cancel(); does not affect resolution
        settled: Set by the final merge; later edges are late edges
    """

    __slots__ = ("_edges", "_late_edges", "_lock", "_parent", "cancelled", "label", "settled", "token_id")

    def __init__(self, *, parent: OperationToken | None = None, label: str | None = None) -> None:
        self.token_id = TokenID(uuid.uuid4().hex)
        self.label = label
        self.cancelled = False
        self.settled = False
        self._parent = parent
        self._edges: list[MergeEdge] = []
        self._late_edges: list[MergeEdge] = []
        self._lock = threading.Lock()

    @property
    def parent(self) -> OperationToken | None:
        return self._parent

    @property
    def edges(self) -> tuple[MergeEdge, ...]:
        with self._lock:
            return tuple(self._edges)

    @property
    def late_edges(self) -> tuple[MergeEdge, ...]:
        """Edges recorded after the final merge (diagnostics only)."""
        with self._lock:
            return tuple(self._late_edges)

    @property
    def has_solid_edge(self) -> bool:
        return any(edge.is_solid for edge in self.edges)

    def ancestry(self) -> tuple[TokenID, ...]:
        """This token's id followed by the ids of its chain ancestors."""
        ids: list[TokenID] = []
        node: OperationToken | None = self
        while node is not None:
            ids.append(node.token_id)
            node = node._parent
        return tuple(ids)

    def __repr__(self) -> str:
        label = f" {self.label!r}" if self.label else ""
        state = "settled" if self.settled else "open"
        return f"<OperationToken {self.token_id[:8]}{label} edges={len(self._edges)} {state}>"


def _chain_depth(token: OperationToken, snapshot: Snapshot) -> int:
    """How many resolution hops separate snapshot from token's chain.

    0 when the snapshot was not produced by resolving a token in the same
    chain; otherwise 1 + the lineage position of the first shared id.
    """
    if not snapshot.lineage:
        return 0
    ancestry = set(token.ancestry())
    for index, token_id in enumerate(snapshot.lineage):
        if token_id in ancestry:
            return index + 1
    return 0


class BranchRecorder:
    """Captures snapshots into operation tokens at scheduler interaction points.

    Example:
        recorder = BranchRecorder(stack.current)

        # Timer registration: new token, current snapshot as its solid edge
        token = recorder.record_branch()

        # Second interaction with the same deferred: candidate edge
        recorder.record_branch(token, EdgeKind.DOTTED)
    """

    def __init__(
        self,
        current_snapshot: Callable[[], Snapshot],
        *,
        history_limit: int = 1000,
        warn_on_late_edges: bool = True,
        observers: ObserverManager | None = None,
    ) -> None:
        """Initialize recorder.

        Args:
            current_snapshot: Returns the calling isolate's current snapshot
            history_limit: Maximum state-history entries retained (FIFO)
            warn_on_late_edges: Log late edges at WARNING rather than DEBUG
            observers: Optional pluggy observer manager notified of edges
        """
        if history_limit <= 0:
            raise ValueError(f"history_limit must be > 0, got {history_limit}")
        self._current_snapshot = current_snapshot
        self._history: deque[HistoryEntry] = deque(maxlen=history_limit)
        self._warn_on_late_edges = warn_on_late_edges
        self._observers = observers

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        """Bounded state-history log, oldest first."""
        return tuple(self._history)

    def open_token(self, *, parent: OperationToken | None = None, label: str | None = None) -> OperationToken:
        """Create a token with no edges.

        Used for queue-driven dispatch where no registration site exists;
        the resolver falls back to the initial snapshot for such tokens.
        """
        return OperationToken(parent=parent, label=label)

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
        """Record a branch edge, creating the token if needed.

        Args:
            token: Existing token, or None to create a new one
            edge_kind: Kind of edge to append. Ignored for new tokens, whose
                first edge is always solid.
            snapshot: Auxiliary snapshot to record instead of the current one
                (e.g. a chained operation's own snapshot)
            merge_kind: Restrict the edge to one merge point kind
            parent: Chain parent for a new token
            label: Diagnostic label for a new token

        Returns:
            The token the edge was recorded on

        Note:
            Recording on a settled token never fails: the edge is kept in the
            token's late-edge list and the history log, and is ignored by
            every later resolution.
        """
        if token is None:
            token = OperationToken(parent=parent, label=label)
            edge_kind = EdgeKind.SOLID
        elif parent is not None:
            self.link(token, parent)

        captured = snapshot if snapshot is not None else self._current_snapshot()
        edge = MergeEdge(
            snapshot=captured,
            kind=EdgeKind(edge_kind),
            sequence=next(_EDGE_SEQUENCE),
            merge_kind=MergeKind(merge_kind) if merge_kind is not None else None,
            chain_depth=_chain_depth(token, captured),
        )

        with token._lock:
            late = token.settled
            if late:
                token._late_edges.append(edge)
            else:
                token._edges.append(edge)

        if late:
            self._history.append(HistoryEntry(HistoryEntryKind.LATE_EDGE, token.token_id, edge=edge))
            log = slog.warning if self._warn_on_late_edges else slog.debug
            log(
                "late_edge_recorded",
                token_id=token.token_id,
                label=token.label,
                edge_kind=edge.kind.value,
                sequence=edge.sequence,
            )
            if self._observers is not None:
                self._observers.late_edge(token, edge)
            return token

        self._history.append(HistoryEntry(HistoryEntryKind.EDGE, token.token_id, edge=edge))
        slog.debug(
            "branch_recorded",
            token_id=token.token_id,
            label=token.label,
            edge_kind=edge.kind.value,
            sequence=edge.sequence,
            chain_depth=edge.chain_depth,
        )
        if self._observers is not None:
            self._observers.branch_recorded(token, edge)
        return token

    def link(self, child: OperationToken, parent: OperationToken) -> None:
        """Chain child under parent after creation.

        Raises:
            TokenChainError: If child already has a different parent, or the
                link would create a cycle
        """
        if child._parent is parent:
            return
        if child._parent is not None:
            raise TokenChainError(f"Token {child.token_id} is already chained under {child._parent.token_id}")
        if child.token_id in parent.ancestry():
            raise TokenChainError(f"Chaining {child.token_id} under {parent.token_id} would create a cycle")
        child._parent = parent

    def cancel(self, token: OperationToken) -> None:
        """Mark a token cancelled. Resolution still produces a snapshot."""
        token.cancelled = True
        self._history.append(HistoryEntry(HistoryEntryKind.CANCEL, token.token_id))
        slog.debug("token_cancelled", token_id=token.token_id, label=token.label)
        if self._observers is not None:
            self._observers.token_cancelled(token)

    def record_merge(self, token: OperationToken, merge_kind: MergeKind, *, final: bool) -> None:
        """Log a completed merge; settle the token if this was its final merge."""
        if final:
            with token._lock:
                token.settled = True
        self._history.append(HistoryEntry(HistoryEntryKind.MERGE, token.token_id, merge_kind=merge_kind, final=final))

    def settle(self, token: OperationToken) -> None:
        """Settle a token without merging (e.g. an operation that finished without a final callback)."""
        with token._lock:
            token.settled = True
