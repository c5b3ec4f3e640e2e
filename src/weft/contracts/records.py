"""Frozen records exchanged between recorder, resolver and observers.

These types answer: "What was captured, and what is being merged?"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from weft.contracts.enums import EdgeKind, HistoryEntryKind, MergeKind
from weft.contracts.types import TokenID

if TYPE_CHECKING:
    from weft.core.registry import ContextVariable
    from weft.core.snapshot import Snapshot


@dataclass(frozen=True, slots=True)
class MergeEdge:
    """One candidate predecessor of a merge point.

    Attributes:
        snapshot: Snapshot captured at the interaction point
        kind: SOLID (where the interaction was issued) or DOTTED (candidate)
        sequence: Process-wide recording order; -1 for the synthesized
            initial-snapshot edge
        merge_kind: Restricts the edge to one merge point kind (None = any)
        chain_depth: 0 for a plain edge; >= 1 when the snapshot is the output
            of a prior resolve() on a token in the same chain
    """

    snapshot: Snapshot
    kind: EdgeKind
    sequence: int
    merge_kind: MergeKind | None = None
    chain_depth: int = 0

    @property
    def is_solid(self) -> bool:
        return self.kind == EdgeKind.SOLID

    @property
    def is_chained(self) -> bool:
        return self.chain_depth > 0

    def eligible_for(self, merge_kind: MergeKind) -> bool:
        """Whether this edge participates in a merge of the given kind."""
        return self.merge_kind is None or self.merge_kind == merge_kind


@dataclass(frozen=True, slots=True)
class MergeRequest:
    """Input handed to a custom merge strategy for one variable.

    Custom strategies must be pure: they read this request and return the
    winning value. Mutating the active context raises ImpureStrategyError.

    Attributes:
        variable: The variable being resolved
        merge_kind: Kind of merge point being resolved
        edges: Eligible edges in recording order (synthesized initial edge first)
        cancelled: Whether the adapter cancelled the token
        token_id: Id of the token being resolved
    """

    variable: ContextVariable
    merge_kind: MergeKind
    edges: tuple[MergeEdge, ...]
    cancelled: bool
    token_id: TokenID

    def value_of(self, edge: MergeEdge) -> Any:
        """Value of the requested variable in an edge's snapshot."""
        return edge.snapshot[self.variable]

    def values(self) -> list[Any]:
        """Values of the requested variable across all edges, in order."""
        return [edge.snapshot[self.variable] for edge in self.edges]

    @property
    def solid_edges(self) -> tuple[MergeEdge, ...]:
        return tuple(edge for edge in self.edges if edge.is_solid)

    @property
    def dotted_edges(self) -> tuple[MergeEdge, ...]:
        return tuple(edge for edge in self.edges if not edge.is_solid)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One entry in the branch recorder's state-history log.

    Attributes:
        kind: What happened (edge, late edge, merge, cancel)
        token_id: Token the entry concerns
        edge: The recorded edge (EDGE and LATE_EDGE entries)
        merge_kind: Merge point kind (MERGE entries)
        final: Whether the merge settled the token (MERGE entries)
    """

    kind: HistoryEntryKind
    token_id: TokenID
    edge: MergeEdge | None = None
    merge_kind: MergeKind | None = None
    final: bool = False
