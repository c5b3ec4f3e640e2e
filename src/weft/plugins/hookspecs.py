"""pluggy hook specifications for context engine observers.

Instrumentation libraries implement these hooks to watch branch and merge
activity (diagnostics, tracing bridges, test probes). Observers are
notified synchronously after the engine has updated its own state;
exceptions propagate to the caller.

Usage (implementing an observer):
    from weft.plugins.hookspecs import hookimpl

    class MergeCounter:
        def __init__(self):
            self.count = 0

        @hookimpl  # NOT @hookspec - that's for defining specs
        def weft_merge_resolved(self, token, merge_kind, snapshot):
            self.count += 1

    engine.observers.register(MergeCounter())

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks observer implementations of those hooks.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from weft.contracts.enums import MergeKind
    from weft.contracts.records import MergeEdge
    from weft.core.snapshot import Snapshot
    from weft.engine.tokens import OperationToken

# Project name for pluggy
PROJECT_NAME = "weft"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for observers to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class WeftObserverSpec:
    """Hook specifications for branch/merge observers."""

    @hookspec
    def weft_branch_recorded(self, token: "OperationToken", edge: "MergeEdge") -> None:
        """Called after an edge is appended to a token."""

    @hookspec
    def weft_late_edge(self, token: "OperationToken", edge: "MergeEdge") -> None:
        """Called when an edge arrives after the token's final merge.

        The edge is retained for diagnostics only and never resolved.
        """

    @hookspec
    def weft_merge_resolved(self, token: "OperationToken", merge_kind: "MergeKind", snapshot: "Snapshot") -> None:
        """Called after the resolver produced a merged snapshot, before activation."""

    @hookspec
    def weft_token_cancelled(self, token: "OperationToken") -> None:
        """Called when an adapter cancels a token."""
