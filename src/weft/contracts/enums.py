"""All kinds and tags used across subsystem boundaries.

CRITICAL: Every context variable MUST carry a MergeStrategyKind at
declaration. There is no "unknown" strategy - the resolver dispatches on
this value directly and an undeclared policy is a programming error.
"""

from enum import StrEnum


class MergeStrategyKind(StrEnum):
    """How a variable picks its value when incoming edges merge.

    Values:
        EXECUTION_FLOW: Follow the dynamic causal chain (ChildOf-like)
        SOURCE_GRAPH: Follow the registration-time chain (FollowsFrom-like)
        CUSTOM: Delegate to a user-supplied pure function
    """

    EXECUTION_FLOW = "execution-flow"
    SOURCE_GRAPH = "source-graph"
    CUSTOM = "custom"


class EdgeKind(StrEnum):
    """Label on a recorded merge edge.

    Values:
        SOLID: Causal predecessor - where the interaction was issued
        DOTTED: Candidate predecessor that may or may not win
    """

    SOLID = "solid"
    DOTTED = "dotted"


class MergeKind(StrEnum):
    """Kind of merge point at which a scheduled callback is about to run.

    Used to select eligible edges, never to change built-in strategy
    semantics. Custom strategies receive it in their MergeRequest.
    """

    TIMER_FIRE = "timer-fire"
    RESOLUTION_SETTLE = "resolution-settle"
    RESOLUTION_THEN_INVOKE = "resolution-then-invoke"
    LISTENER_INVOKE = "listener-invoke"
    SUSPENSION_RESUME = "suspension-resume"
    LOOP_CALLBACK = "loop-callback"
    QUEUE_DISPATCH = "queue-dispatch"


class HistoryEntryKind(StrEnum):
    """Kind of entry in the branch recorder's state-history log."""

    EDGE = "edge"
    LATE_EDGE = "late_edge"
    MERGE = "merge"
    CANCEL = "cancel"
