"""Branch/merge engine: active-context stacks, operation tokens, merge resolution.

This module provides the runtime pieces scheduler adapters call:
- ContextEngine: Facade owning registry, initial snapshot and per-thread stacks
- ActiveContextStack: Scoped snapshot activation with guaranteed restoration
- BranchRecorder / OperationToken: Edges captured at interaction points
- MergeResolver: Per-variable strategy dispatch at merge points

Example:
    from weft.engine import ContextEngine

    engine = ContextEngine()
    engine.bootstrap()
    token = engine.record_branch()
    engine.invoke(token, MergeKind.TIMER_FIRE, callback)
"""

from weft.engine.merge import MergeResolver, select_execution_flow, select_source_graph
from weft.engine.runtime import ContextEngine
from weft.engine.stack import ActiveContextStack
from weft.engine.tokens import BranchRecorder, OperationToken

__all__ = [
    "ActiveContextStack",
    "BranchRecorder",
    "ContextEngine",
    "MergeResolver",
    "OperationToken",
    "select_execution_flow",
    "select_source_graph",
]
