"""
Weft: context propagation across branching and merging execution graphs.

Keeps dynamically-scoped variables well defined when control flow is split
by asynchronous scheduling (timers, deferred resolution, listeners,
generator resumption) and joined again when a callback runs.
"""

from weft.contracts.enums import EdgeKind, MergeKind, MergeStrategyKind
from weft.contracts.errors import (
    AlreadyBootstrappedError,
    DuplicateVariableError,
    ImpureStrategyError,
    MissingInitialSnapshotError,
    TokenChainError,
    UnknownVariableError,
    WeftError,
)
from weft.contracts.records import MergeEdge, MergeRequest
from weft.core.registry import MISSING, ContextVariable, MergeStrategy, VariableRegistry, declare, default_registry, get_variable
from weft.core.snapshot import Snapshot
from weft.engine.runtime import ContextEngine

__version__ = "0.1.0"

__all__ = [
    "MISSING",
    "AlreadyBootstrappedError",
    "ContextEngine",
    "ContextVariable",
    "DuplicateVariableError",
    "EdgeKind",
    "ImpureStrategyError",
    "MergeEdge",
    "MergeKind",
    "MergeRequest",
    "MergeStrategy",
    "MergeStrategyKind",
    "MissingInitialSnapshotError",
    "Snapshot",
    "TokenChainError",
    "UnknownVariableError",
    "VariableRegistry",
    "WeftError",
    "declare",
    "default_registry",
    "get_variable",
]
