"""Shared contracts for cross-boundary data types.

All enums, error classes and frozen records that cross subsystem
boundaries are defined here.

This package is a LEAF MODULE with no runtime dependencies on core/engine.
Snapshot and ContextVariable are referenced for type checking only.

Import patterns:
    # Contracts (lightweight)
    from weft.contracts import EdgeKind, MergeKind, MergeEdge

    # Settings classes
    from weft.core.config import WeftSettings
"""

from weft.contracts.enums import EdgeKind, HistoryEntryKind, MergeKind, MergeStrategyKind
from weft.contracts.errors import (
    AlreadyBootstrappedError,
    DuplicateVariableError,
    ImpureStrategyError,
    MissingInitialSnapshotError,
    TokenChainError,
    UnknownVariableError,
    WeftError,
)
from weft.contracts.records import HistoryEntry, MergeEdge, MergeRequest
from weft.contracts.types import Lineage, TokenID, VariableKey

__all__ = [
    "AlreadyBootstrappedError",
    "DuplicateVariableError",
    "EdgeKind",
    "HistoryEntry",
    "HistoryEntryKind",
    "ImpureStrategyError",
    "Lineage",
    "MergeEdge",
    "MergeKind",
    "MergeRequest",
    "MergeStrategyKind",
    "MissingInitialSnapshotError",
    "TokenChainError",
    "TokenID",
    "UnknownVariableError",
    "VariableKey",
    "WeftError",
]
