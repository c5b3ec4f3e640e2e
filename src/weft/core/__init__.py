"""Core data model: snapshots, the variable registry, settings and logging."""

from weft.core.config import LoggingSettings, WeftSettings, load_settings
from weft.core.registry import MISSING, ContextVariable, MergeStrategy, VariableRegistry
from weft.core.snapshot import Snapshot

__all__ = [
    "MISSING",
    "ContextVariable",
    "LoggingSettings",
    "MergeStrategy",
    "Snapshot",
    "VariableRegistry",
    "WeftSettings",
    "load_settings",
]
