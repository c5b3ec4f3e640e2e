"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import NewType

TokenID = NewType("TokenID", str)
"""Opaque operation token identifier (uuid4 hex)."""

VariableKey = NewType("VariableKey", str)
"""Unique key of a declared context variable (e.g., 'trace_id')."""

Lineage = tuple[TokenID, ...]
"""Token ids whose resolve() produced a snapshot, resolved token first.

The remaining entries are the resolved token's chain ancestors. Stores ids
only so snapshots never hold references to tokens.
"""
