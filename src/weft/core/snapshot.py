"""Snapshot: immutable record of every context variable's value at one instant.

Snapshots are created only by bootstrap, by derive() (a scoped mutation),
or by the MergeResolver. They are shared by reference between stack frames,
tokens and threads; all "updates" produce a new snapshot.
"""

from __future__ import annotations

__all__ = ["Snapshot"]

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from weft.contracts.errors import UnknownVariableError
from weft.contracts.types import Lineage
from weft.core.registry import ContextVariable


class Snapshot(Mapping[ContextVariable, Any]):
    """Immutable mapping from ContextVariable to value.

    Variables without an entry read as their declared default, so a
    snapshot taken before a variable was declared still answers for it.
    Iteration and len() cover explicit entries only.

    Derivation copies the entry table shallowly: unchanged values are
    shared by reference with the parent snapshot.

    Example:
        base = Snapshot({trace_id: "abc"})
        child = base.derive(trace_id, "def")

        assert base[trace_id] == "abc"  # never mutated
        assert child[trace_id] == "def"
    """

    __slots__ = ("_entries", "_lineage")

    _entries: Mapping[ContextVariable, Any]
    _lineage: Lineage

    def __init__(
        self,
        entries: Mapping[ContextVariable, Any] | Iterable[tuple[ContextVariable, Any]] = (),
        *,
        lineage: Lineage = (),
    ) -> None:
        object.__setattr__(self, "_entries", MappingProxyType(dict(entries)))
        object.__setattr__(self, "_lineage", tuple(lineage))

    @classmethod
    def _from_owned(cls, entries: dict[ContextVariable, Any], lineage: Lineage) -> Snapshot:
        """Wrap a dict the caller gives up ownership of, without copying it."""
        snapshot = object.__new__(cls)
        object.__setattr__(snapshot, "_entries", MappingProxyType(entries))
        object.__setattr__(snapshot, "_lineage", lineage)
        return snapshot

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Snapshot is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Snapshot is immutable")

    @property
    def lineage(self) -> Lineage:
        """Ids of the token whose resolve() produced this snapshot and its chain ancestors."""
        return self._lineage

    def __getitem__(self, variable: ContextVariable) -> Any:
        try:
            return self._entries[variable]
        except KeyError:
            if variable.has_default:
                return variable.default
            raise UnknownVariableError(variable.key) from None

    def get(self, variable: ContextVariable, default: Any = None) -> Any:  # type: ignore[override]
        if variable in self._entries:
            return self._entries[variable]
        if variable.has_default:
            return variable.default
        return default

    def __contains__(self, variable: object) -> bool:
        return variable in self._entries

    def __iter__(self) -> Iterator[ContextVariable]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # Identity semantics; compare contents with same_values()
    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def derive(self, variable: ContextVariable, value: Any) -> Snapshot:
        """Return a copy with one value replaced, keeping this snapshot's lineage."""
        entries = dict(self._entries)
        entries[variable] = value
        return Snapshot._from_owned(entries, self._lineage)

    def derive_many(self, values: Mapping[ContextVariable, Any]) -> Snapshot:
        entries = dict(self._entries)
        entries.update(values)
        return Snapshot._from_owned(entries, self._lineage)

    def same_values(self, other: Snapshot, variables: Iterable[ContextVariable]) -> bool:
        """Compare the visible value of each variable, defaults included."""
        sentinel = object()
        return all(self.get(v, sentinel) == other.get(v, sentinel) for v in variables)

    def as_dict(self) -> dict[str, Any]:
        """Explicit entries keyed by variable key (for logging and diagnostics)."""
        return {variable.key: value for variable, value in self._entries.items()}

    def __repr__(self) -> str:
        return f"Snapshot({self.as_dict()!r}, lineage={list(self._lineage)!r})"
