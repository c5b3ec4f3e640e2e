# tests/core/test_snapshot.py
"""Tests for the immutable Snapshot mapping."""

import pytest

from weft.contracts.errors import UnknownVariableError
from weft.contracts.types import TokenID
from weft.core.registry import VariableRegistry
from weft.core.snapshot import Snapshot


@pytest.fixture
def variables() -> VariableRegistry:
    registry = VariableRegistry()
    registry.declare("trace_id", None)
    registry.declare("user")
    return registry


class TestSnapshotReads:
    """Reads fall back to declared defaults."""

    def test_explicit_entry(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None
        snapshot = Snapshot({trace_id: "abc"})

        assert snapshot[trace_id] == "abc"
        assert trace_id in snapshot
        assert len(snapshot) == 1

    def test_missing_entry_reads_default(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None
        snapshot = Snapshot()

        assert snapshot[trace_id] is None
        assert trace_id not in snapshot
        assert len(snapshot) == 0

    def test_missing_entry_without_default_raises(self, variables: VariableRegistry) -> None:
        user = variables.get("user")
        assert user is not None

        with pytest.raises(UnknownVariableError, match="user"):
            Snapshot()[user]

    def test_unknown_variable_error_is_lookup_error(self, variables: VariableRegistry) -> None:
        user = variables.get("user")
        assert user is not None

        with pytest.raises(LookupError):
            Snapshot()[user]

    def test_get_prefers_entry_then_default_then_fallback(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        user = variables.get("user")
        assert trace_id is not None and user is not None
        snapshot = Snapshot({user: "ada"})

        assert snapshot.get(user) == "ada"
        assert snapshot.get(trace_id, "fallback") is None
        assert Snapshot().get(user, "fallback") == "fallback"


class TestSnapshotImmutability:
    """Snapshots never change after construction."""

    def test_attribute_assignment_rejected(self) -> None:
        snapshot = Snapshot()

        with pytest.raises(AttributeError, match="immutable"):
            snapshot._entries = {}  # type: ignore[misc]
        with pytest.raises(AttributeError, match="immutable"):
            del snapshot._lineage

    def test_entries_not_writable(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None
        snapshot = Snapshot({trace_id: "abc"})

        with pytest.raises(TypeError):
            snapshot._entries[trace_id] = "def"  # type: ignore[index]

    def test_source_mapping_is_copied(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None
        source = {trace_id: "abc"}
        snapshot = Snapshot(source)

        source[trace_id] = "changed"

        assert snapshot[trace_id] == "abc"

    def test_derive_returns_new_snapshot(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        user = variables.get("user")
        assert trace_id is not None and user is not None
        base = Snapshot({trace_id: "abc"}, lineage=(TokenID("t1"),))

        child = base.derive(user, "ada")
        many = base.derive_many({trace_id: "def", user: "bob"})

        assert base.as_dict() == {"trace_id": "abc"}
        assert child.as_dict() == {"trace_id": "abc", "user": "ada"}
        assert many.as_dict() == {"trace_id": "def", "user": "bob"}
        assert child.lineage == many.lineage == ("t1",)

    def test_derive_shares_unchanged_values_and_owns_its_table(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        user = variables.get("user")
        assert trace_id is not None and user is not None
        roles = ["admin"]
        base = Snapshot({user: roles})

        child = base.derive(trace_id, "abc")
        grandchild = child.derive_many({trace_id: "def"})

        assert child[user] is roles
        assert grandchild[user] is roles
        assert child._entries is not base._entries
        assert trace_id not in base
        assert child[trace_id] == "abc"
        assert grandchild.lineage is child.lineage
        with pytest.raises(TypeError):
            child._entries[trace_id] = "changed"  # type: ignore[index]


class TestSnapshotComparison:
    """Snapshot helpers used by diagnostics."""

    def test_same_values_includes_defaults(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        user = variables.get("user")
        assert trace_id is not None and user is not None

        assert Snapshot({trace_id: None}).same_values(Snapshot(), [trace_id, user])
        assert not Snapshot({user: "ada"}).same_values(Snapshot(), [user])

    def test_equality_and_hash_are_identity(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None
        first = Snapshot({trace_id: "abc"})
        second = Snapshot({trace_id: "abc"})

        assert first == first
        assert first != second
        assert len({first, second}) == 2

    def test_repr_shows_keys_and_lineage(self, variables: VariableRegistry) -> None:
        trace_id = variables.get("trace_id")
        assert trace_id is not None

        text = repr(Snapshot({trace_id: "abc"}, lineage=(TokenID("t1"),)))

        assert "'trace_id': 'abc'" in text
        assert "t1" in text
