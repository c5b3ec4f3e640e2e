# tests/engine/test_branch_recorder.py
"""Tests for OperationToken and BranchRecorder."""

import pytest

from weft.contracts.enums import EdgeKind, HistoryEntryKind, MergeKind
from weft.contracts.errors import TokenChainError
from weft.core.registry import VariableRegistry
from weft.core.snapshot import Snapshot
from weft.engine.stack import ActiveContextStack
from weft.engine.tokens import BranchRecorder, OperationToken


@pytest.fixture
def stack() -> ActiveContextStack:
    return ActiveContextStack()


@pytest.fixture
def recorder(stack: ActiveContextStack) -> BranchRecorder:
    return BranchRecorder(stack.current)


class TestOperationToken:
    """Token identity and chaining."""

    def test_tokens_have_unique_ids(self) -> None:
        assert OperationToken().token_id != OperationToken().token_id

    def test_new_token_is_open_and_empty(self) -> None:
        token = OperationToken(label="timer:tick")

        assert token.edges == ()
        assert token.late_edges == ()
        assert not token.settled
        assert not token.cancelled
        assert not token.has_solid_edge
        assert "timer:tick" in repr(token)

    def test_ancestry_walks_parents(self) -> None:
        root = OperationToken()
        middle = OperationToken(parent=root)
        leaf = OperationToken(parent=middle)

        assert leaf.ancestry() == (leaf.token_id, middle.token_id, root.token_id)
        assert root.ancestry() == (root.token_id,)


class TestRecordBranch:
    """Edge capture at interaction points."""

    def test_new_token_gets_solid_edge_with_current_snapshot(self, stack: ActiveContextStack, recorder: BranchRecorder) -> None:
        token = recorder.record_branch(label="registration")

        assert token.label == "registration"
        assert len(token.edges) == 1
        assert token.edges[0].is_solid
        assert token.edges[0].snapshot is stack.current()

    def test_new_token_edge_is_always_solid(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch(None, EdgeKind.DOTTED)

        assert token.edges[0].kind == EdgeKind.SOLID

    def test_existing_token_appends_in_order(self, stack: ActiveContextStack, recorder: BranchRecorder) -> None:
        variable = VariableRegistry().declare("v", 0)
        token = recorder.record_branch()
        stack.set_variable(variable, 1)

        recorder.record_branch(token, EdgeKind.DOTTED)

        first, second = token.edges
        assert second.kind == EdgeKind.DOTTED
        assert second.sequence > first.sequence
        assert first.snapshot[variable] == 0
        assert second.snapshot[variable] == 1

    def test_explicit_snapshot_recorded(self, recorder: BranchRecorder) -> None:
        auxiliary = Snapshot()

        token = recorder.record_branch(snapshot=auxiliary)

        assert token.edges[0].snapshot is auxiliary

    def test_merge_kind_restricts_edge(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch(merge_kind="timer-fire")  # type: ignore[arg-type]

        edge = token.edges[0]
        assert edge.merge_kind == MergeKind.TIMER_FIRE
        assert edge.eligible_for(MergeKind.TIMER_FIRE)
        assert not edge.eligible_for(MergeKind.LISTENER_INVOKE)

    def test_unknown_merge_kind_rejected(self, recorder: BranchRecorder) -> None:
        with pytest.raises(ValueError):
            recorder.record_branch(merge_kind="bogus")  # type: ignore[arg-type]

    def test_parent_chains_new_token(self, recorder: BranchRecorder) -> None:
        parent = recorder.record_branch()

        child = recorder.record_branch(parent=parent)

        assert child.parent is parent

    def test_edge_from_same_chain_is_chained(self, stack: ActiveContextStack, recorder: BranchRecorder) -> None:
        parent = OperationToken()
        child = OperationToken(parent=parent)

        with stack.activate(Snapshot(lineage=parent.ancestry())):
            recorder.record_branch(child, EdgeKind.DOTTED)
        with stack.activate(Snapshot(lineage=(OperationToken().token_id,))):
            recorder.record_branch(child, EdgeKind.DOTTED)

        chained, unrelated = child.edges
        assert chained.chain_depth == 1
        assert chained.is_chained
        assert unrelated.chain_depth == 0

    def test_sequences_are_global_across_tokens(self, recorder: BranchRecorder) -> None:
        a = recorder.record_branch()
        b = recorder.record_branch()

        assert b.edges[0].sequence > a.edges[0].sequence


class TestLateEdges:
    """Edges after the final merge are kept for diagnostics only."""

    def test_settled_token_routes_to_late_edges(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch()
        recorder.record_merge(token, MergeKind.TIMER_FIRE, final=True)

        recorder.record_branch(token, EdgeKind.DOTTED)

        assert len(token.edges) == 1
        assert len(token.late_edges) == 1
        assert recorder.history[-1].kind == HistoryEntryKind.LATE_EDGE

    def test_non_final_merge_keeps_token_open(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch()
        recorder.record_merge(token, MergeKind.LISTENER_INVOKE, final=False)

        recorder.record_branch(token)

        assert len(token.edges) == 2
        assert token.late_edges == ()

    def test_settle_without_merge(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch()

        recorder.settle(token)

        assert token.settled


class TestLinkAndCancel:
    def test_link_sets_parent(self, recorder: BranchRecorder) -> None:
        parent, child = OperationToken(), OperationToken()

        recorder.link(child, parent)
        recorder.link(child, parent)  # idempotent

        assert child.parent is parent

    def test_relink_rejected(self, recorder: BranchRecorder) -> None:
        child = OperationToken(parent=OperationToken())

        with pytest.raises(TokenChainError, match="already chained"):
            recorder.link(child, OperationToken())

    def test_cycle_rejected(self, recorder: BranchRecorder) -> None:
        root = OperationToken()
        leaf = OperationToken(parent=root)

        with pytest.raises(TokenChainError, match="cycle"):
            recorder.link(root, leaf)

    def test_cancel_sets_flag_and_history(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch()

        recorder.cancel(token)

        assert token.cancelled
        assert recorder.history[-1].kind == HistoryEntryKind.CANCEL


class TestHistory:
    def test_history_bounded_fifo(self, stack: ActiveContextStack) -> None:
        recorder = BranchRecorder(stack.current, history_limit=3)
        tokens = [recorder.record_branch() for _ in range(5)]

        history = recorder.history
        assert len(history) == 3
        assert [entry.token_id for entry in history] == [t.token_id for t in tokens[2:]]

    def test_history_limit_validated(self, stack: ActiveContextStack) -> None:
        with pytest.raises(ValueError, match="history_limit"):
            BranchRecorder(stack.current, history_limit=0)

    def test_merge_entries_record_finality(self, recorder: BranchRecorder) -> None:
        token = recorder.record_branch()

        recorder.record_merge(token, MergeKind.TIMER_FIRE, final=False)

        entry = recorder.history[-1]
        assert entry.kind == HistoryEntryKind.MERGE
        assert entry.merge_kind == MergeKind.TIMER_FIRE
        assert entry.final is False
