# tests/adapters/test_adapter_base.py
"""Tests for the scheduler adapter contract."""

from typing import ClassVar

from weft.adapters import AdapterBase, EventEmitter, LoopAdapter, MicrotaskQueue, SchedulerAdapter, Suspension, TimerQueue
from weft.contracts.enums import EdgeKind, MergeKind
from weft.engine.runtime import ContextEngine


class ManualAdapter(AdapterBase):
    """Smallest possible adapter: one branch, one dispatch."""

    name: ClassVar[str] = "manual"


class TestAdapterBase:
    def test_every_adapter_satisfies_protocol(self, engine: ContextEngine) -> None:
        for adapter_type in (TimerQueue, MicrotaskQueue, EventEmitter, LoopAdapter, ManualAdapter):
            adapter = adapter_type(engine)
            assert isinstance(adapter, SchedulerAdapter)
            assert adapter.engine is engine
        assert issubclass(Suspension, AdapterBase)

    def test_branch_labels_new_tokens_only(self, engine: ContextEngine) -> None:
        adapter = ManualAdapter(engine)

        token = adapter._branch(detail="job")
        same = adapter._branch(token, EdgeKind.DOTTED, detail="ignored")

        assert same is token
        assert token.label == "manual:job"
        assert adapter._branch().label == "manual"

    def test_invoke_resolves_and_activates(self, engine: ContextEngine) -> None:
        flow = engine.declare("flow", 0)
        engine.bootstrap()
        adapter = ManualAdapter(engine)
        engine.set(flow, 3)
        token = adapter._branch()
        engine.set(flow, 4)

        seen = adapter._invoke(token, MergeKind.QUEUE_DISPATCH, engine.get, flow)

        assert seen == 3
        assert token.settled


class TestPublicApi:
    def test_top_level_exports(self) -> None:
        import weft

        for name in weft.__all__:
            assert hasattr(weft, name), name
        assert weft.__version__ == "0.1.0"
