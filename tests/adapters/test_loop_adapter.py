# tests/adapters/test_loop_adapter.py
"""Tests for the asyncio LoopAdapter."""

import asyncio

import pytest

from weft.adapters.asyncio_loop import LoopAdapter
from weft.adapters.base import SchedulerAdapter
from weft.core.registry import ContextVariable
from weft.engine.runtime import ContextEngine


@pytest.fixture
def request_id(engine: ContextEngine) -> ContextVariable:
    variable = engine.declare("request_id", None)
    engine.bootstrap()
    return variable


class TestLoopAdapter:
    def test_satisfies_adapter_protocol(self, engine: ContextEngine) -> None:
        adapter = LoopAdapter(engine)

        assert isinstance(adapter, SchedulerAdapter)
        assert adapter.engine is engine
        assert adapter.name == "asyncio"

    def test_loop_required_outside_running_loop(self, engine: ContextEngine) -> None:
        with pytest.raises(RuntimeError):
            _ = LoopAdapter(engine).loop

    def test_call_soon_sees_scheduling_context(self, engine: ContextEngine, request_id: ContextVariable) -> None:
        seen: list[str] = []

        async def main() -> None:
            adapter = LoopAdapter(engine)
            engine.set(request_id, "scheduled")
            adapter.call_soon(lambda: seen.append(engine.get(request_id)))
            engine.set(request_id, "after")
            await asyncio.sleep(0)

        asyncio.run(main())

        assert seen == ["scheduled"]

    def test_call_later_passes_arguments(self, engine: ContextEngine, request_id: ContextVariable) -> None:
        seen: list[tuple[str, str]] = []

        async def main() -> None:
            adapter = LoopAdapter(engine, asyncio.get_running_loop())
            engine.set(request_id, "delayed")
            adapter.call_later(0.01, lambda suffix: seen.append((engine.get(request_id), suffix)), "!")
            engine.set(request_id, "after")
            await asyncio.sleep(0.05)

        asyncio.run(main())

        assert seen == [("delayed", "!")]

    def test_call_soon_threadsafe_carries_worker_context(self, engine: ContextEngine, request_id: ContextVariable) -> None:
        seen: list[str] = []

        async def main() -> None:
            loop = asyncio.get_running_loop()
            adapter = LoopAdapter(engine, loop)
            done = asyncio.Event()

            def record() -> None:
                seen.append(engine.get(request_id))
                done.set()

            def worker() -> None:
                engine.set(request_id, "worker")
                adapter.call_soon_threadsafe(record)

            engine.set(request_id, "loop")
            await loop.run_in_executor(None, worker)
            await asyncio.wait_for(done.wait(), timeout=1.0)

        asyncio.run(main())

        assert seen == ["worker"]
        assert engine.get(request_id) == "loop"
