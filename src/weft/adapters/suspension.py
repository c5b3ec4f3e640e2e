"""Suspension: generator resumption with context propagation.

The generator's creation site is the solid edge of its first resume token.
Each yield opens the next resume token: its solid edge is the creation
snapshot again, and the generator's own context at the yield is recorded
as a dotted edge. Because that snapshot came out of resolving the previous
resume token in the same chain, it is a chained edge - execution-flow
variables keep the generator's internal state across yields, while
source-graph variables always read the creation value.
"""

from __future__ import annotations

__all__ = ["Suspension"]

from collections.abc import Generator, Iterator
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from weft.adapters.base import AdapterBase
from weft.contracts.enums import EdgeKind, MergeKind

if TYPE_CHECKING:
    from weft.engine.runtime import ContextEngine
    from weft.engine.tokens import OperationToken

Y = TypeVar("Y")
S = TypeVar("S")
R = TypeVar("R")


class Suspension(AdapterBase, Generic[Y, S, R]):
    """Drives a generator so every resumption runs under a merged snapshot.

    Example:
        def worker():
            engine.set(step, "started")
            yield
            assert engine.get(step) == "started"  # internal state survives

        task = Suspension(engine, worker())
        task.send(None)
        task.send(None)  # raises StopIteration when the generator returns
    """

    name: ClassVar[str] = "suspension"

    def __init__(self, engine: ContextEngine, generator: Generator[Y, S, R], *, label: str | None = None) -> None:
        super().__init__(engine)
        self._generator = generator
        self._origin: OperationToken = self._branch(detail=label or getattr(generator, "__name__", None))
        self._creation = engine.current()
        self._token: OperationToken = self._origin
        self._finished = False
        self._result: R | None = None

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def result(self) -> R | None:
        """Return value of the generator once finished."""
        return self._result

    @property
    def token(self) -> OperationToken:
        """Token the next resumption will resolve."""
        return self._token

    def send(self, value: S | None) -> Y:
        """Resume the generator with value.

        Raises:
            StopIteration: When the generator returns (value = return value)
            RuntimeError: If the generator already finished
        """
        return self._resume(lambda: self._generator.send(value))  # type: ignore[arg-type]

    def throw(self, error: BaseException) -> Y:
        """Raise error inside the generator at its suspension point."""
        return self._resume(lambda: self._generator.throw(error))

    def close(self) -> None:
        """Close the generator, running its cleanup under a merged snapshot."""
        if self._finished:
            return
        self._finished = True
        self._invoke(self._token, MergeKind.SUSPENSION_RESUME, self._generator.close)

    def __iter__(self) -> Iterator[Y]:
        return self

    def __next__(self) -> Y:
        return self.send(None)

    def _resume(self, step: Any) -> Y:
        if self._finished:
            raise RuntimeError("Suspension already finished")
        snapshot = self._engine.resolve(self._token, MergeKind.SUSPENSION_RESUME)
        with self._engine.activate(snapshot):
            try:
                yielded: Y = step()
            except StopIteration as stop:
                self._finished = True
                self._result = stop.value
                raise
            except BaseException:
                self._finished = True
                raise
            # Still inside the generator's context: capture it for the next resume
            self._token = self._branch(parent=self._origin, snapshot=self._creation, detail="resume")
            self._branch(self._token, EdgeKind.DOTTED)
        return yielded
