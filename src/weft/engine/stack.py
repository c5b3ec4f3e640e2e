"""ActiveContextStack: which snapshot is current for one execution frame.

One stack belongs to one isolate (thread). Callbacks run to completion on
it one at a time, so no locking is needed here.
"""

from __future__ import annotations

__all__ = ["ActiveContextStack"]

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, ParamSpec, TypeVar

from weft.contracts.errors import ImpureStrategyError
from weft.core.registry import ContextVariable
from weft.core.snapshot import Snapshot

P = ParamSpec("P")
R = TypeVar("R")


class ActiveContextStack:
    """Tracks the current snapshot with guaranteed scoped restoration.

    The stack always holds at least the base snapshot, so current() never
    fails. activate()/with_snapshot() push a snapshot and pop it on every
    exit path. set_variable() replaces the top entry in place, modelling
    plain synchronous assignment.

    Example:
        stack = ActiveContextStack(initial)

        stack.set_variable(trace_id, "abc")
        with stack.activate(merged):
            handle_callback()
        assert stack.get(trace_id) == "abc"
    """

    def __init__(self, base: Snapshot | None = None, *, enforce_purity: bool = True) -> None:
        self._frames: list[Snapshot] = [base if base is not None else Snapshot()]
        self._read_only_depth = 0
        self._enforce_purity = enforce_purity

    @property
    def depth(self) -> int:
        """Number of active frames, base included."""
        return len(self._frames)

    def current(self) -> Snapshot:
        return self._frames[-1]

    def get(self, variable: ContextVariable) -> Any:
        """Read a variable from the current snapshot.

        Raises:
            UnknownVariableError: If the variable has no value and no default
        """
        return self._frames[-1][variable]

    def set_variable(self, variable: ContextVariable, value: Any) -> None:
        """Replace the top snapshot with a derived copy holding the new value.

        Raises:
            ImpureStrategyError: If called while a custom merge strategy runs
        """
        if self._read_only_depth and self._enforce_purity:
            raise ImpureStrategyError(f"Cannot set '{variable.key}' while a merge strategy is running; custom strategies must be pure")
        self._frames[-1] = self._frames[-1].derive(variable, value)

    @contextmanager
    def activate(self, snapshot: Snapshot) -> Iterator[Snapshot]:
        """Install snapshot as current for the duration of the block."""
        if not isinstance(snapshot, Snapshot):
            raise TypeError(f"activate() requires a Snapshot, got {type(snapshot).__name__}")
        depth = len(self._frames)
        self._frames.append(snapshot)
        try:
            yield snapshot
        finally:
            # Truncate rather than pop so a body that leaked frames
            # (e.g. an abandoned generator) cannot shift restoration.
            del self._frames[depth:]

    def with_snapshot(self, snapshot: Snapshot, body: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
        """Run body with snapshot active; restore the prior snapshot afterwards."""
        with self.activate(snapshot):
            return body(*args, **kwargs)

    @contextmanager
    def read_only(self) -> Iterator[None]:
        """Forbid set_variable() for the duration of the block."""
        self._read_only_depth += 1
        try:
            yield
        finally:
            self._read_only_depth -= 1

    def reset(self, base: Snapshot) -> None:
        """Replace the base snapshot. Only valid with no active frames."""
        if len(self._frames) != 1:
            raise RuntimeError(f"Cannot reset base snapshot with {len(self._frames) - 1} active frame(s)")
        self._frames[0] = base
