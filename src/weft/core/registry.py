"""Variable registry: declared context variables and their merge strategies.

Registration is append-only. Variables are structural (declared once at
import or startup time), not transient, so there is no de-registration.
A registry is read-mostly and safe to share between isolates; declaration
takes a lock.
"""

from __future__ import annotations

__all__ = [
    "MISSING",
    "ContextVariable",
    "CustomMergeFn",
    "MergeStrategy",
    "VariableRegistry",
    "declare",
    "default_registry",
    "get_variable",
]

import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import structlog

from weft.contracts.enums import MergeStrategyKind
from weft.contracts.errors import DuplicateVariableError
from weft.contracts.types import VariableKey

if TYPE_CHECKING:
    from weft.contracts.records import MergeRequest

slog = structlog.get_logger(__name__)


class _Missing:
    """Sentinel type for "no default value"."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

CustomMergeFn = Callable[["MergeRequest"], Any]
"""Pure function picking a variable's value from a MergeRequest."""


@dataclass(frozen=True, slots=True)
class MergeStrategy:
    """Per-variable merge policy dispatched on by the MergeResolver.

    Build with the class methods rather than the constructor:

        MergeStrategy.execution_flow()
        MergeStrategy.source_graph()
        MergeStrategy.custom(lambda request: max(request.values()))
    """

    kind: MergeStrategyKind
    function: CustomMergeFn | None = None

    def __post_init__(self) -> None:
        if self.kind == MergeStrategyKind.CUSTOM and self.function is None:
            raise ValueError("custom merge strategy requires a function")
        if self.kind != MergeStrategyKind.CUSTOM and self.function is not None:
            raise ValueError(f"{self.kind} merge strategy does not take a function")

    @classmethod
    def execution_flow(cls) -> MergeStrategy:
        return cls(MergeStrategyKind.EXECUTION_FLOW)

    @classmethod
    def source_graph(cls) -> MergeStrategy:
        return cls(MergeStrategyKind.SOURCE_GRAPH)

    @classmethod
    def custom(cls, function: CustomMergeFn) -> MergeStrategy:
        if not callable(function):
            raise TypeError(f"custom merge strategy must be callable, got {type(function).__name__}")
        return cls(MergeStrategyKind.CUSTOM, function)


@dataclass(frozen=True, slots=True, eq=False)
class ContextVariable:
    """A declared dynamically-scoped variable.

    Identity-compared: two registries may both declare "trace_id" and the
    resulting variables are distinct keys in a Snapshot.

    Attributes:
        key: Unique key within its registry
        default: Value read when a snapshot has no entry (MISSING = none)
        strategy: Merge policy applied at every merge point
    """

    key: VariableKey
    default: Any
    strategy: MergeStrategy

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def __repr__(self) -> str:
        return f"ContextVariable({self.key!r}, strategy={self.strategy.kind.value})"


class VariableRegistry:
    """Owns the set of declared context variables.

    Example:
        registry = VariableRegistry()
        trace_id = registry.declare("trace_id", default=None)
        locale = registry.declare("locale", "en", MergeStrategy.source_graph())

        assert registry.get("trace_id") is trace_id
    """

    def __init__(self) -> None:
        self._variables: dict[str, ContextVariable] = {}
        self._lock = threading.Lock()

    def declare(
        self,
        key: str,
        default: Any = MISSING,
        strategy: MergeStrategy | None = None,
    ) -> ContextVariable:
        """Declare a new context variable.

        Args:
            key: Unique, non-empty key
            default: Default value (MISSING means reads fail until set)
            strategy: Merge strategy (defaults to execution-flow)

        Returns:
            The registered ContextVariable

        Raises:
            DuplicateVariableError: If key is already declared
            ValueError: If key is empty
            TypeError: If strategy is not a MergeStrategy
        """
        if not key:
            raise ValueError("Context variable key must be a non-empty string")
        if strategy is None:
            strategy = MergeStrategy.execution_flow()
        elif not isinstance(strategy, MergeStrategy):
            raise TypeError(f"strategy must be a MergeStrategy, got {type(strategy).__name__}")

        with self._lock:
            if key in self._variables:
                raise DuplicateVariableError(key)
            variable = ContextVariable(key=VariableKey(key), default=default, strategy=strategy)
            self._variables[key] = variable

        slog.debug("variable_declared", key=key, strategy=strategy.kind.value)
        return variable

    def get(self, key: str) -> ContextVariable | None:
        return self._variables.get(key)

    def variables(self) -> tuple[ContextVariable, ...]:
        """Snapshot of declared variables in declaration order."""
        return tuple(self._variables.values())

    def __contains__(self, key: object) -> bool:
        return key in self._variables

    def __iter__(self) -> Iterator[ContextVariable]:
        return iter(self.variables())

    def __len__(self) -> int:
        return len(self._variables)


# Process-wide registry used by the module-level helpers and by
# ContextEngine when no registry is injected.
_DEFAULT_REGISTRY = VariableRegistry()


def default_registry() -> VariableRegistry:
    return _DEFAULT_REGISTRY


def declare(key: str, default: Any = MISSING, strategy: MergeStrategy | None = None) -> ContextVariable:
    """Declare a variable in the process-wide registry."""
    return _DEFAULT_REGISTRY.declare(key, default, strategy)


def get_variable(key: str) -> ContextVariable | None:
    """Look up a variable in the process-wide registry."""
    return _DEFAULT_REGISTRY.get(key)
