"""Observer manager for branch/merge instrumentation.

Uses pluggy for hook-based observer registration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

from weft.plugins.hookspecs import PROJECT_NAME, WeftObserverSpec

if TYPE_CHECKING:
    from weft.contracts.enums import MergeKind
    from weft.contracts.records import MergeEdge
    from weft.core.snapshot import Snapshot
    from weft.engine.tokens import OperationToken


class ObserverManager:
    """Registers observers and dispatches engine notifications to them.

    Example:
        manager = ObserverManager()
        manager.register(MergeCounter())

        # Engine side
        manager.merge_resolved(token, MergeKind.TIMER_FIRE, snapshot)
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(WeftObserverSpec)

    def register(self, observer: object, name: str | None = None) -> None:
        """Register an observer carrying @hookimpl methods.

        Raises:
            ValueError: If the observer (or name) is already registered
        """
        self._pm.register(observer, name=name)

    def unregister(self, observer: object) -> None:
        self._pm.unregister(observer)

    def is_registered(self, observer: object) -> bool:
        return self._pm.is_registered(observer)

    def branch_recorded(self, token: OperationToken, edge: MergeEdge) -> None:
        self._pm.hook.weft_branch_recorded(token=token, edge=edge)

    def late_edge(self, token: OperationToken, edge: MergeEdge) -> None:
        self._pm.hook.weft_late_edge(token=token, edge=edge)

    def merge_resolved(self, token: OperationToken, merge_kind: MergeKind, snapshot: Snapshot) -> None:
        self._pm.hook.weft_merge_resolved(token=token, merge_kind=merge_kind, snapshot=snapshot)

    def token_cancelled(self, token: OperationToken) -> None:
        self._pm.hook.weft_token_cancelled(token=token)
