"""Error taxonomy for the context propagation engine.

Programmer errors (duplicate declarations, skipped bootstrap, impure
strategies) crash immediately. Non-fatal anomalies such as edges recorded
after a token's final merge are logged instead - see BranchRecorder.
"""


class WeftError(Exception):
    """Base class for all weft errors."""


class DuplicateVariableError(WeftError):
    """Raised when a variable key is declared twice in one registry.

    Attributes:
        key: The colliding variable key
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Context variable '{key}' is already declared")


class MissingInitialSnapshotError(WeftError):
    """Raised when a merge has no edge to draw from.

    This only happens when ContextEngine.bootstrap() was never called before
    an adapter resolved a token with no eligible edge.
    """

    def __init__(self, token_id: str) -> None:
        self.token_id = token_id
        super().__init__(
            f"Token {token_id} has no eligible edge and no initial snapshot is available. Call ContextEngine.bootstrap() before any adapter runs."
        )


class AlreadyBootstrappedError(WeftError):
    """Raised when bootstrap() is called a second time on one engine."""


class ImpureStrategyError(WeftError):
    """Raised when a custom merge strategy tries to mutate the active context."""


class TokenChainError(WeftError):
    """Raised when linking tokens would re-parent a token or create a cycle."""


class UnknownVariableError(WeftError, LookupError):
    """Raised when reading a variable that has no value and no default.

    Attributes:
        key: The variable key that was read
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Context variable '{key}' has no value and no default")
