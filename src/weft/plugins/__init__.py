"""Observer plugins: pluggy hooks notified of branch and merge activity."""

from weft.plugins.hookspecs import hookimpl, hookspec
from weft.plugins.manager import ObserverManager

__all__ = ["ObserverManager", "hookimpl", "hookspec"]
