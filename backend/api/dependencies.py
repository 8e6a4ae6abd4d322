"""
ScriptMenu API Dependencies.

Shared dependencies for FastAPI routes.
Requires Python 3.11+.
"""

from typing import Any

from fastapi import HTTPException

from commands.synchronizer import TreeSynchronizer
from watcher.directory_watcher import DirectoryWatcher


# Shared state - populated by main.py lifespan
_state: dict[str, Any] = {}


def set_components(
    synchronizer: TreeSynchronizer | None,
    watcher: DirectoryWatcher | None,
) -> None:
    """Set the shared command tree components."""
    _state["synchronizer"] = synchronizer
    _state["watcher"] = watcher


def get_synchronizer() -> TreeSynchronizer | None:
    """Get the shared tree synchronizer."""
    return _state.get("synchronizer")


def get_watcher() -> DirectoryWatcher | None:
    """Get the shared directory watcher, if watching is enabled."""
    return _state.get("watcher")


def require_synchronizer() -> TreeSynchronizer:
    """
    Dependency that requires the tree synchronizer.

    Raises HTTPException if the command tree has not been built.
    """
    synchronizer = get_synchronizer()
    if synchronizer is None:
        raise HTTPException(
            status_code=503,
            detail="Command tree unavailable",
        )
    return synchronizer
