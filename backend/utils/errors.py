"""
ScriptMenu Error Taxonomy.

Errors raised inside a synchronization pass are logged and swallowed by the
synchronizer; errors raised by a user action propagate to the caller.
Requires Python 3.11+.
"""

from pathlib import Path


class ScriptMenuError(Exception):
    """Base class for all ScriptMenu errors."""


class WatchRegistrationFailed(ScriptMenuError):
    """A directory could not be registered for change notifications."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot watch {path}: {reason}")
        self.path = path
        self.reason = reason


class DirectoryListUnavailable(ScriptMenuError):
    """A directory could not be listed during a synchronization pass."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot list {path}: {reason}")
        self.path = path
        self.reason = reason


class UnsupportedScriptType(ScriptMenuError):
    """No interpreter is registered for the script's extension."""

    def __init__(self, path: Path, extension: str) -> None:
        super().__init__(f"No interpreter registered for '.{extension}' ({path.name})")
        self.path = path
        self.extension = extension


class ScriptExecutionFailed(ScriptMenuError):
    """
    A script raised while being read or evaluated.

    The original exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"{path.name}: {cause}")
        self.path = path
        self.cause = cause
