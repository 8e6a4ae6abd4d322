"""
ScriptMenu Backend Utilities Package.

Common utilities shared across all backend modules.
Requires Python 3.11+.
"""

from utils.config import Settings, get_settings
from utils.errors import (
    DirectoryListUnavailable,
    ScriptExecutionFailed,
    ScriptMenuError,
    UnsupportedScriptType,
    WatchRegistrationFailed,
)
from utils.logger import configure_logging, get_logger, LoggerMixin, script_context

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
    "script_context",
    "ScriptMenuError",
    "WatchRegistrationFailed",
    "DirectoryListUnavailable",
    "UnsupportedScriptType",
    "ScriptExecutionFailed",
]
