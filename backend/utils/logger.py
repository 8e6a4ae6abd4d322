"""
ScriptMenu Structured Logging Module.

structlog setup shared by the API host and the command line tool. Log
entries carry the application context, and anything logged while a script
runs also carries the script's path.
Requires Python 3.11+.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from utils.config import LoggingSettings, get_settings

# Third-party loggers that report every request or filesystem event at INFO
_NOISY_LOGGERS = ("httpx", "watchdog", "uvicorn.access")


def _app_context() -> Processor:
    settings = get_settings()
    context = {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def _renderer(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def _open_stream(file_path: Path | None) -> TextIO | None:
    if file_path is None:
        return None
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path.open("a", encoding="utf-8")


def configure_logging(config: LoggingSettings | None = None) -> None:
    """
    Configure structured logging for the application.

    Call this once at startup. structlog and the standard library loggers
    write to the same stream: stdout, or ``LOG_FILE_PATH`` when set.

    Args:
        config: Logging settings; defaults to the application settings
    """
    config = config or get_settings().logging
    level = getattr(logging, config.level.upper())
    stream = _open_stream(config.file_path)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            _app_context(),
            *_renderer(config.format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=(
            structlog.PrintLoggerFactory()
            if stream is None
            else structlog.WriteLoggerFactory(file=stream)
        ),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(name)s %(message)s", stream=stream or sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, named after the calling component."""
    return structlog.get_logger(name)


@contextmanager
def script_context(path: Path) -> Iterator[None]:
    """Tag every entry logged inside the block with the running script."""
    with structlog.contextvars.bound_contextvars(script=str(path)):
        yield


class LoggerMixin:
    """
    Gives a class a ``log`` attribute bound to its class name.

    Used by the long-lived components: watcher, synchronizer, registry and
    runner.
    """

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
