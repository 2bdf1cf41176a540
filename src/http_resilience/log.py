"""
Logging sink used by the retry engine.

The engine reports progress (attempt counters, policy verdicts, computed
backoff) through a narrow ``Logger`` interface so applications can route the
messages wherever they like. The default sink forwards to structlog.

Usage:
    >>> from http_resilience.log import LogLevel, set_logger
    >>> class PrintLogger:
    ...     def log(self, level, message):
    ...         print(level.value, message)
    >>> set_logger(PrintLogger())
"""

import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from http_resilience.exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Severity of a message sent to a ``Logger`` sink."""

    INFO = "info"
    WARNING = "warning"
    DEBUG = "debug"
    ERROR = "error"


@runtime_checkable
class Logger(Protocol):
    """Protocol for logging sinks."""

    def log(self, level: LogLevel, message: str) -> None:
        ...


class StructlogLogger:
    """
    Default sink: forwards each message to a structlog logger.

    The level selects the structlog method (``debug``, ``info``, ...), so
    the output follows whatever ``configure_logging`` set up.
    """

    def __init__(self, name: str = "http_resilience"):
        self._logger = structlog.get_logger(name)

    def log(self, level: LogLevel, message: str) -> None:
        getattr(self._logger, LogLevel(level).value)(message)


class DebugLogger:
    """Sink that formats one line per message and emits it at debug level."""

    def __init__(self, name: str = "http_resilience"):
        self._logger = structlog.get_logger(name)

    def log(self, level: LogLevel, message: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        self._logger.debug(f"{timestamp}|http_resilience|{LogLevel(level).name}|{message}")


_lock = threading.Lock()
_current: Logger | None = None
_default: Logger | None = None


def set_logger(logger: Logger) -> None:
    """
    Set the process-wide logging sink.

    Args:
        logger: Sink implementing ``log(level, message)``

    Raises:
        ConfigurationError: If ``logger`` is None
    """
    global _current
    if logger is None:
        raise ConfigurationError("logger must not be None", {"argument": "logger"})
    _current = logger


def get_logger() -> Logger:
    """Return the process-wide sink, creating the default one on first use."""
    global _default
    if _current is not None:
        return _current
    if _default is None:
        with _lock:
            if _default is None:
                _default = StructlogLogger()
    return _default


def reset_logger() -> None:
    """Forget any sink set with ``set_logger``."""
    global _current
    _current = None
