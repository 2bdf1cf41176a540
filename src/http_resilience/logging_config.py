"""Structured logging configuration using structlog.

Renders retry progress as JSON in production (one object per event, the
engine id as its own field) and as colored console lines in development.
Only the ``http_resilience`` logger is configured; the host application's
root handlers are left alone.

Usage:
    >>> from http_resilience.logging_config import configure_logging
    >>> configure_logging("DEBUG", "production")
"""

import logging
import re
import sys
from typing import TextIO

import structlog
from structlog.types import EventDict, WrappedLogger

from http_resilience.config import settings

LIBRARY_LOGGER = "http_resilience"

_ENGINE_PREFIX = re.compile(r"^RetryEngine_(?P<engine>[0-9A-F]{5})\|")


def add_library_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the library name."""
    event_dict["app"] = "http-resilience"
    return event_dict


def split_engine_prefix(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Move a ``RetryEngine_{ID}|`` message prefix into an ``engine`` field."""
    event = event_dict.get("event")
    if isinstance(event, str):
        match = _ENGINE_PREFIX.match(event)
        if match:
            event_dict["engine"] = match.group("engine")
            event_dict["event"] = event[match.end():]
    return event_dict


def configure_logging(
    log_level: str | None = None,
    environment: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the library's stdlib logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (defaults to settings.LOG_LEVEL;
            unknown names fall back to INFO)
        environment: "production" for JSON output, anything else for the
            console renderer (defaults to settings.ENVIRONMENT)
        stream: Output stream (defaults to stdout)
    """
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    level = getattr(logging, log_level.upper(), logging.INFO)
    is_production = environment.lower() == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_library_context,
        split_engine_prefix,
    ]

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    )
    handler.setLevel(level)

    library_logger = logging.getLogger(LIBRARY_LOGGER)
    library_logger.handlers.clear()
    library_logger.addHandler(handler)
    library_logger.setLevel(level)
    library_logger.propagate = False

    # Transport libraries log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    structlog.get_logger(LIBRARY_LOGGER).debug(
        "Logging configured",
        log_level=logging.getLevelName(level),
        renderer="json" if is_production else "console",
    )
