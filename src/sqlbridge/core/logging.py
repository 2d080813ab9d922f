"""
Structured logging for sqlbridge.

Every module obtains its logger through ``get_logger(__name__)``; the host
calls ``configure_logging()`` once at startup. Transfer operations log at
debug level on success and warning level on engine failures, carrying the
error's ``to_dict()`` payload as structured fields.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="sqlbridge")
             ↓
        structlog processor chain:
          1. filter_by_level
          2. TimeStamper (iso, utc)
          3. merge_contextvars
          4. add_log_level / add_logger_name
          5. add_service_metadata
          6. format_exc_info + ecs_compatible (JSON only)
          7. JSONRenderer (stderr not a tty) or ConsoleRenderer (tty)
             ↓
        stdlib logging (basicConfig, stderr)

Examples:
    >>> from sqlbridge.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.debug("bulk_insert_complete", rows=16)

    Scoped context:

    >>> with LogContext(sql="INSERT INTO t VALUES (?)"):
    ...     logger.info("loader_flush", rows=16)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "sqlbridge"


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _ecs_compatible(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename timestamp and level to their ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "sqlbridge",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    log_level = getattr(logging, level.upper())

    shared_processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(1, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(_ecs_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )
    logging.getLogger("sqlbridge").setLevel(log_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(sql=stmt.sql):
            loader.load(row)
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
