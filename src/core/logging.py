"""
Structured logging for the discovery engine, built on structlog.

Development runs get a coloured console renderer; production runs emit one
JSON object per event so log shippers can index the key/value context.

Usage:
    from core.logging import configure_logging, get_logger

    configure_logging(json_logs=False, log_level="DEBUG")

    logger = get_logger(__name__)
    logger.info("Category index refreshed", categories=412, keys=97)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import Processor


def _build_processors(json_logs: bool, include_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        ))
    return processors


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_logs: JSON lines when True, console output otherwise.
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        include_timestamp: Prefix each event with a UTC ISO timestamp.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")

    structlog.configure(
        processors=_build_processors(json_logs, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)


def configure_from_settings(settings: Any) -> None:
    """Configure logging from a ``config.Settings`` instance."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually called with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind key/value pairs to every later event in the current context.

    The discovery service binds a ``request_id`` per call so all events of
    one discovery request can be correlated.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of a ``with`` block, then unbind it."""
    bind_context(**kwargs)
    try:
        yield
    finally:
        unbind_context(*kwargs.keys())
