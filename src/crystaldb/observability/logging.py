"""Structured logging configuration using structlog.

JSON output for services and console output for interactive use. Loggers are
obtained per module with ``get_logger(__name__)``; events carry identifiers and
counts only, never unit values.
"""

import sys
from typing import Any, cast

import structlog

_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

LOG_FORMATS: frozenset[str] = frozenset({"json", "console"})


def level_number(level: str) -> int:
    """Map a level name to its numeric value (unknown names map to INFO)."""
    return _LEVELS.get(level.upper(), 20)


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    cache_loggers: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format - "json" for machines, "console" for humans
        cache_loggers: Cache bound loggers on first use; disable when the
            configuration is swapped at runtime (tests)
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=cache_loggers,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        A bound structlog logger
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
