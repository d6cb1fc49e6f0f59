"""Logging setup for survivor-bot.

Every module logs through structlog with key-value context; the
execution loop binds ``game_id`` so that the lines of concurrent games
can be told apart. Output goes to stdout as a colored console or as JSON
lines, or is appended as JSON lines to a log file when one is configured.

Example:
    >>> configure_logging(level="DEBUG", log_file="bot.log")
    >>> get_logger(__name__).info("Decision made", phase="exploring")
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog
from structlog.types import Processor


_QUIET_LOGGERS = ("asyncio", "tenacity")

_log_file: IO[str] | None = None


def _close_log_file() -> None:
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    May be called again; a log file opened by an earlier call is closed.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of the colored console.
        log_file: Append JSON lines to this file instead of stdout.
    """
    global _log_file
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    _close_log_file()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_file:
        _log_file = open(log_file, "a", encoding="utf-8")
        logger_factory: Any = structlog.WriteLoggerFactory(file=_log_file)
    else:
        logger_factory = structlog.PrintLoggerFactory()

    if json_format or log_file:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    # loggers created at import time must follow later reconfiguration
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Logger whose lines carry ``name`` under the ``logger`` key."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every following line of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with ``bind_context``."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
