"""
Logging helpers shared by the profiling context and command-line drivers.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any, Literal

LogLevel = Literal["debug", "info", "warn", "error"]

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "scenebench") -> logging.Logger:
    """Return a namespaced logger."""
    return logging.getLogger(name)


def configure_logging(level: str | int = "info") -> logging.Logger:
    """Print log messages of the package to stderr, without decoration."""
    if isinstance(level, str):
        level = LEVELS[level]

    logger = get_logger()
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger


def console_log_handler(message: str | None, level: LogLevel) -> None:
    """Default log sink of the profiling context."""
    get_logger().log(LEVELS[level], message or "")


def level_filter(
    handler: Callable[[str | None, LogLevel], Any], level: str
) -> Callable[[str | None, LogLevel], Any]:
    """Wrap a log sink to drop messages below `level`."""
    threshold = LEVELS[level]

    def filtered(message: str | None, message_level: LogLevel) -> Any:
        if LEVELS[message_level] < threshold:
            return None
        return handler(message, message_level)

    return filtered
