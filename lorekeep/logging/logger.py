# lorekeep/logging/logger.py
"""
Unified logging setup for lorekeep.

Library modules take a plain logging.getLogger(__name__); entrypoint
code may use get_logger(__name__), which returns the same logger.

Configuration happens once, in configure_logging() (CLI entrypoint or
API startup). Log namespaces follow module paths automatically.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO, Union

DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    stream: TextIO = sys.stderr,
) -> None:
    """
    Configure the root logging handler.

    Safe to call multiple times; handler duplication is prevented.

    Args:
        level: Logging level (int or name such as "DEBUG")
        fmt: Format string for the handler
        stream: Output stream
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)

    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for name; equivalent to logging.getLogger(name).

    Do NOT configure logging here; configuration happens in configure_logging().
    """
    return logging.getLogger(name)


__all__ = ["DEFAULT_FORMAT", "configure_logging", "get_logger"]
