# lorekeep/logging/__init__.py
"""Logging helpers shared across lorekeep."""

from .logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
