"""Utility helpers shared across poemindex modules."""

from .helpers import ensure_directory, format_count
from .logging import configure_logging, get_logger, log_timing, logging_context

__all__ = [
    "configure_logging",
    "get_logger",
    "log_timing",
    "logging_context",
    "ensure_directory",
    "format_count",
]
