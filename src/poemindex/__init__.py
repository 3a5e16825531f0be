"""Top-level package for the poem indexer."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("poemindex")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.1.0"

from .config.settings import Settings, get_settings
from .entities import Poem
from .errors import (
    BulkFlushError,
    BulkSinkClosedError,
    ConnectivityError,
    PoemIndexError,
    WalkError,
)

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "Poem",
    "PoemIndexError",
    "ConnectivityError",
    "WalkError",
    "BulkFlushError",
    "BulkSinkClosedError",
]
