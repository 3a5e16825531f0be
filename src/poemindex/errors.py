"""Exception hierarchy for fatal indexing failures.

Per-file decode problems and per-document rejections are not represented
here: they are logged and counted, and the run carries on.
"""

from __future__ import annotations


class PoemIndexError(RuntimeError):
    """Base class for errors that abort an indexing run."""


class ConnectivityError(PoemIndexError):
    """The search cluster could not be reached before any work started."""


class WalkError(PoemIndexError):
    """A directory entry could not be listed while walking the input tree."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class BulkFlushError(PoemIndexError):
    """A bulk request failed at the transport level and its batch was lost."""


class BulkSinkClosedError(PoemIndexError):
    """A document was submitted to a sink that has already been closed."""


__all__ = [
    "PoemIndexError",
    "ConnectivityError",
    "WalkError",
    "BulkFlushError",
    "BulkSinkClosedError",
]
