"""General-purpose helpers."""

from __future__ import annotations

from pathlib import Path

import humanize


def ensure_directory(path: Path | str) -> Path:
    """Ensure that a directory exists and return the resolved Path."""

    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target.resolve()


def format_count(value: float) -> str:
    """Render a count with thousands separators, e.g. ``12,345``; fractions are dropped."""

    return humanize.intcomma(int(value))


__all__ = ["ensure_directory", "format_count"]
