"""Tests for small shared helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from poemindex.utils import ensure_directory, format_count


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, "0"), (999, "999"), (1000, "1,000"), (1234567, "1,234,567"), (2499.9, "2,499")],
)
def test_format_count_groups_thousands(value: float, expected: str) -> None:
    assert format_count(value) == expected


def test_ensure_directory_creates_nested_path(tmp_path: Path) -> None:
    target = ensure_directory(tmp_path / "a" / "b")

    assert target.is_dir()
    assert target == (tmp_path / "a" / "b").resolve()
