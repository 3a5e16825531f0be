"""Decoding of poem JSON files into :class:`Poem` records."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from pydantic import ValidationError

from ..entities.core import POEM_LIST_ADAPTER, Poem
from ..utils import ensure_directory, get_logger


@dataclass
class LoaderMetrics:
    """Capture statistics about file loading."""

    files_processed: int = 0
    files_failed: int = 0
    poems_loaded: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "poems_loaded": self.poems_loaded,
        }


class PoemFileLoader:
    """Reads one file at a time; a bad file yields no poems instead of an error."""

    def __init__(self, *, quarantine_file: Path | None = None) -> None:
        self.metrics = LoaderMetrics()
        self._logger = get_logger(module=__name__)
        self._quarantine_file = Path(quarantine_file) if quarantine_file else None

    @property
    def quarantine_file(self) -> Path | None:
        return self._quarantine_file

    def load(self, file_path: Path | str) -> List[Poem]:
        path = Path(file_path)
        self.metrics.files_processed += 1

        try:
            data = path.read_bytes()
        except OSError as exc:
            self._fail(path, f"read failed: {exc}")
            return []

        try:
            poems = POEM_LIST_ADAPTER.validate_json(data)
        except ValidationError as exc:
            self._fail(path, f"decode failed: {exc.error_count()} error(s); {exc.errors()[0]['msg']}")
            return []

        self.metrics.poems_loaded += len(poems)
        return poems

    def _fail(self, path: Path, error: str) -> None:
        self.metrics.files_failed += 1
        self._logger.warning("Skipping unreadable poem file", file=str(path), error=error)
        self._record_quarantine(path, error)

    def _record_quarantine(self, path: Path, error: str) -> None:
        if self._quarantine_file is None:
            return
        try:
            ensure_directory(self._quarantine_file.parent)
            entry = {"file": str(path), "error": error}
            with self._quarantine_file.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, ensure_ascii=False))
                handle.write("\n")
        except OSError:  # pragma: no cover - quarantine must not break pipeline
            self._logger.exception(
                "Failed to write quarantine entry", path=str(self._quarantine_file)
            )


__all__ = ["PoemFileLoader", "LoaderMetrics"]
