"""Recursive discovery of candidate poem files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator

from ..config.policies import WalkPolicy
from ..errors import WalkError
from ..utils import get_logger


@dataclass
class WalkerMetrics:
    """Counts gathered while walking the input tree."""

    files_matched: int = 0
    files_excluded: int = 0
    dirs_excluded: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "files_matched": self.files_matched,
            "files_excluded": self.files_excluded,
            "dirs_excluded": self.dirs_excluded,
        }


def _raise_walk_error(error: OSError) -> None:
    raise WalkError(f"Error walking through directory: {error}", path=error.filename) from error


class DirectoryWalker:
    """Lazily yield every file under a root that the walk policy accepts.

    Excluded directory names prune the whole subtree. Excluded file names are
    matched exactly against the base name. Entries are visited in sorted order
    so runs are reproducible, but callers should only rely on each matching
    file appearing exactly once.
    """

    def __init__(self, policy: WalkPolicy | None = None) -> None:
        self.policy = policy or WalkPolicy()
        self.metrics = WalkerMetrics()
        self._excluded_files = frozenset(self.policy.excluded_files)
        self._excluded_dirs = frozenset(self.policy.excluded_dirs)
        self._logger = get_logger(module=__name__)

    def walk(self, root: Path | str) -> Iterator[Path]:
        root_path = Path(root)
        if not root_path.is_dir():
            raise WalkError(f"Not a directory: {root_path}", path=str(root_path))

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=_raise_walk_error):
            kept = []
            for dirname in sorted(dirnames):
                if dirname in self._excluded_dirs:
                    self.metrics.dirs_excluded += 1
                    self._logger.debug("Skipping excluded directory", path=os.path.join(dirpath, dirname))
                    continue
                kept.append(dirname)
            dirnames[:] = kept

            for filename in sorted(filenames):
                if not filename.endswith(self.policy.extension):
                    continue
                if filename in self._excluded_files:
                    self.metrics.files_excluded += 1
                    self._logger.info("Skipping excluded file", path=os.path.join(dirpath, filename))
                    continue
                self.metrics.files_matched += 1
                yield Path(dirpath) / filename


__all__ = ["DirectoryWalker", "WalkerMetrics"]
