"""Traditional to simplified script conversion for poem text fields."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Sequence

from opencc import OpenCC

from ..config.policies import NormalizationPolicy
from ..entities.core import Poem


@lru_cache(maxsize=None)
def _converter(conversion: str) -> OpenCC:
    return OpenCC(conversion)


def to_simplified(text: str, conversion: str = "t2s") -> str:
    """Replace every mapped traditional character in *text*; others pass through."""

    if not text:
        return text
    return _converter(conversion).convert(text)


class PoemNormalizer:
    """Field-wise conversion of a :class:`Poem` into simplified script.

    Lists are converted element by element, so ``paragraphs`` and ``notes``
    keep their length and order.
    """

    def __init__(self, policy: NormalizationPolicy | None = None) -> None:
        self.policy = policy or NormalizationPolicy()

    def convert(self, text: str) -> str:
        return to_simplified(text, self.policy.conversion)

    def _convert_all(self, values: Sequence[str]) -> List[str]:
        return [self.convert(value) for value in values]

    def normalize(self, poem: Poem) -> Poem:
        update = {
            "title": self.convert(poem.title),
            "author": self.convert(poem.author),
            "rhythmic": self.convert(poem.rhythmic),
            "paragraphs": self._convert_all(poem.paragraphs),
            "notes": self._convert_all(poem.notes),
        }
        if self.policy.normalize_optional_fields:
            if poem.name is not None:
                update["name"] = self.convert(poem.name)
            if poem.description is not None:
                update["description"] = self.convert(poem.description)
        return poem.model_copy(update=update)


__all__ = ["PoemNormalizer", "to_simplified"]
