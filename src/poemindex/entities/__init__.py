"""Domain entities."""

from .core import POEM_LIST_ADAPTER, Poem

__all__ = ["Poem", "POEM_LIST_ADAPTER"]
