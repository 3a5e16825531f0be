"""Indexing pipeline stages.

The stages run in order for every file: ``walker`` discovers candidate
files, ``loader`` decodes them into poems, ``normalizer`` converts their
text to simplified script and ``sink`` batches them into bulk requests.
``main`` wires the stages together.
"""

from .loader import LoaderMetrics, PoemFileLoader
from .main import RunSummary, index_directory
from .normalizer import PoemNormalizer, to_simplified
from .sink import BulkItem, BulkSink, BulkStats
from .walker import DirectoryWalker, WalkerMetrics

__all__ = [
    "DirectoryWalker",
    "WalkerMetrics",
    "PoemFileLoader",
    "LoaderMetrics",
    "PoemNormalizer",
    "to_simplified",
    "BulkSink",
    "BulkItem",
    "BulkStats",
    "RunSummary",
    "index_directory",
]
