"""Entry point running the walk → load → normalize → bulk index pipeline."""

from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

from ..config.settings import Settings, get_settings
from ..search import build_client, check_connectivity
from ..utils import format_count, get_logger, log_timing, logging_context
from .loader import PoemFileLoader
from .normalizer import PoemNormalizer
from .sink import BulkSink
from .walker import DirectoryWalker


@dataclass(frozen=True)
class RunSummary:
    """Aggregate outcome of one indexing run."""

    flushed: int
    failed: int
    duration_seconds: float
    files_processed: int
    files_failed: int
    files_excluded: int
    cancelled: bool = False

    @property
    def docs_per_second(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return self.flushed / self.duration_seconds

    @property
    def succeeded(self) -> bool:
        return self.failed == 0

    def describe(self) -> str:
        rate = format_count(self.docs_per_second)
        if self.failed:
            return (
                f"Indexed [{format_count(self.flushed)}] documents with "
                f"[{format_count(self.failed)}] errors in {self.duration_seconds:.3f}s ({rate} docs/sec)"
            )
        return (
            f"Successfully indexed [{format_count(self.flushed)}] documents "
            f"in {self.duration_seconds:.3f}s ({rate} docs/sec)"
        )

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["docs_per_second"] = round(self.docs_per_second, 2)
        return payload


def _stop_requested(event: threading.Event | None) -> bool:
    return event is not None and event.is_set()


def index_directory(
    root: str | Path,
    settings: Settings | None = None,
    *,
    client: Any = None,
    cancel_event: threading.Event | None = None,
) -> RunSummary:
    """Index every poem file under *root* and report what happened.

    Connectivity, walk and transport failures propagate as
    :class:`~poemindex.errors.PoemIndexError` subclasses after the sink has
    been drained. Rejected documents are counted in the summary instead.
    """

    settings = settings or get_settings()
    policies = settings.policies
    logger = get_logger(module=__name__)

    client = client if client is not None else build_client(policies.elasticsearch)
    check_connectivity(client)

    walker = DirectoryWalker(policies.walk)
    loader = PoemFileLoader(
        quarantine_file=settings.quarantine_file if policies.loader.quarantine_enabled else None
    )
    normalizer = PoemNormalizer(policies.normalization)
    stable_ids = policies.bulk.document_ids == "content_hash"
    sink = BulkSink(client, index=policies.elasticsearch.index, policy=policies.bulk)

    cancelled = False
    start = time.perf_counter()
    sink.start()
    try:
        with logging_context(step="index"), log_timing("index", logger_=logger):
            for path in walker.walk(root):
                if _stop_requested(cancel_event):
                    cancelled = True
                    break
                poems = loader.load(path)
                submitted = 0
                for poem in poems:
                    if _stop_requested(cancel_event):
                        cancelled = True
                        break
                    simplified = normalizer.normalize(poem)
                    sink.submit(simplified, doc_id=simplified.stable_id() if stable_ids else None)
                    submitted += 1
                logger.info("Processed file", file=str(path), poems=len(poems), submitted=submitted)
                if cancelled:
                    break
        if cancelled:
            logger.warning("Cancellation requested; draining pending documents")
    except KeyboardInterrupt:
        sink.close(raise_on_error=False, discard_pending=True)
        raise
    except BaseException:
        sink.close(raise_on_error=False)
        raise
    stats = sink.close()
    duration = time.perf_counter() - start

    summary = RunSummary(
        flushed=stats.num_flushed,
        failed=stats.num_failed,
        duration_seconds=duration,
        files_processed=loader.metrics.files_processed,
        files_failed=loader.metrics.files_failed,
        files_excluded=walker.metrics.files_excluded,
        cancelled=cancelled,
    )
    if summary.succeeded:
        logger.info(summary.describe())
    else:
        logger.error(summary.describe())
    logger.info("Indexing completed", **summary.as_dict())
    return summary


__all__ = ["RunSummary", "index_directory"]
