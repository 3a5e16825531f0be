"""Threaded bulk indexer feeding documents to Elasticsearch in batches.

Documents are accumulated in one shared buffer. A batch is cut as soon as
the buffer reaches the configured document count or encoded byte size, or
when the flush interval has elapsed since the previous cut, whichever comes
first. Cut batches travel through a bounded queue to a fixed pool of worker
threads, each of which issues one ``bulk`` request per batch. The bounded
queue is what throttles producers when the cluster falls behind.

Outcomes are reported per document through optional callbacks and the
counters returned by :meth:`BulkSink.stats`. A transport failure is not a
per-document outcome: it poisons the sink, and the next ``submit`` or the
final ``close`` raises :class:`BulkFlushError`.
"""

from __future__ import annotations

import json
import queue
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config.policies import BulkPolicy
from ..entities.core import Poem
from ..errors import BulkFlushError, BulkSinkClosedError
from ..utils import get_logger

SuccessCallback = Callable[["BulkItem", Mapping[str, Any]], None]
FailureCallback = Callable[["BulkItem", Mapping[str, Any], Optional[BaseException]], None]

_ACTION = "index"
_STOP = object()


@dataclass
class BulkItem:
    """A single document queued for indexing."""

    document: Dict[str, Any]
    doc_id: str | None = None
    on_success: SuccessCallback | None = None
    on_failure: FailureCallback | None = None
    size: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.size = len(json.dumps(self.action(), ensure_ascii=False).encode("utf-8")) + len(
            json.dumps(self.document, ensure_ascii=False).encode("utf-8")
        ) + 2

    def action(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {}
        if self.doc_id is not None:
            meta["_id"] = self.doc_id
        return {_ACTION: meta}


@dataclass(frozen=True)
class BulkStats:
    """Immutable snapshot of the sink counters."""

    num_added: int = 0
    num_flushed: int = 0
    num_failed: int = 0
    num_indexed: int = 0
    num_created: int = 0
    num_requests: int = 0


class BulkSink:
    """Batching, multi-worker writer for one Elasticsearch index."""

    def __init__(
        self,
        client: Any,
        *,
        index: str,
        policy: BulkPolicy | None = None,
    ) -> None:
        self.client = client
        self.index = index
        self.policy = policy or BulkPolicy()
        self._logger = get_logger(module=__name__, index=index)

        self._lock = threading.Lock()
        self._buffer: List[BulkItem] = []
        self._buffer_bytes = 0
        self._last_flush = time.monotonic()
        self._counters: Dict[str, int] = {name: 0 for name in BulkStats.__dataclass_fields__}
        self._fatal: BaseException | None = None

        self._batches: "queue.Queue[Any]" = queue.Queue(maxsize=self.policy.queue_size)
        self._stop = threading.Event()
        self._workers: List[threading.Thread] = []
        self._ticker: threading.Thread | None = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "BulkSink":
        with self._lock:
            if self._started:
                return self
            self._started = True
            self._last_flush = time.monotonic()
        for number in range(self.policy.workers):
            worker = threading.Thread(
                target=self._run_worker, name=f"bulk-worker-{number}", daemon=True
            )
            worker.start()
            self._workers.append(worker)
        self._ticker = threading.Thread(target=self._run_ticker, name="bulk-ticker", daemon=True)
        self._ticker.start()
        self._logger.debug(
            "Bulk sink started",
            workers=self.policy.workers,
            flush_actions=self.policy.flush_actions,
            flush_bytes=self.policy.flush_bytes,
            flush_interval=self.policy.flush_interval,
        )
        return self

    def __enter__(self) -> "BulkSink":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(raise_on_error=exc is None, discard_pending=isinstance(exc, KeyboardInterrupt))

    def submit(
        self,
        document: Poem | Mapping[str, Any],
        *,
        doc_id: str | None = None,
        on_success: SuccessCallback | None = None,
        on_failure: FailureCallback | None = None,
    ) -> None:
        """Queue *document* for indexing without waiting on the network."""

        body = document.to_document() if isinstance(document, Poem) else dict(document)
        item = BulkItem(body, doc_id=doc_id, on_success=on_success, on_failure=on_failure)

        with self._lock:
            if self._closed:
                raise BulkSinkClosedError("Cannot submit to a closed bulk sink")
            if not self._started:
                raise BulkSinkClosedError("Bulk sink has not been started")
            if self._fatal is not None:
                raise BulkFlushError(f"Bulk sink aborted after flush failure: {self._fatal}") from self._fatal
            self._buffer.append(item)
            self._buffer_bytes += item.size
            self._counters["num_added"] += 1
            batch = None
            if (
                len(self._buffer) >= self.policy.flush_actions
                or self._buffer_bytes >= self.policy.flush_bytes
            ):
                batch = self._cut_locked()

        if batch:
            self._batches.put(batch)

    def close(self, *, raise_on_error: bool = True, discard_pending: bool = False) -> BulkStats:
        """Flush what is buffered, wait for every request, and stop all threads.

        With *discard_pending* nothing new is sent: the buffer and any queued
        batches are failed with :class:`BulkSinkClosedError`, and only requests
        already in flight are waited for.
        """

        with self._lock:
            if self._closed:
                return self._snapshot_locked()
            self._closed = True
            started = self._started

        if started:
            self._stop.set()
            if self._ticker is not None:
                self._ticker.join()
            with self._lock:
                batch = self._cut_locked()
            if discard_pending:
                self._discard(batch)
            elif batch:
                self._batches.put(batch)
            for _ in self._workers:
                self._batches.put(_STOP)
            for worker in self._workers:
                worker.join()

        stats = self.stats()
        self._logger.debug("Bulk sink closed", **asdict(stats))
        if raise_on_error and self._fatal is not None:
            raise BulkFlushError(f"Error flushing bulk request: {self._fatal}") from self._fatal
        return stats

    def stats(self) -> BulkStats:
        with self._lock:
            return self._snapshot_locked()

    @property
    def failure(self) -> BaseException | None:
        """The transport error that aborted the sink, if any."""

        return self._fatal

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _snapshot_locked(self) -> BulkStats:
        return BulkStats(**self._counters)

    def _cut_locked(self) -> List[BulkItem]:
        batch = self._buffer
        self._buffer = []
        self._buffer_bytes = 0
        self._last_flush = time.monotonic()
        return batch

    def _run_ticker(self) -> None:
        interval = self.policy.flush_interval
        while True:
            with self._lock:
                remaining = self._last_flush + interval - time.monotonic()
            if self._stop.wait(max(0.0, remaining)):
                return
            batch = None
            with self._lock:
                if time.monotonic() - self._last_flush >= interval:
                    if self._buffer:
                        batch = self._cut_locked()
                    else:
                        self._last_flush = time.monotonic()
            if batch:
                self._logger.debug("Flush interval elapsed", documents=len(batch))
                self._batches.put(batch)

    def _run_worker(self) -> None:
        while True:
            batch = self._batches.get()
            if batch is _STOP:
                return
            try:
                self._flush(batch)
            except Exception as exc:
                self._logger.exception("Unexpected error while flushing bulk batch")
                self._abort(exc)

    def _flush(self, batch: List[BulkItem]) -> None:
        if self._fatal is not None:
            self._fail_batch(batch, self._fatal)
            return

        operations: List[Dict[str, Any]] = []
        for item in batch:
            operations.append(item.action())
            operations.append(item.document)

        with self._lock:
            self._counters["num_requests"] += 1
        try:
            response = self.client.bulk(operations=operations, index=self.index)
        except Exception as exc:
            self._logger.error(
                "Bulk request failed", documents=len(batch), error=str(exc)
            )
            self._abort(exc)
            self._fail_batch(batch, exc)
            return

        body = getattr(response, "body", response)
        results = body.get("items", [])
        if len(results) != len(batch):
            error = BulkFlushError(
                f"Bulk response carried {len(results)} items for {len(batch)} documents"
            )
            self._abort(error)
            self._fail_batch(batch, error)
            return

        for item, result in zip(batch, results):
            info = result.get(_ACTION, {})
            status = int(info.get("status", 0))
            if info.get("error") or status > 201:
                with self._lock:
                    self._counters["num_failed"] += 1
                self._logger.warning(
                    "Error indexing document",
                    status=status,
                    error=json.dumps(info.get("error"), ensure_ascii=False),
                    title=item.document.get("title"),
                )
                self._notify_failure(item, info, None)
            else:
                with self._lock:
                    self._counters["num_flushed"] += 1
                    if info.get("result") == "created" or status == 201:
                        self._counters["num_created"] += 1
                    else:
                        self._counters["num_indexed"] += 1
                self._notify_success(item, info)

    def _abort(self, error: BaseException) -> None:
        with self._lock:
            if self._fatal is None:
                self._fatal = error

    def _discard(self, dropped: List[BulkItem]) -> None:
        while True:
            try:
                dropped.extend(self._batches.get_nowait())
            except queue.Empty:
                break
        if not dropped:
            return
        self._logger.warning("Discarding unsent documents", documents=len(dropped))
        self._fail_batch(dropped, BulkSinkClosedError("Bulk sink closed before the document was sent"))

    def _fail_batch(self, batch: List[BulkItem], error: BaseException) -> None:
        with self._lock:
            self._counters["num_failed"] += len(batch)
        for item in batch:
            self._notify_failure(item, {}, error)

    def _notify_success(self, item: BulkItem, info: Mapping[str, Any]) -> None:
        if item.on_success is None:
            return
        try:
            item.on_success(item, info)
        except Exception:
            self._logger.exception("on_success callback raised")

    def _notify_failure(
        self, item: BulkItem, info: Mapping[str, Any], error: BaseException | None
    ) -> None:
        if item.on_failure is None:
            return
        try:
            item.on_failure(item, info, error)
        except Exception:
            self._logger.exception("on_failure callback raised")


__all__ = ["BulkSink", "BulkItem", "BulkStats"]
