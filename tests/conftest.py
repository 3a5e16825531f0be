"""Shared fixtures for the poemindex test-suite."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pytest

from poemindex.config.settings import Settings


class FakeElasticsearch:
    """In-memory stand-in for :class:`elasticsearch.Elasticsearch`.

    Every ``bulk`` call is recorded. Documents whose title is listed in
    ``reject_titles`` come back with a 400 item; ``bulk_error`` makes the
    whole request raise instead.
    """

    def __init__(
        self,
        *,
        reject_titles: Iterable[str] = (),
        bulk_error: BaseException | None = None,
        info_error: BaseException | None = None,
    ) -> None:
        self.reject_titles = set(reject_titles)
        self.bulk_error = bulk_error
        self.info_error = info_error
        self.requests: List[Dict[str, Any]] = []
        self.flushed = threading.Event()
        self._lock = threading.Lock()
        self._generated = 0

    def info(self) -> Dict[str, Any]:
        if self.info_error is not None:
            raise self.info_error
        return {"cluster_name": "test-cluster", "version": {"number": "8.14.3"}}

    def bulk(self, *, operations: List[Dict[str, Any]], index: str | None = None, **_: Any) -> Dict[str, Any]:
        headers = operations[0::2]
        documents = operations[1::2]
        with self._lock:
            self.requests.append({"index": index, "headers": headers, "documents": documents})
        self.flushed.set()
        if self.bulk_error is not None:
            raise self.bulk_error

        items = []
        for header, document in zip(headers, documents):
            if document.get("title") in self.reject_titles:
                items.append(
                    {
                        "index": {
                            "_index": index,
                            "status": 400,
                            "error": {"type": "mapper_parsing_exception", "reason": "failed to parse"},
                        }
                    }
                )
                continue
            with self._lock:
                self._generated += 1
                generated = f"generated-{self._generated}"
            items.append(
                {
                    "index": {
                        "_index": index,
                        "_id": header["index"].get("_id", generated),
                        "status": 201,
                        "result": "created",
                    }
                }
            )
        return {"took": 1, "errors": any("error" in item["index"] for item in items), "items": items}

    @property
    def batch_sizes(self) -> List[int]:
        with self._lock:
            return [len(request["documents"]) for request in self.requests]

    @property
    def documents(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [document for request in self.requests for document in request["documents"]]


@pytest.fixture()
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        paths={"logs_dir": tmp_path / "logs", "quarantine_dir": tmp_path / "quarantine"},
        policies={"bulk": {"flush_interval": 3600, "workers": 2}},
    )


def write_poems(path: Path, poems: List[Dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(poems, ensure_ascii=False), encoding="utf-8")
    return path
