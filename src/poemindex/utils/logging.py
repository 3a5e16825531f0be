"""Loguru setup shared by the CLI and the indexing pipeline."""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from loguru import logger

from ..config.settings import Settings, get_settings

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <8}</level> "
    "<cyan>[{extra[run_id]}:{extra[step]}]</cyan> "
    "{message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {level: <8} | {extra[run_id]} | {extra[step]} | {name}:{line} | {message} | {extra}"

_DEFAULT_EXTRA: Dict[str, Any] = {"run_id": "-", "step": "-"}


def configure_logging(
    settings: Settings | None = None,
    level: str = "INFO",
    *,
    run_id: str | None = None,
) -> None:
    """Route log records to stderr and to the rotating run log.

    Worker threads of the bulk sink log concurrently, so both sinks are
    enqueued. Every record carries ``run_id`` and ``step`` so lines from
    separate runs can be told apart in the shared log file.
    """

    cfg = settings or get_settings()
    cfg.log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(extra={**_DEFAULT_EXTRA, "run_id": run_id or "-"})
    logger.add(
        sys.stderr,
        level=level,
        format=_CONSOLE_FORMAT,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )
    logger.add(
        cfg.log_file,
        level="DEBUG",
        format=_FILE_FORMAT,
        rotation="10 MB",
        retention="14 days",
        encoding="utf-8",
        enqueue=True,
    )


def get_logger(**context: Any):
    return logger.bind(**context)


@contextmanager
def logging_context(**context: Any) -> Iterator[Any]:
    """Bind ``context`` to records emitted by the current thread inside the block."""

    with logger.contextualize(**context):
        yield logger


@contextmanager
def log_timing(step: str, *, logger_=logger) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        logger_.debug("Step finished", step=step, seconds=round(time.perf_counter() - start, 3))


__all__ = ["configure_logging", "get_logger", "logging_context", "log_timing"]
