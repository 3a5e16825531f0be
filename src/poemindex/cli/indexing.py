"""Indexing commands for the poemindex CLI."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import typer
from rich.table import Table

from poemindex.errors import PoemIndexError
from poemindex.pipeline import RunSummary, index_directory
from poemindex.search import build_client, check_connectivity
from poemindex.utils import format_count, get_logger

from .common import (
    CLIError,
    connection_overrides,
    console,
    get_state,
    merge_overrides,
    resolve_directory,
    resolve_settings,
)

_LOGGER = get_logger(module=__name__)

EXIT_DOCUMENTS_FAILED = 1
EXIT_FATAL = 2


def _bulk_overrides(
    *,
    workers: Optional[int],
    batch_size: Optional[int],
    flush_bytes: Optional[int],
    flush_interval: Optional[float],
    stable_ids: bool,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "workers": workers,
        "flush_actions": batch_size,
        "flush_bytes": flush_bytes,
        "flush_interval": flush_interval,
    }
    if stable_ids:
        values["document_ids"] = "content_hash"
    provided = {key: value for key, value in values.items() if value is not None}
    return {"policies": {"bulk": provided}} if provided else {}


def _fatal(message: str) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {message}")
    return typer.Exit(code=EXIT_FATAL)


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """Turn Ctrl-C into a cancellation request so pending batches are drained."""

    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum, frame) -> None:  # noqa: ARG001 - signal handler signature
        if event.is_set():
            raise KeyboardInterrupt
        console.print("[yellow]Interrupt received; finishing in-flight batches (Ctrl-C again to abort)[/yellow]")
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)


def render_summary(summary: RunSummary) -> None:
    table = Table(title="Indexing summary", show_header=False, box=None)
    table.add_row("Documents indexed", format_count(summary.flushed))
    table.add_row("Documents failed", format_count(summary.failed))
    table.add_row("Files processed", format_count(summary.files_processed))
    table.add_row("Files failed", format_count(summary.files_failed))
    table.add_row("Files excluded", format_count(summary.files_excluded))
    table.add_row("Duration", f"{summary.duration_seconds:.3f}s")
    table.add_row("Throughput", f"{format_count(summary.docs_per_second)} docs/sec")
    if summary.cancelled:
        table.add_row("Status", "[yellow]cancelled[/yellow]")
    console.print(table)
    style = "green" if summary.succeeded else "red"
    console.print(f"[{style}]{summary.describe()}[/{style}]")


def index_command(
    ctx: typer.Context,
    directory: Path = typer.Option(Path("."), "--dir", "-d", help="Directory tree containing poem JSON files."),
    es_url: Optional[str] = typer.Option(None, "--es", help="Elasticsearch URL.", show_default=False),
    username: Optional[str] = typer.Option(None, "--user", help="Elasticsearch username.", show_default=False),
    password: Optional[str] = typer.Option(
        None, "--pass", "--password", help="Elasticsearch password.", show_default=False
    ),
    ca_cert: Optional[Path] = typer.Option(
        None, "--ca-cert", help="CA certificate used to verify a TLS cluster.", show_default=False
    ),
    index: Optional[str] = typer.Option(None, "--index", help="Target index name.", show_default=False),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Concurrent bulk workers.", show_default=False),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", min=1, help="Documents per bulk request.", show_default=False
    ),
    flush_bytes: Optional[int] = typer.Option(
        None, "--flush-bytes", min=1, help="Encoded bytes per bulk request.", show_default=False
    ),
    flush_interval: Optional[float] = typer.Option(
        None, "--flush-interval", min=0.001, help="Seconds between time-based flushes.", show_default=False
    ),
    stable_ids: bool = typer.Option(
        False,
        "--stable-ids",
        help="Derive document IDs from title, author and verse so re-runs overwrite instead of duplicating.",
    ),
) -> None:
    """Walk DIR, convert poems to simplified script and bulk-index them."""

    state = get_state(ctx)
    try:
        root = resolve_directory(directory)
        cli_overrides = merge_overrides(
            [
                state.overrides,
                connection_overrides(url=es_url, username=username, password=password, ca_cert=ca_cert, index=index),
                _bulk_overrides(
                    workers=workers,
                    batch_size=batch_size,
                    flush_bytes=flush_bytes,
                    flush_interval=flush_interval,
                    stable_ids=stable_ids,
                ),
            ]
        )
        settings = resolve_settings(state.environment, cli_overrides)
    except CLIError as exc:
        raise _fatal(str(exc)) from exc

    try:
        with _cancel_on_interrupt() as cancel_event:
            summary = index_directory(root, settings, cancel_event=cancel_event)
    except PoemIndexError as exc:
        _LOGGER.error("Indexing aborted", error=str(exc))
        raise _fatal(str(exc)) from exc

    render_summary(summary)
    if not summary.succeeded:
        raise typer.Exit(code=EXIT_DOCUMENTS_FAILED)


def ping_command(
    ctx: typer.Context,
    es_url: Optional[str] = typer.Option(None, "--es", help="Elasticsearch URL.", show_default=False),
    username: Optional[str] = typer.Option(None, "--user", help="Elasticsearch username.", show_default=False),
    password: Optional[str] = typer.Option(
        None, "--pass", "--password", help="Elasticsearch password.", show_default=False
    ),
    ca_cert: Optional[Path] = typer.Option(
        None, "--ca-cert", help="CA certificate used to verify a TLS cluster.", show_default=False
    ),
) -> None:
    """Check that the configured cluster is reachable."""

    state = get_state(ctx)
    try:
        settings = resolve_settings(
            state.environment,
            merge_overrides(
                [
                    state.overrides,
                    connection_overrides(url=es_url, username=username, password=password, ca_cert=ca_cert),
                ]
            ),
        )
        info = check_connectivity(build_client(settings.policies.elasticsearch))
    except (CLIError, PoemIndexError) as exc:
        raise _fatal(str(exc)) from exc

    version = (info.get("version") or {}).get("number", "unknown")
    console.print(
        f"[green]Elasticsearch[/green] {settings.policies.elasticsearch.url} "
        f"cluster={info.get('cluster_name', 'unknown')} version={version}"
    )
