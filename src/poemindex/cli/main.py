"""Typer application exposing the ``index`` and ``ping`` commands."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type

import typer
from rich.table import Table

from poemindex import __version__
from poemindex.utils import configure_logging

from . import indexing
from .common import CLIError, configure_state, console, parse_override

ExceptionHandler = Callable[[BaseException], Any]


class PoemIndexTyper(typer.Typer):
    """Typer app that maps selected exception types to handlers at the top level.

    Handlers are looked up along the exception's MRO, so a handler registered
    for a base class also covers its subclasses. A handler returning an
    exception (typically :class:`typer.Exit`) has it raised in place of the
    original.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._handlers: Dict[Type[BaseException], ExceptionHandler] = {}

    def exception_handler(self, exception_type: Type[BaseException]) -> Callable[[ExceptionHandler], ExceptionHandler]:
        def register(handler: ExceptionHandler) -> ExceptionHandler:
            self._handlers[exception_type] = handler
            return handler

        return register

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().__call__(*args, **kwargs)
        except BaseException as exc:  # pragma: no cover - exercised from the console script
            handler = next((self._handlers[kind] for kind in type(exc).__mro__ if kind in self._handlers), None)
            if handler is None:
                raise
            outcome = handler(exc)
            if isinstance(outcome, BaseException):
                raise outcome from exc
            return outcome


app = PoemIndexTyper(
    add_completion=False,
    help="Convert classical poem collections to simplified script and bulk-load them into Elasticsearch.",
    no_args_is_help=True,
)


@app.exception_handler(CLIError)
def handle_cli_error(exception: BaseException) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {exception}")
    return typer.Exit(code=indexing.EXIT_FATAL)


def _print_version(value: bool) -> None:
    if value:
        console.print(f"poemindex {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Configuration environment layered over the packaged default.yaml.",
        show_default=False,
    ),
    override: List[str] = typer.Option(  # noqa: B008 - Typer callback signature
        [],
        "--override",
        "-o",
        metavar="KEY=VALUE",
        help="Dotted settings override, e.g. policies.bulk.workers=8 (repeatable).",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Identifier stamped on every log line of this invocation.",
        show_default=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level and show the resolved context."),
    version: bool = typer.Option(  # noqa: ARG001 - handled by the eager callback
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Print the installed version and exit.",
    ),
) -> None:
    """Resolve settings and logging once for whichever command runs next."""

    configure_state(
        ctx,
        environment=environment,
        overrides=[parse_override(item) for item in override],
        run_id=run_id,
        verbose=verbose,
    )
    state = ctx.obj
    configure_logging(state.settings, level="DEBUG" if verbose else "INFO", run_id=state.run_id)

    if not verbose:
        return
    es = state.settings.policies.elasticsearch
    bulk = state.settings.policies.bulk
    table = Table(title="Resolved context", show_header=False, box=None)
    for label, value in (
        ("Environment", state.environment),
        ("Run ID", state.run_id),
        ("Elasticsearch", es.url),
        ("Index", es.index),
        ("Bulk", f"{bulk.flush_actions} docs / {bulk.flush_bytes} bytes / {bulk.flush_interval}s x{bulk.workers}"),
        ("Log file", str(state.settings.log_file)),
    ):
        table.add_row(label, value)
    console.print(table)


app.command("index")(indexing.index_command)
app.command("ping")(indexing.ping_command)
