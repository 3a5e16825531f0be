"""Settings resolution and shared state for the poemindex CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional
from uuid import uuid4

import typer
from pydantic import ValidationError
from rich.console import Console

from poemindex.config.settings import Settings

console = Console()


class CLIError(RuntimeError):
    """A problem with the invocation itself; shown without a traceback."""


@dataclass(slots=True)
class CLIState:
    """Per-invocation context stored on ``ctx.obj`` by the root callback."""

    settings: Settings
    environment: str
    run_id: str
    verbose: bool = False
    overrides: Dict[str, Any] = field(default_factory=dict)


def parse_override(argument: str) -> Dict[str, Any]:
    """Turn ``policies.bulk.workers=8`` into ``{"policies": {"bulk": {"workers": 8}}}``.

    The value is JSON-decoded when it parses (numbers, booleans, lists) and
    kept as a plain string otherwise.
    """

    key, sep, raw = argument.partition("=")
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not sep:
        raise typer.BadParameter(f"Expected dotted.key=value, got {argument!r}")
    if not segments:
        raise typer.BadParameter("Override keys must not be empty")
    try:
        value: Any = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    for segment in reversed(segments):
        value = {segment: value}
    return value


def merge_overrides(overrides: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Deep-merge override mappings; later entries win on conflicting leaves."""

    def merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
        for key, value in extra.items():
            if isinstance(value, Mapping):
                current = base.get(key)
                base[key] = merge(dict(current) if isinstance(current, Mapping) else {}, value)
            else:
                base[key] = value
        return base

    result: Dict[str, Any] = {}
    for override in overrides:
        merge(result, override)
    return result


def connection_overrides(
    *,
    url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    ca_cert: Optional[Path] = None,
    index: Optional[str] = None,
) -> Dict[str, Any]:
    """Map connection flags onto ``policies.elasticsearch``; unset flags are left out."""

    provided = {
        key: value
        for key, value in (
            ("url", url),
            ("username", username),
            ("password", password),
            ("ca_certs", str(ca_cert) if ca_cert is not None else None),
            ("index", index),
        )
        if value is not None
    }
    return {"policies": {"elasticsearch": provided}} if provided else {}


def _describe_validation_error(exc: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    ]
    return "; ".join(problems)


def resolve_settings(environment: str | None, overrides: Mapping[str, Any]) -> Settings:
    """Build :class:`Settings` from YAML, environment and CLI overrides."""

    payload = dict(overrides)
    if environment:
        payload["environment"] = environment
    try:
        return Settings(**payload)
    except ValidationError as exc:
        raise CLIError(f"Invalid configuration: {_describe_validation_error(exc)}") from exc
    except ValueError as exc:
        raise CLIError(f"Invalid configuration: {exc}") from exc


def configure_state(
    ctx: typer.Context,
    *,
    environment: str | None,
    overrides: Iterable[Mapping[str, Any]],
    run_id: str | None,
    verbose: bool,
) -> CLIState:
    merged = merge_overrides(overrides)
    settings = resolve_settings(environment, merged)
    state = CLIState(
        settings=settings,
        environment=settings.environment,
        run_id=run_id or f"index-{uuid4().hex[:8]}",
        verbose=verbose,
        overrides=merged,
    )
    ctx.obj = state
    return state


def get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_object(CLIState)
    if state is None:
        raise CLIError("CLI state is missing; commands must run through the poemindex app")
    return state


def resolve_directory(path: str | Path) -> Path:
    """Expand and resolve a directory argument, failing early when it is absent."""

    target = Path(path).expanduser().resolve()
    if not target.is_dir():
        raise CLIError(f"Directory does not exist: {target}")
    return target


__all__ = [
    "CLIError",
    "CLIState",
    "configure_state",
    "connection_overrides",
    "console",
    "get_state",
    "merge_overrides",
    "parse_override",
    "resolve_directory",
    "resolve_settings",
]
