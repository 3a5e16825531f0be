"""Policy models describing how the indexing pipeline behaves."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Literal, MutableMapping, Sequence

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ElasticsearchSettings(BaseModel):
    """Connection settings for the target search cluster."""

    url: str = Field(default="http://localhost:9200", min_length=1)
    username: str | None = Field(default="elastic")
    password: str | None = Field(default=None)
    ca_certs: Path | None = Field(
        default=None,
        description="CA bundle used to verify the cluster certificate over TLS.",
    )
    index: str = Field(default="poems", min_length=1)
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("elasticsearch.url must use http or https scheme")
        return value.rstrip("/")


class WalkPolicy(BaseModel):
    """Directory traversal rules."""

    extension: str = Field(default=".json", min_length=1)
    excluded_files: tuple[str, ...] = Field(default=("唐诗补录.json", "表面结构字.json"))
    excluded_dirs: tuple[str, ...] = Field(default=("error",))

    @field_validator("extension")
    @classmethod
    def _leading_dot(cls, value: str) -> str:
        return value if value.startswith(".") else f".{value}"


class LoaderPolicy(BaseModel):
    """File decoding options."""

    quarantine_enabled: bool = Field(default=False)


class NormalizationPolicy(BaseModel):
    """Script conversion applied to poem text fields."""

    conversion: str = Field(default="t2s", min_length=1, description="OpenCC conversion name.")
    normalize_optional_fields: bool = Field(
        default=False,
        description="Also convert the optional name/description fields.",
    )


class BulkPolicy(BaseModel):
    """Batching thresholds for the bulk sink; the first trigger reached wins."""

    flush_actions: int = Field(default=1000, ge=1)
    flush_bytes: int = Field(default=2 << 20, ge=1)
    flush_interval: float = Field(default=30.0, gt=0)
    workers: int = Field(default=4, ge=1)
    queue_size: int = Field(default=8, ge=1)
    document_ids: Literal["none", "content_hash"] = Field(default="none")


class Policies(BaseModel):
    """Root policy container."""

    policy_version: str = Field(default="2024-06-01")
    elasticsearch: ElasticsearchSettings = Field(default_factory=ElasticsearchSettings)
    walk: WalkPolicy = Field(default_factory=WalkPolicy)
    loader: LoaderPolicy = Field(default_factory=LoaderPolicy)
    normalization: NormalizationPolicy = Field(default_factory=NormalizationPolicy)
    bulk: BulkPolicy = Field(default_factory=BulkPolicy)

    @model_validator(mode="after")
    def _validate_policy_version(self) -> "Policies":
        if not self.policy_version:
            raise ValueError("policy_version must be provided")
        return self


def _ensure_nested_mapping(
    cursor: MutableMapping[str, Any], part: str, full_path: Sequence[str]
) -> MutableMapping[str, Any]:
    existing = cursor.get(part)
    if existing is None:
        next_cursor: MutableMapping[str, Any] = {}
        cursor[part] = next_cursor
        return next_cursor
    if not isinstance(existing, MutableMapping):
        raise ValueError(
            f"Cannot override policy path '{'/'.join(full_path)}' because segment "
            f"'{part}' resolves to a non-mapping value"
        )
    return existing


def resolve_env_overrides(raw: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Apply POEMINDEX_POLICY__ environment variable overrides.

    Variable names are split on double underscores into a lowercased path.
    Values are JSON-decoded when possible (``true`` -> ``True``, ``[..]`` ->
    list), otherwise kept as strings.
    """

    prefix = "POEMINDEX_POLICY__"
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if not path:
            continue
        cursor = raw
        for part in path[:-1]:
            cursor = _ensure_nested_mapping(cursor, part, path)
        try:
            cursor[path[-1]] = json.loads(value)
        except json.JSONDecodeError:
            cursor[path[-1]] = value
    return raw


def load_policies(source: Path | Dict[str, Any], *, apply_env: bool = True) -> Policies:
    """Load policies from a dictionary or YAML file.

    ``POEMINDEX_POLICY__`` variables are applied on top unless *apply_env* is
    false, which callers use once they have layered the environment themselves.
    """

    if isinstance(source, Path):
        with source.open("r", encoding="utf-8") as handle:
            raw: Dict[str, Any] = yaml.safe_load(handle) or {}
    else:
        raw = json.loads(json.dumps(source, default=str))
    return Policies.model_validate(resolve_env_overrides(raw) if apply_env else raw)


__all__ = [
    "BulkPolicy",
    "ElasticsearchSettings",
    "LoaderPolicy",
    "NormalizationPolicy",
    "Policies",
    "WalkPolicy",
    "load_policies",
    "resolve_env_overrides",
]
