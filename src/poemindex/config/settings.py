"""Layered run configuration: YAML files, environment variables, explicit values."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, MutableMapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .policies import Policies, load_policies, resolve_env_overrides

# Shipped inside the package so installed copies find their defaults.
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "default.yaml"
SETTINGS_ENV_PREFIX = "POEMINDEX_SETTINGS__"


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def _env_layer(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Collect ``POEMINDEX_SETTINGS__A__B=value`` variables into ``{"a": {"b": value}}``."""

    layer: Dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(SETTINGS_ENV_PREFIX):
            continue
        keys = [part.lower() for part in name[len(SETTINGS_ENV_PREFIX) :].split("__") if part]
        if not keys:
            continue
        cursor: MutableMapping[str, Any] = layer
        for key in keys[:-1]:
            cursor = cursor.setdefault(key, {})
        try:
            cursor[keys[-1]] = json.loads(raw)
        except json.JSONDecodeError:
            cursor[keys[-1]] = raw
    return layer


class PathsConfig(BaseModel):
    """Where a run writes its log file and quarantine records.

    Relative paths are resolved against the working directory at load time.
    """

    logs_dir: Path = Field(default=Path("logs"), validate_default=True)
    quarantine_dir: Path = Field(default=Path("quarantine"), validate_default=True)

    @field_validator("logs_dir", "quarantine_dir")
    @classmethod
    def _anchor_relative(cls, value: Path) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else Path.cwd() / path


class Settings(BaseSettings):
    """Resolved configuration for one indexing run.

    Layers, lowest to highest: field defaults, ``default.yaml`` and
    ``<environment>.yaml`` from ``config_dir``, ``POEMINDEX_SETTINGS__``
    variables, ``POEMINDEX_POLICY__`` variables, and values passed to the
    constructor (which is how CLI flags arrive).
    """

    model_config = SettingsConfigDict(
        env_prefix="POEMINDEX_",
        validate_assignment=True,
        extra="ignore",
    )

    environment: Literal["development", "testing", "production"] = "development"
    config_dir: Path = Field(default=DEFAULT_CONFIG_DIR)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    policies: Policies

    @model_validator(mode="before")
    @classmethod
    def _layer_sources(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        explicit = {key: value for key, value in values.items() if value is not None}
        config_dir = Path(explicit.get("config_dir", DEFAULT_CONFIG_DIR))
        environment = explicit.get("environment") or os.getenv("POEMINDEX_ENV", "development")

        layered: Dict[str, Any] = {}
        for layer in (
            _read_yaml(config_dir / "default.yaml"),
            _read_yaml(config_dir / f"{environment}.yaml"),
            _env_layer(os.environ),
        ):
            layered = _merge(layered, layer)

        explicit_policies = explicit.pop("policies", None)
        if isinstance(explicit_policies, Policies):
            policies = explicit_policies
        else:
            from_env = resolve_env_overrides(_merge({}, layered.get("policies") or {}))
            policies = load_policies(_merge(from_env, explicit_policies or {}), apply_env=False)

        layered = _merge(layered, explicit)
        layered["environment"] = environment
        layered["policies"] = policies
        return layered

    @property
    def policy_version(self) -> str:
        return self.policies.policy_version

    @property
    def log_file(self) -> Path:
        return self.paths.logs_dir / "poemindex.log"

    @property
    def quarantine_file(self) -> Path:
        return self.paths.quarantine_dir / "failed_files.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings built from files and environment only, cached for the process."""

    return Settings()


__all__ = ["DEFAULT_CONFIG_FILE", "PathsConfig", "Settings", "get_settings"]
