"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from poemindex.config.policies import BulkPolicy, ElasticsearchSettings, Policies, WalkPolicy, load_policies
from poemindex.config.settings import DEFAULT_CONFIG_FILE, Settings


def test_default_yaml_matches_model_defaults() -> None:
    raw = yaml.safe_load(DEFAULT_CONFIG_FILE.read_text(encoding="utf-8"))

    policies = load_policies(raw["policies"])

    assert policies == Policies()


def test_settings_load_defaults_from_yaml() -> None:
    settings = Settings()

    assert settings.policies.elasticsearch.index == "poems"
    assert settings.policies.bulk.flush_actions == 1000
    assert settings.policies.walk.excluded_dirs == ("error",)
    assert settings.log_file.name == "poemindex.log"


def test_environment_yaml_overrides_default(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        yaml.safe_dump({"policies": {"elasticsearch": {"index": "poems", "url": "http://es:9200"}}}),
        encoding="utf-8",
    )
    (tmp_path / "testing.yaml").write_text(
        yaml.safe_dump({"policies": {"elasticsearch": {"index": "poems-test"}}}),
        encoding="utf-8",
    )

    settings = Settings(config_dir=tmp_path, environment="testing")

    assert settings.policies.elasticsearch.index == "poems-test"
    assert settings.policies.elasticsearch.url == "http://es:9200"


def test_explicit_values_take_precedence(tmp_path: Path) -> None:
    settings = Settings(
        config_dir=tmp_path,
        policies={"bulk": {"workers": 8}, "elasticsearch": {"url": "https://search.example:9200/"}},
    )

    assert settings.policies.bulk.workers == 8
    assert settings.policies.elasticsearch.url == "https://search.example:9200"


def test_nested_settings_env_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("POEMINDEX_SETTINGS__POLICIES__BULK__WORKERS", "2")
    monkeypatch.setenv("POEMINDEX_SETTINGS__PATHS__LOGS_DIR", str(tmp_path / "logs"))

    settings = Settings()

    assert settings.policies.bulk.workers == 2
    assert settings.paths.logs_dir == tmp_path / "logs"


def test_policy_env_override_decodes_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POEMINDEX_POLICY__WALK__EXCLUDED_DIRS", '["error", "drafts"]')
    monkeypatch.setenv("POEMINDEX_POLICY__BULK__FLUSH_INTERVAL", "5.5")

    policies = load_policies({})

    assert policies.walk.excluded_dirs == ("error", "drafts")
    assert policies.bulk.flush_interval == 5.5


def test_policy_env_override_rejects_non_mapping_segment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POEMINDEX_POLICY__POLICY_VERSION__NESTED", "x")

    with pytest.raises(ValueError):
        load_policies({"policy_version": "v1"})


def test_load_policies_from_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "policies.yaml"
    path.write_text(yaml.safe_dump({"bulk": {"flush_actions": 10}}), encoding="utf-8")

    assert load_policies(path).bulk.flush_actions == 10


@pytest.mark.parametrize(
    "payload",
    [
        {"flush_actions": 0},
        {"flush_bytes": 0},
        {"flush_interval": 0},
        {"workers": 0},
        {"document_ids": "uuid"},
    ],
)
def test_bulk_policy_bounds(payload: dict) -> None:
    with pytest.raises(ValidationError):
        BulkPolicy(**payload)


def test_elasticsearch_url_requires_http_scheme() -> None:
    with pytest.raises(ValidationError):
        ElasticsearchSettings(url="localhost:9200")


def test_walk_extension_gets_leading_dot() -> None:
    assert WalkPolicy(extension="json").extension == ".json"


def test_relative_paths_resolve_against_working_directory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    settings = Settings(paths={"logs_dir": "var/logs"})

    assert settings.paths.logs_dir == tmp_path / "var" / "logs"
    assert settings.paths.quarantine_dir == tmp_path / "quarantine"


def test_default_configuration_ships_with_the_package() -> None:
    import poemindex.config

    assert DEFAULT_CONFIG_FILE.is_file()
    assert DEFAULT_CONFIG_FILE.parent == Path(poemindex.config.__file__).resolve().parent


def test_explicit_values_beat_policy_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POEMINDEX_POLICY__ELASTICSEARCH__URL", "http://env-host:9200")
    monkeypatch.setenv("POEMINDEX_POLICY__ELASTICSEARCH__INDEX", "poems-env")

    settings = Settings(policies={"elasticsearch": {"url": "https://flag-host:9200"}})

    assert settings.policies.elasticsearch.url == "https://flag-host:9200"
    assert settings.policies.elasticsearch.index == "poems-env"


def test_policy_env_overrides_beat_yaml_and_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(yaml.safe_dump({"policies": {"bulk": {"workers": 3}}}), encoding="utf-8")
    monkeypatch.setenv("POEMINDEX_SETTINGS__POLICIES__BULK__WORKERS", "4")
    monkeypatch.setenv("POEMINDEX_POLICY__BULK__WORKERS", "5")

    settings = Settings(config_dir=tmp_path)

    assert settings.policies.bulk.workers == 5
