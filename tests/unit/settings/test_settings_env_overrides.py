"""Unit tests covering environment variable overrides for settings."""

from __future__ import annotations

import textwrap

import pytest

from bbimport.settings.config import PROJECT_ROOT, reload_settings


@pytest.fixture(autouse=True)
def _restore_settings():
    yield
    reload_settings()


def _clear_env(monkeypatch: object, *names: str) -> None:
    for name in names:
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_default_config(monkeypatch: object) -> None:
    _clear_env(monkeypatch, "BBIMPORT_SETTINGS_FILE", "BBIMPORT_IMPORTER__RETRY_LIMIT", "BBIMPORT_QUEUE__NAME")

    settings = reload_settings(env="test")

    assert settings.queue.name == "bookbrainz-import"
    assert settings.queue.failure_name == "bookbrainz-import-failures"
    assert settings.queue.prefetch_limit == 5
    assert settings.importer.retry_limit == 3
    assert settings.importer.existing_import_action == "skip"
    assert settings.storage.sqlite_path.is_absolute()


def test_nested_env_overrides(monkeypatch: object) -> None:
    monkeypatch.setenv("BBIMPORT_IMPORTER__RETRY_LIMIT", "5")
    monkeypatch.setenv("BBIMPORT_QUEUE__CONNECTION", "amqp://broker:5672")
    monkeypatch.setenv("BBIMPORT_IMPORTER__EXISTING_IMPORT_ACTION", "update pending")

    settings = reload_settings(env="test")

    assert settings.importer.retry_limit == 5
    assert settings.queue.connection == "amqp://broker:5672"
    assert settings.importer.existing_import_action == "update pending"


def test_settings_file_override(monkeypatch: object, tmp_path) -> None:
    config_file = tmp_path / "settings.toml"
    config_file.write_text(
        textwrap.dedent(
            """
            [queue]
            name = "custom-import"
            prefetch_limit = 2

            [runtime]
            log_level = "DEBUG"
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("BBIMPORT_SETTINGS_FILE", str(config_file))
    _clear_env(monkeypatch, "BBIMPORT_QUEUE__NAME", "BBIMPORT_QUEUE__PREFETCH_LIMIT", "BBIMPORT_RUNTIME__LOG_LEVEL")

    settings = reload_settings(env="test")

    assert settings.queue.name == "custom-import"
    assert settings.queue.prefetch_limit == 2
    assert settings.log_level == "DEBUG"
    assert config_file in settings.config_files
    assert settings.project_root == PROJECT_ROOT
