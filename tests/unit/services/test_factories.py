"""Tests for queue, store and consumer factories."""

from __future__ import annotations

import pytest

from bbimport.services.factories import build_consumer, build_import_store, create_import_queue
from bbimport.settings.config import Settings


def _settings(tmp_path, **overrides) -> Settings:
    settings = Settings(env="test")
    storage = settings.storage.model_copy(update={"sqlite_path": tmp_path / "imports.db"})
    return settings.model_copy(update={"storage": storage, **overrides})


def test_create_import_queue_uses_configured_names(tmp_path) -> None:
    queue = create_import_queue(_settings(tmp_path))

    assert queue.queue_name == "bookbrainz-import"
    assert queue.failure_queue_name == "bookbrainz-import-failures"
    assert queue.is_persistent is True
    assert queue.prefetch_limit == 5


def test_test_mode_switches_to_non_persistent_test_queues(tmp_path) -> None:
    queue = create_import_queue(_settings(tmp_path), test=True)

    assert queue.is_persistent is False
    assert queue.queue_name == "bookbrainz-import-test"
    assert queue.failure_queue_name == "bookbrainz-import-test-failures"


@pytest.mark.parametrize("failure_queue", ["none", "NONE"])
def test_failure_queue_can_be_disabled(tmp_path, failure_queue: str) -> None:
    queue = create_import_queue(_settings(tmp_path), failure_queue=failure_queue, test=True)

    assert queue.failure_queue_name is None


def test_explicit_overrides_win_in_test_mode(tmp_path) -> None:
    queue = create_import_queue(
        _settings(tmp_path),
        connection="amqp://other",
        queue="my-queue",
        failure_queue="my-failures",
        test=True,
    )

    assert queue.connection_url == "amqp://other"
    assert queue.queue_name == "my-queue"
    assert queue.failure_queue_name == "my-failures"


def test_build_import_store_and_consumer(tmp_path) -> None:
    settings = _settings(tmp_path)

    store = build_import_store(settings, existing_import_action="update pending")
    consumer = build_consumer(store, settings, worker_id=3)

    assert store.existing_import_action == "update pending"
    assert (tmp_path / "imports.db").exists()
    assert consumer.retry_limit == settings.importer.retry_limit
    assert consumer.worker_id == 3
