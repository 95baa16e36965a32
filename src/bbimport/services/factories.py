"""Factory helpers that instantiate importer services based on configuration.

These helpers centralize the logic for honoring the settings declared in
:mod:`bbimport.settings` together with command-line overrides, so the CLI
and tests build queues, stores and consumers the same way.
"""

from __future__ import annotations

from bbimport.consumer.consumer import ImportConsumer
from bbimport.observability import get_observability
from bbimport.queue.import_queue import ConnectionFactory, ImportQueue
from bbimport.settings import Settings, get_settings
from bbimport.settings.config import ExistingImportAction
from bbimport.store.import_store import ImportStore
from bbimport.store.sql import session_factory as build_sql_session_factory

DISABLED_FAILURE_QUEUE = "none"


def create_import_queue(
    settings: Settings | None = None,
    *,
    connection: str | None = None,
    queue: str | None = None,
    failure_queue: str | None = None,
    test: bool = False,
    connection_factory: ConnectionFactory | None = None,
) -> ImportQueue:
    """Return an :class:`ImportQueue` configured from settings and overrides.

    Args:
        settings: Settings to use, defaults to :func:`get_settings`.
        connection: Broker URL overriding ``queue.connection``.
        queue: Primary queue name override.
        failure_queue: Failure queue name override; ``"none"`` disables it.
        test: Use non-persistent test queues unless names are overridden.
        connection_factory: Optional coroutine function opening the connection.
    """

    resolved = settings or get_settings()
    queue_settings = resolved.queue

    if test:
        queue_name = queue or queue_settings.test_name
        failure_name: str | None = failure_queue or queue_settings.test_failure_name
    else:
        queue_name = queue or queue_settings.name
        failure_name = failure_queue or queue_settings.failure_name

    if failure_name and failure_name.strip().lower() == DISABLED_FAILURE_QUEUE:
        failure_name = None

    return ImportQueue(
        connection_url=connection or queue_settings.connection,
        is_persistent=not test,
        prefetch_limit=queue_settings.prefetch_limit,
        queue_name=queue_name,
        failure_queue=failure_name,
        grace_periods=queue_settings.close_grace_periods,
        grace_interval=queue_settings.close_grace_interval,
        connection_factory=connection_factory,
        observability=get_observability(component="queue", settings=resolved),
    )


def build_import_store(
    settings: Settings | None = None,
    *,
    existing_import_action: ExistingImportAction | None = None,
) -> ImportStore:
    """Instantiate an :class:`ImportStore` backed by the configured SQL engine."""

    resolved = settings or get_settings()
    return ImportStore(
        session_factory=build_sql_session_factory(settings=resolved),
        existing_import_action=existing_import_action or resolved.importer.existing_import_action,
    )


def build_consumer(
    store: ImportStore,
    settings: Settings | None = None,
    *,
    worker_id: int = 0,
) -> ImportConsumer:
    """Return an :class:`ImportConsumer` persisting through ``store``."""

    resolved = settings or get_settings()
    return ImportConsumer(
        store.import_record,
        retry_limit=resolved.importer.retry_limit,
        retry_delay=resolved.importer.retry_delay_seconds,
        worker_id=worker_id,
        observability=get_observability(component="consumer", settings=resolved),
    )


__all__ = ["DISABLED_FAILURE_QUEUE", "build_consumer", "build_import_store", "create_import_queue"]
