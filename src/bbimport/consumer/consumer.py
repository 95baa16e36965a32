"""Consumer which validates queued entities and persists them with bounded retries.

Per entity the consumer runs a small state machine::

    Received -> Validating -> ValidationFailed                  (rejected)
                           -> Persisting -> Persisted           (accepted)
                                         -> TransactionFailed   (retry while attempts remain)

Unknown types and invalid data are rejected immediately since they would
fail again on every retry. Only persistence failures consume attempts.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Mapping

from bbimport.consumer.errors import ConsumeResult, ImportErrorType
from bbimport.consumer.validators import validate as validate_entity
from bbimport.core.exceptions import TransactionError, ValidationError
from bbimport.models.entity import EntityType, QueuedEntity
from bbimport.observability import Observability
from bbimport.queue.import_queue import ImportQueue

LOGGER = logging.getLogger(__name__)

ImportRecord = Callable[[QueuedEntity], Any]
EntityValidator = Callable[[EntityType, Any], bool]


class ImportConsumer:
    """Turn delivered entities into pending imports.

    Args:
        import_record: Persistence operation taking the entity and returning
            an object (or mapping) with ``status`` and ``import_id``. It may be
            a coroutine function; plain functions run in a worker thread.
            It raises on failure, preferably with :class:`TransactionError`.
        retry_limit: Total number of persistence attempts per entity.
        retry_delay: Seconds to wait before the first retry, doubled for each
            further retry. ``0`` retries immediately.
        validator: Structural validator taking the entity type and data.
        worker_id: Identifier used in log messages.
        logger: Logger for import outcomes.
        observability: Optional metrics sink.
    """

    def __init__(
        self,
        import_record: ImportRecord,
        *,
        retry_limit: int = 3,
        retry_delay: float = 0.0,
        validator: EntityValidator = validate_entity,
        worker_id: int = 0,
        logger: logging.Logger | None = None,
        observability: Observability | None = None,
    ) -> None:
        self._import_record = import_record
        self.retry_limit = max(int(retry_limit), 1)
        self.retry_delay = max(float(retry_delay), 0.0)
        self._validator = validator
        self.worker_id = worker_id
        self._logger = logger or LOGGER
        self._observability = observability

    def check_record(self, entity: QueuedEntity) -> ConsumeResult | None:
        """Return a rejection for unsupported or invalid entities, ``None`` if importable."""

        entity_type = entity.supported_type
        if entity_type is None:
            return ConsumeResult(
                ImportErrorType.RECORD_ENTITY_NOT_FOUND,
                f"unsupported entity type {entity.entity_type!r}",
            )
        try:
            valid = self._validator(entity_type, entity.data.as_dict())
        except ValidationError as exc:
            return ConsumeResult(ImportErrorType.INVALID_RECORD, f"invalid {entity_type.value} data: {exc}")
        if not valid:
            return ConsumeResult(ImportErrorType.INVALID_RECORD, f"invalid {entity_type.value} data")
        return None

    async def persist(self, entity: QueuedEntity) -> ConsumeResult:
        """Run a single persistence attempt and classify its outcome."""

        try:
            outcome = await self._call_import_record(entity)
        except TransactionError as exc:
            self._logger.warning("[TRANSACTION::%s] %s", entity.entity_type, exc)
            return ConsumeResult(ImportErrorType.TRANSACTION_ERROR, str(exc))
        except Exception as exc:
            self._logger.exception("[TRANSACTION::%s] Unexpected error while importing %s", entity.entity_type, entity)
            return ConsumeResult(ImportErrorType.TRANSACTION_ERROR, repr(exc))

        status, import_id = _unpack_import_result(outcome)
        return ConsumeResult(ImportErrorType.NONE, status=status, import_id=import_id)

    async def _call_import_record(self, entity: QueuedEntity) -> Any:
        if inspect.iscoroutinefunction(self._import_record):
            return await self._import_record(entity)
        result = await asyncio.to_thread(self._import_record, entity)
        if inspect.isawaitable(result):
            return await result
        return result

    async def handle_entity(self, entity: QueuedEntity) -> bool:
        """Import ``entity``; returns True only when it has been persisted."""

        prefix = f"[CONSUMER::{self.worker_id}]"
        self._logger.debug("%s Received %s", prefix, entity)

        rejection = self.check_record(entity)
        if rejection is not None:
            self._logger.warning("%s %s :: %s [skipping %s]", prefix, rejection.error_type.name, rejection.message, entity)
            self._reject(entity, rejection)
            return False

        attempts_left = self.retry_limit
        delay = self.retry_delay
        while True:
            result = await self.persist(entity)
            if result.ok:
                self._logger.info(
                    "%s Imported %s: status=%s import_id=%s",
                    prefix,
                    entity,
                    result.status,
                    result.import_id,
                )
                self._count("import.success", result.error_type)
                return True

            attempts_left -= 1
            if attempts_left <= 0 or not result.error_type.retryable:
                self._logger.error(
                    "%s %s :: %s [giving up on %s after %s attempt(s)]\n%s",
                    prefix,
                    result.error_type.name,
                    result.message,
                    entity,
                    self.retry_limit - attempts_left,
                    entity.to_json().decode("utf-8"),
                )
                self._reject(entity, result)
                return False

            self._logger.warning(
                "%s %s :: %s [retry, %s attempts left]",
                prefix,
                result.error_type.name,
                result.message,
                attempts_left,
            )
            if delay:
                await asyncio.sleep(delay)
                delay *= 2

    def _count(self, metric: str, error_type: ImportErrorType) -> None:
        if self._observability is not None:
            self._observability.increment(metric, tags={"error_type": error_type.name})

    def _reject(self, entity: QueuedEntity, result: ConsumeResult) -> None:
        self._count("import.failure", result.error_type)
        if self._observability is not None:
            self._observability.emit_event(
                "import.rejected",
                worker_id=self.worker_id,
                entity_type=entity.entity_type,
                origin_id=entity.origin_id,
                source=entity.source,
                error_type=result.error_type.name,
                message=result.message,
            )


def _unpack_import_result(outcome: Any) -> tuple[str | None, Any]:
    if isinstance(outcome, Mapping):
        import_id = outcome.get("import_id", outcome.get("importId", outcome.get("id")))
        return outcome.get("status"), import_id
    return getattr(outcome, "status", None), getattr(outcome, "import_id", None)


async def consume_import_queue(
    queue: ImportQueue,
    consumer: ImportConsumer,
    *,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Register ``consumer`` on ``queue`` and wait until ``stop_event`` is set."""

    LOGGER.info("[WORKER::%s] Running consumer on '%s'", consumer.worker_id, queue.queue_name)
    await queue.on_data(consumer.handle_entity)
    LOGGER.debug("Consumer registered, waiting for messages...")
    await (stop_event or asyncio.Event()).wait()


__all__ = ["ImportConsumer", "consume_import_queue"]
