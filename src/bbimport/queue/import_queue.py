"""Durable AMQP queue which carries parsed entities from producers to consumers.

Delivery is at-least-once across process crashes: a message is acknowledged
only after the registered consumer function has resolved. Application-level
rejections are never redelivered by the broker; they are acknowledged and
their raw payload is copied to the failure queue (when configured), because
an entity which failed deterministically would otherwise loop forever.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List

import aio_pika
from aio_pika import DeliveryMode, Message
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractIncomingMessage, AbstractQueue
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError, DeliveryError, PublishError
from pamqp.commands import Basic

from bbimport.core.exceptions import QueueNotOpenError
from bbimport.models.entity import QueuedEntity
from bbimport.observability import Observability

LOGGER = logging.getLogger(__name__)

DEFAULT_CONNECTION_URL = "amqp://localhost"
DEFAULT_QUEUE_NAME = "bookbrainz-import"
DEFAULT_FAILURE_QUEUE_NAME = "bookbrainz-import-failures"

EntityConsumer = Callable[[QueuedEntity], Awaitable[bool]]
ConnectionFactory = Callable[[str], Awaitable[AbstractConnection]]


@dataclass(slots=True)
class QueueInfo:
    """Broker-side state of a queue as reported by its declaration."""

    name: str
    message_count: int
    consumer_count: int


class ImportQueue:
    """Queue which stores parsed entities that have to be imported.

    Args:
        connection_url: AMQP broker address.
        is_persistent: Declare durable queues and publish persistent messages.
            The broker refuses to redeclare an existing queue with another
            durability, so non-persistent use needs a distinct queue name.
        prefetch_limit: Maximum number of delivered but unacknowledged
            messages, i.e. entities concurrently in flight.
        queue_name: Name of the primary queue.
        failure_queue: Name of the queue receiving payloads of failed imports;
            a false value discards them instead.
        grace_periods: Number of polling waits ``close()`` spends on pending
            messages before force-closing.
        grace_interval: Seconds per polling wait.
        logger: Logger used for queue events.
        connection_factory: Coroutine function opening the broker connection.
        observability: Optional metrics sink for skipped messages.
    """

    def __init__(
        self,
        *,
        connection_url: str | None = None,
        is_persistent: bool = True,
        prefetch_limit: int = 5,
        queue_name: str | None = None,
        failure_queue: str | None | bool = DEFAULT_FAILURE_QUEUE_NAME,
        grace_periods: int = 10,
        grace_interval: float = 0.2,
        logger: logging.Logger | None = None,
        connection_factory: ConnectionFactory | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.connection_url = connection_url or DEFAULT_CONNECTION_URL
        self.is_persistent = is_persistent
        self.prefetch_limit = prefetch_limit
        self.queue_name = queue_name or DEFAULT_QUEUE_NAME
        self.failure_queue_name: str | None = failure_queue if isinstance(failure_queue, str) and failure_queue else None
        self.grace_periods = grace_periods
        self.grace_interval = grace_interval
        self._logger = logger or LOGGER
        self._connection_factory = connection_factory or aio_pika.connect
        self._observability = observability

        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._queue: AbstractQueue | None = None
        self._consumer_tag: str | None = None

        self.consumed_messages = 0
        self.pending_messages = 0
        self.processed_messages = 0

    @property
    def delivery_mode(self) -> DeliveryMode:
        return DeliveryMode.PERSISTENT if self.is_persistent else DeliveryMode.NOT_PERSISTENT

    def _require_channel(self) -> AbstractChannel:
        if self._channel is None or self._queue is None:
            raise QueueNotOpenError(f"import queue '{self.queue_name}' has not been opened")
        return self._channel

    async def open(self) -> List[QueueInfo]:
        """Connect to the broker and declare the primary (and failure) queue.

        Connection errors propagate to the caller.
        """

        self._connection = await self._connection_factory(self.connection_url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=self.prefetch_limit)

        self._queue = await self._channel.declare_queue(self.queue_name, durable=self.is_persistent)
        queues = [self._queue]
        if self.failure_queue_name:
            queues.append(await self._channel.declare_queue(self.failure_queue_name, durable=self.is_persistent))

        return [_queue_info(queue) for queue in queues]

    async def close(self) -> bool:
        """Wait for pending messages (bounded), then close channel and connection.

        Returns:
            Whether a connection had been established.
        """

        if self.consumed_messages:
            self._logger.info("%s/%s messages have been processed", self.processed_messages, self.consumed_messages)

        if self._consumer_tag is not None and self._queue is not None and not self._channel.is_closed:
            # no further deliveries while pending ones drain; unacked messages are requeued by the broker
            await self._queue.cancel(self._consumer_tag)
            self._consumer_tag = None

        if self.pending_messages:
            self._logger.info(
                "%s pending messages still have to be acknowledged before closing...",
                self.pending_messages,
            )
            remaining = self.grace_periods
            while self.pending_messages and remaining > 0:
                await asyncio.sleep(self.grace_interval)
                remaining -= 1
            if self.pending_messages:
                self._logger.warning("Force-closing, %s messages are still pending", self.pending_messages)

        # closing the channel flushes messages which have been published just before
        if self._channel is not None and not self._channel.is_closed:
            await self._channel.close()
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()

        return self._connection is not None

    async def push(self, entity: QueuedEntity) -> bool:
        """Append ``entity`` to the import queue.

        Returns:
            ``False`` when the entity could not be serialized or the broker
            did not accept the message, which tells producers to slow down.
        """

        self._require_channel()
        try:
            body = entity.to_json()
        except (TypeError, ValueError) as exc:
            self._logger.error("Failed to serialize %s: %s", entity, exc)
            return False
        return await self._publish(self.queue_name, body)

    async def _publish(self, routing_key: str, body: bytes) -> bool:
        channel = self._require_channel()
        message = Message(body=body, content_type="application/json", delivery_mode=self.delivery_mode)
        try:
            confirmation = await channel.default_exchange.publish(message, routing_key=routing_key)
        except (DeliveryError, PublishError) as exc:
            self._logger.error("Broker rejected message for queue '%s': %s", routing_key, exc)
            return False
        return not isinstance(confirmation, Basic.Nack)

    async def on_data(self, consumer: EntityConsumer) -> str:
        """Register ``consumer`` for already parsed entities.

        Every delivery is acknowledged exactly once after ``consumer`` has
        resolved; payloads of rejected entities are copied to the failure
        queue. Only one consumer may be registered per queue instance.

        Returns:
            The broker consumer tag.
        """

        self._require_channel()
        if self._consumer_tag is not None:
            raise RuntimeError(f"a consumer is already registered for '{self.queue_name}'")

        async def handle_message(message: AbstractIncomingMessage) -> None:
            self.consumed_messages += 1
            self.pending_messages += 1
            try:
                await self._handle_message(message, consumer)
            finally:
                self.pending_messages -= 1

        self._consumer_tag = await self._queue.consume(handle_message, no_ack=False)
        return self._consumer_tag

    async def _handle_message(self, message: AbstractIncomingMessage, consumer: EntityConsumer) -> None:
        try:
            entity = QueuedEntity.from_json(message.body)
        except ValueError:
            self._logger.exception("Skipping invalid message")
            self._logger.debug("Skipped content: %r", message.body)
            if self._observability is not None:
                self._observability.increment("queue.invalid_message", tags={"queue": self.queue_name})
            # invalid messages would otherwise be redelivered forever
            await self._ack(message, "invalid message")
            return

        try:
            success = await consumer(entity)
        except Exception:
            self._logger.exception("Consumer failed for %s", entity)
            success = False

        if not await self._ack(message, entity):
            return
        if not success and self.failure_queue_name:
            if not await self._publish(self.failure_queue_name, message.body):
                self._logger.error("Failed to move %s to failure queue '%s'", entity, self.failure_queue_name)
        self.processed_messages += 1

    async def _ack(self, message: AbstractIncomingMessage, subject: Any) -> bool:
        # after a force-close the broker requeues whatever is still unacknowledged
        if self._channel is None or self._channel.is_closed:
            self._logger.warning("Channel closed before %s was acknowledged, leaving it to the broker", subject)
            return False
        try:
            await message.ack()
        except (AMQPError, ChannelInvalidStateError) as exc:
            self._logger.warning("Could not acknowledge %s: %s", subject, exc)
            return False
        return True

    async def purge(self) -> int:
        """Drop all entities from the primary queue and return how many were removed."""

        self._require_channel()
        result = await self._queue.purge()
        return result.message_count or 0


def _queue_info(queue: AbstractQueue) -> QueueInfo:
    declaration: Any = queue.declaration_result
    return QueueInfo(
        name=queue.name,
        message_count=declaration.message_count or 0,
        consumer_count=declaration.consumer_count or 0,
    )


__all__ = [
    "DEFAULT_CONNECTION_URL",
    "DEFAULT_FAILURE_QUEUE_NAME",
    "DEFAULT_QUEUE_NAME",
    "EntityConsumer",
    "ImportQueue",
    "QueueInfo",
]
