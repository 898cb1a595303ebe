"""KafkaConsumerChannel — IConsumerChannel over AIOKafkaConsumer."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from aiokafka import AIOKafkaConsumer
from aiokafka.errors import KafkaError

from ..envelope import InboundMessage
from ..exceptions import MessagingConnectionError
from ..headers import normalize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aiokafka.structs import ConsumerRecord

    from ..ports import MessageCallback
    from .connection import KafkaConnectionManager

logger = logging.getLogger("kafka_patterns.kafka")


def record_to_message(record: ConsumerRecord[Any, Any]) -> InboundMessage:
    """Convert an aiokafka record, normalizing its headers at ingress."""
    return InboundMessage(
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
        timestamp=record.timestamp,
        key=record.key,
        value=record.value,
        headers=normalize(record.headers),
    )


class KafkaConsumerChannel:
    """Kafka adapter implementing IConsumerChannel.

    The underlying AIOKafkaConsumer is created on the first ``subscribe``,
    because ``from_beginning`` maps to ``auto_offset_reset`` which aiokafka
    only accepts at construction time.
    """

    def __init__(
        self,
        connection: KafkaConnectionManager,
        group_id: str,
        **config: Any,
    ) -> None:
        self._connection = connection
        self._group_id = group_id
        self._config = config
        self._consumer: AIOKafkaConsumer | None = None
        self._task: asyncio.Task[None] | None = None
        self._topics: list[str] = []

    @property
    def group_id(self) -> str:
        return self._group_id

    @property
    def is_running(self) -> bool:
        """True while the consume loop is alive."""
        return self._task is not None and not self._task.done()

    async def connect(self) -> None:
        """No-op; the client connects on the first ``subscribe``."""

    async def subscribe(self, topics: Sequence[str], from_beginning: bool = False) -> None:
        self._topics = list(dict.fromkeys([*self._topics, *topics]))
        if self._consumer is not None:
            self._consumer.subscribe(self._topics)
            return
        consumer = AIOKafkaConsumer(
            *self._topics,
            **self._connection.consumer_config(
                **{
                    **self._config,
                    "group_id": self._group_id,
                    "auto_offset_reset": "earliest" if from_beginning else "latest",
                }
            ),
        )
        try:
            await consumer.start()
        except KafkaError as e:
            raise MessagingConnectionError(
                str(e), details={"topics": list(self._topics)}
            ) from e
        self._consumer = consumer

    async def run(self, on_message: MessageCallback) -> None:
        """Start the consume loop in a background task."""
        if self._consumer is None:
            raise MessagingConnectionError("Consumer is not subscribed to any topic")
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._consume(self._consumer, on_message))

    async def _consume(
        self, consumer: AIOKafkaConsumer, on_message: MessageCallback
    ) -> None:
        try:
            async for record in consumer:
                try:
                    await on_message(record_to_message(record))
                except Exception:
                    logger.exception(
                        "Error handling message from %s[%d]@%d",
                        record.topic,
                        record.partition,
                        record.offset,
                    )
        except Exception:
            logger.exception(
                "Consume loop for group %s stopped on topics: %s",
                self._group_id,
                ", ".join(self._topics),
            )

    async def disconnect(self) -> None:
        """Cancel the consume loop and stop the consumer."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._consumer is not None:
            await self._consumer.stop()
            self._consumer = None
        self._topics = []
