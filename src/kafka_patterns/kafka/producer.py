"""KafkaProducerChannel — IProducerChannel over AIOKafkaProducer."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from ..exceptions import MessagingConnectionError
from ..headers import denormalize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..envelope import TransportRecord
    from .connection import KafkaConnectionManager

logger = logging.getLogger("kafka_patterns.kafka")


class KafkaProducerChannel:
    """Kafka adapter implementing IProducerChannel.

    A batch of records is sent concurrently and awaited together, so one
    ``publish`` call either lands every record or raises.
    """

    def __init__(self, connection: KafkaConnectionManager, **config: Any) -> None:
        """Configure the channel.

        Args:
            connection: Shared connection config.
            **config: Extra AIOKafkaProducer keyword arguments.
        """
        self._connection = connection
        self._config = config
        self._producer: AIOKafkaProducer | None = None

    async def _get_producer(self) -> AIOKafkaProducer:
        """Create or return existing producer."""
        if self._producer is not None:
            return self._producer
        producer = AIOKafkaProducer(**self._connection.producer_config(**self._config))
        try:
            await producer.start()
        except KafkaError as e:
            raise MessagingConnectionError(str(e)) from e
        self._producer = producer
        return producer

    async def connect(self) -> None:
        await self._get_producer()

    async def publish(self, topic: str, records: Sequence[TransportRecord]) -> None:
        """Send every record to *topic* and wait for all acknowledgements."""
        producer = await self._get_producer()
        try:
            futures = [
                await producer.send(
                    topic,
                    value=record.value,
                    key=record.key,
                    headers=denormalize(record.headers) or None,
                )
                for record in records
            ]
            await asyncio.gather(*futures)
        except KafkaError as e:
            raise MessagingConnectionError(str(e), details={"topic": topic}) from e

    async def disconnect(self) -> None:
        """Stop the producer."""
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
