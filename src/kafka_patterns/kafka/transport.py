"""KafkaTransport — ITransport handing out aiokafka-backed channels."""

from __future__ import annotations

from typing import Any

from .connection import KafkaConnectionManager
from .consumer import KafkaConsumerChannel
from .producer import KafkaProducerChannel


class KafkaTransport:
    """Creates producer and consumer channels sharing one connection config."""

    def __init__(self, connection: KafkaConnectionManager) -> None:
        self._connection = connection

    @property
    def connection(self) -> KafkaConnectionManager:
        return self._connection

    def producer(self, **config: Any) -> KafkaProducerChannel:
        return KafkaProducerChannel(self._connection, **config)

    def consumer(self, group_id: str, **config: Any) -> KafkaConsumerChannel:
        return KafkaConsumerChannel(self._connection, group_id, **config)

    async def health_check(self) -> bool:
        return await self._connection.health_check()
