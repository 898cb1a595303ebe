"""InMemoryProducerChannel — IProducerChannel publishing to an InMemoryBroker."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..envelope import TransportRecord
    from .broker import InMemoryBroker


class InMemoryProducerChannel:
    """Publishes straight onto the shared broker."""

    def __init__(self, broker: InMemoryBroker) -> None:
        self._broker = broker
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def publish(self, topic: str, records: Sequence[TransportRecord]) -> None:
        await self._broker.deliver(topic, records)

    async def disconnect(self) -> None:
        self.connected = False
