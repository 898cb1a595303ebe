"""In-memory broker for testing. Connects producer and consumer channels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..envelope import InboundMessage, TransportRecord, now_ms
from ..headers import denormalize, normalize
from .consumer import InMemoryConsumerChannel
from .producer import InMemoryProducerChannel

if TYPE_CHECKING:
    from collections.abc import Sequence


class InMemoryBroker:
    """Shared broker implementing ITransport.

    Every publish is recorded and queued on each consumer channel subscribed
    to the topic. Headers go through the same bytes round trip as on Kafka.
    """

    def __init__(self) -> None:
        self._published: list[tuple[str, TransportRecord]] = []
        self._publish_calls: list[tuple[str, list[TransportRecord]]] = []
        self._history: list[InboundMessage] = []
        self._offsets: dict[str, int] = {}
        self._channels: list[InMemoryConsumerChannel] = []

    def producer(self, **config: Any) -> InMemoryProducerChannel:  # noqa: ARG002
        return InMemoryProducerChannel(self)

    def consumer(self, group_id: str, **config: Any) -> InMemoryConsumerChannel:  # noqa: ARG002
        return InMemoryConsumerChannel(self, group_id)

    async def health_check(self) -> bool:
        return True

    def attach(self, channel: InMemoryConsumerChannel, from_beginning: bool) -> None:
        """Register a subscribed channel, replaying history if requested."""
        if channel not in self._channels:
            self._channels.append(channel)
        if from_beginning:
            for message in self._history:
                channel.enqueue(message)

    def detach(self, channel: InMemoryConsumerChannel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    async def deliver(self, topic: str, records: Sequence[TransportRecord]) -> None:
        """Record one publish call and fan its records out to subscribers."""
        self._publish_calls.append((topic, list(records)))
        for record in records:
            offset = self._offsets.get(topic, 0)
            self._offsets[topic] = offset + 1
            self._published.append((topic, record))
            message = InboundMessage(
                topic=topic,
                partition=0,
                offset=offset,
                timestamp=now_ms(),
                key=record.key,
                value=record.value,
                headers=normalize(denormalize(record.headers)),
            )
            self._history.append(message)
            for channel in list(self._channels):
                channel.enqueue(message)

    async def flush(self) -> None:
        """Wait until every running channel has handled everything queued.

        Loops because handlers may publish further messages while draining.
        """
        while True:
            busy = [channel for channel in self._channels if channel.busy]
            if not busy:
                return
            for channel in busy:
                await channel.join()

    def get_published(
        self, topic: str | None = None
    ) -> list[tuple[str, TransportRecord]]:
        """Return all published (topic, record) pairs in order."""
        if topic is None:
            return list(self._published)
        return [(t, r) for t, r in self._published if t == topic]

    def get_publish_calls(self) -> list[tuple[str, list[TransportRecord]]]:
        """Return one (topic, records) entry per producer ``publish`` call."""
        return list(self._publish_calls)

    def clear(self) -> None:
        """Forget published messages (for test teardown)."""
        self._published.clear()
        self._publish_calls.clear()
        self._history.clear()
        self._offsets.clear()
