"""InMemoryConsumerChannel — IConsumerChannel fed by an InMemoryBroker."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..envelope import InboundMessage
    from ..ports import MessageCallback
    from .broker import InMemoryBroker

logger = logging.getLogger("kafka_patterns.memory")


class InMemoryConsumerChannel:
    """Queues messages for its subscribed topics and hands them to ``run``'s
    callback one at a time, like a single Kafka consumer instance.
    """

    def __init__(self, broker: InMemoryBroker, group_id: str) -> None:
        self._broker = broker
        self.group_id = group_id
        self.connected = False
        self._topics: set[str] = set()
        self._queue: asyncio.Queue[InboundMessage] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._handling = False

    @property
    def topics(self) -> set[str]:
        return set(self._topics)

    @property
    def busy(self) -> bool:
        if self._task is None:
            return False
        return self._handling or not self._queue.empty()

    async def connect(self) -> None:
        self.connected = True

    async def subscribe(self, topics: Sequence[str], from_beginning: bool = False) -> None:
        self._topics.update(topics)
        self._broker.attach(self, from_beginning)

    def enqueue(self, message: InboundMessage) -> None:
        if message.topic in self._topics:
            self._queue.put_nowait(message)

    async def run(self, on_message: MessageCallback) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._consume(on_message))

    async def _consume(self, on_message: MessageCallback) -> None:
        while True:
            message = await self._queue.get()
            self._handling = True
            try:
                await on_message(message)
            except Exception:
                logger.exception(
                    "Error handling message from %s@%d", message.topic, message.offset
                )
            finally:
                self._handling = False
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until everything queued so far has been handled."""
        if self._task is not None:
            await self._queue.join()

    async def disconnect(self) -> None:
        self._broker.detach(self)
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._topics.clear()
        self._queue = asyncio.Queue()
        self._handling = False
        self.connected = False
