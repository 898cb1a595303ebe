"""DeadLetterConsumer — forward dead-lettered messages to a callback."""

from __future__ import annotations

import inspect
import logging
import math
from typing import TYPE_CHECKING, Any

from ..envelope import DeadLetterMessage, DeadLetterRecord
from ..headers import (
    ERROR,
    ERROR_STACK,
    FAILED_AT,
    ORIGINAL_TOPIC,
    TOTAL_RETRIES,
    get_header,
    parse_int,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from ..envelope import InboundMessage
    from ..ports import IConsumerChannel

logger = logging.getLogger("kafka_patterns.dlq")


def _int_header(headers: Mapping[str, str], name: str) -> int | float:
    parsed = parse_int(get_header(headers, name) or "0")
    return math.nan if parsed is None else parsed


def build_dead_letter_record(message: InboundMessage) -> DeadLetterRecord:
    """Read the failure metadata the retry handler attached to *message*."""
    headers = message.headers
    return DeadLetterRecord(
        topic=message.topic,
        partition=message.partition,
        message=DeadLetterMessage(
            key=message.key,
            value=message.value,
            headers=dict(headers),
            offset=message.offset,
        ),
        original_topic=get_header(headers, ORIGINAL_TOPIC) or "unknown",
        error=get_header(headers, ERROR) or "Unknown error",
        error_stack=get_header(headers, ERROR_STACK) or "",
        failed_at=_int_header(headers, FAILED_AT),
        total_retries=_int_header(headers, TOTAL_RETRIES),
    )


class DeadLetterConsumer:
    """Listens on dead-letter topics for monitoring and manual handling.

    The callback gets one :class:`DeadLetterRecord` per message and may be
    sync or async. Anything it raises is logged and swallowed so one bad
    record never stops the loop.
    """

    def __init__(
        self,
        consumer: IConsumerChannel,
        on_message: Callable[[DeadLetterRecord], Any],
    ) -> None:
        self._consumer = consumer
        self._on_message = on_message
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, topics: Sequence[str]) -> None:
        if self._running:
            logger.debug("Already running")
            return
        topics = list(topics)
        await self._consumer.subscribe(topics, from_beginning=False)
        await self._consumer.run(self._handle_message)
        self._running = True
        logger.info("Started listening to DLQ topics: %s", ", ".join(topics))

    async def stop(self) -> None:
        if not self._running:
            return
        await self._consumer.disconnect()
        self._running = False
        logger.info("Stopped")

    async def _handle_message(self, message: InboundMessage) -> None:
        try:
            record = build_dead_letter_record(message)
            result = self._on_message(record)
            if inspect.isawaitable(result):
                await result
            logger.info(
                "Processed DLQ message from topic %s, offset %d",
                record.original_topic,
                message.offset,
            )
        except Exception:
            logger.exception("Error processing DLQ message from %s", message.topic)
