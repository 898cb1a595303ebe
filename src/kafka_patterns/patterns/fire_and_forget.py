"""FireAndForgetPattern — publish without waiting for a reply."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from ..envelope import TransportRecord, now_ms
from ..headers import (
    CORRELATION_ID,
    FIRE_AND_FORGET,
    MESSAGE_ID,
    MESSAGE_TYPE,
    REQUEST_REPLY,
    TIMESTAMP,
    find_raw_header,
    has_value,
    merge_headers,
    normalize,
)
from ..serialization import encode_value

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..headers import RawHeaders
    from ..ports import IProducerChannel

logger = logging.getLogger("kafka_patterns.fire_and_forget")


class FireAndForgetPattern:
    """Publishes JSON messages tagged with a message id and timestamp.

    When the caller passes a non-empty ``correlation-id`` header the message
    is the reply leg of a request/reply exchange and is tagged
    ``request-reply`` instead of ``fire-and-forget``. An explicit
    ``message-type`` header from the caller always wins.
    """

    def __init__(self, producer: IProducerChannel) -> None:
        self._producer = producer

    async def send(
        self,
        topic: str,
        message: Any,
        custom_headers: RawHeaders | None = None,
    ) -> None:
        """Publish one message. Transport errors propagate unchanged."""
        message_id = str(uuid.uuid4())
        is_reply = has_value(find_raw_header(custom_headers, CORRELATION_ID))
        headers = merge_headers(
            {
                MESSAGE_ID: message_id,
                MESSAGE_TYPE: REQUEST_REPLY if is_reply else FIRE_AND_FORGET,
                TIMESTAMP: str(now_ms()),
            },
            normalize(custom_headers),
        )
        record = TransportRecord(
            key=message_id.encode("utf-8"),
            value=encode_value(message),
            headers=headers,
        )
        await self._producer.publish(topic, [record])
        logger.debug("Sent message %s to topic %s", message_id, topic)

    async def send_batch(self, topic: str, messages: Sequence[Any]) -> None:
        """Publish many messages in a single transport call."""
        records = []
        for message in messages:
            message_id = str(uuid.uuid4())
            records.append(
                TransportRecord(
                    key=message_id.encode("utf-8"),
                    value=encode_value(message),
                    headers={
                        MESSAGE_ID: message_id,
                        MESSAGE_TYPE: FIRE_AND_FORGET,
                        TIMESTAMP: str(now_ms()),
                    },
                )
            )
        await self._producer.publish(topic, records)
        logger.debug("Sent %d messages to topic %s", len(records), topic)
