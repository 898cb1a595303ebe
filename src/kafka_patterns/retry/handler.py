"""RetryHandler — republish a failed message or move it to its dead-letter topic."""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING

from ..envelope import TransportRecord, now_ms
from ..exceptions import MessagingError
from ..headers import (
    ERROR,
    ERROR_STACK,
    FAILED_AT,
    LAST_ERROR,
    ORIGINAL_TOPIC,
    RETRY_COUNT,
    RETRY_TIMESTAMP,
    TOTAL_RETRIES,
    get_header,
    merge_headers,
    parse_int,
)
from .policy import RetryPolicy

if TYPE_CHECKING:
    from ..config import RetryOptions
    from ..ports import IProducerChannel

logger = logging.getLogger("kafka_patterns.retry")

DLQ_SUFFIX = ".dlq"


def dead_letter_topic(topic: str) -> str:
    return f"{topic}{DLQ_SUFFIX}"


def describe_error(error: object) -> tuple[str, str]:
    """Return ``(message, stack)`` for an exception or any other failure value."""
    if isinstance(error, BaseException):
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return str(error), stack
    return MessagingError.from_error(error).message, ""


class RetryHandler:
    """Retry-or-escalate policy for messages whose processing failed.

    Retry state travels with the message in its ``retry-count`` header. Below
    the ceiling the message goes back to its topic with the count bumped;
    at the ceiling it goes to ``<topic>.dlq`` with failure metadata. Each
    call publishes exactly once.

    Deciding that a message failed is up to the caller.
    """

    def __init__(
        self,
        producer: IProducerChannel,
        options: RetryOptions | None = None,
        *,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._producer = producer
        if policy is None:
            policy = RetryPolicy.from_options(options) if options else RetryPolicy()
        self._policy = policy

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def max_retries(self) -> int:
        return self._policy.max_retries

    @staticmethod
    def get_retry_count(message: TransportRecord) -> int:
        """Read ``retry-count``; absent or unparsable counts as zero."""
        count = parse_int(get_header(message.headers, RETRY_COUNT))
        return max(count or 0, 0)

    async def handle_error(
        self,
        original_topic: str,
        message: TransportRecord,
        error: BaseException | str,
    ) -> None:
        retry_count = self.get_retry_count(message)
        if self._policy.should_retry(retry_count):
            await self._send_to_retry(original_topic, message, error, retry_count)
        else:
            await self._send_to_dlq(original_topic, message, error)

    async def _send_to_retry(
        self,
        topic: str,
        message: TransportRecord,
        error: BaseException | str,
        current_retry_count: int,
    ) -> None:
        new_retry_count = current_retry_count + 1
        await self._policy.wait_before_retry(new_retry_count)

        error_message, _ = describe_error(error)
        headers = merge_headers(
            message.headers,
            {
                RETRY_COUNT: str(new_retry_count),
                RETRY_TIMESTAMP: str(now_ms()),
                LAST_ERROR: error_message,
            },
        )
        await self._producer.publish(
            topic,
            [TransportRecord(key=message.key, value=message.value, headers=headers)],
        )
        logger.warning(
            "Retry %d/%d for message in topic %s",
            new_retry_count,
            self._policy.max_retries,
            topic,
        )

    async def _send_to_dlq(
        self,
        original_topic: str,
        message: TransportRecord,
        error: BaseException | str,
    ) -> None:
        dlq_topic = dead_letter_topic(original_topic)
        error_message, error_stack = describe_error(error)
        headers = merge_headers(
            message.headers,
            {
                ORIGINAL_TOPIC: original_topic,
                ERROR: error_message,
                ERROR_STACK: error_stack,
                FAILED_AT: str(now_ms()),
                TOTAL_RETRIES: str(self._policy.max_retries),
            },
        )
        await self._producer.publish(
            dlq_topic,
            [TransportRecord(key=message.key, value=message.value, headers=headers)],
        )
        logger.error("Message moved to DLQ: %s. Error: %s", dlq_topic, error_message)
