"""KafkaConsumerService — consume topics, delegate to a handler, reply when asked."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .envelope import ErrorResponse, SuccessResponse
from .exceptions import ConfigurationError, MessagingError
from .headers import CORRELATION_ID, REPLY_TO, get_header
from .serialization import decode_value

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .client import KafkaClient
    from .envelope import InboundMessage
    from .ports import IConsumerChannel
    from .retry import RetryHandler

logger = logging.getLogger("kafka_patterns.consumer")


@runtime_checkable
class IMessageHandler(Protocol):
    """Application callback for consumed messages.

    The return value becomes the ``data`` of the success reply when the
    message is a request. Raising produces an error reply; set
    ``status_code`` / ``error_name`` on the exception (see
    :class:`~kafka_patterns.exceptions.RpcRequestError`) to control it.
    """

    async def handle_message(
        self, topic: str, message: Any, headers: dict[str, str]
    ) -> Any: ...


def error_response(error: BaseException) -> ErrorResponse:
    """Build the error reply for a handler failure."""
    status_code = getattr(error, "status_code", None)
    if not isinstance(status_code, int) or isinstance(status_code, bool):
        status_code = 500
    error_name = getattr(error, "error_name", None) or type(error).__name__
    return ErrorResponse(
        status_code=status_code,
        error=str(error_name),
        message=str(error) or "Unknown error occurred",
    )


class KafkaConsumerService:
    """Consumer for services that answer requests or process events.

    Runs on its own consumer channel from
    :meth:`KafkaClient.create_consumer`, so its subscriptions are separate
    from the client's request/reply consumer. Messages that carry both
    ``correlation-id`` and ``reply-to`` get a reply; failures of other
    messages go to ``retry_handler`` when one is configured.
    """

    def __init__(
        self,
        client: KafkaClient,
        topics: Sequence[str],
        group_id: str,
        handler: IMessageHandler,
        *,
        retry_handler: RetryHandler | None = None,
    ) -> None:
        self._client = client
        self._topics = list(topics)
        self._group_id = group_id
        self._handler = handler
        self._retry_handler = retry_handler
        self._consumer: IConsumerChannel | None = None

    @property
    def is_running(self) -> bool:
        return self._consumer is not None

    async def start(self) -> None:
        if self._consumer is not None:
            return
        if not self._group_id:
            raise ConfigurationError("group_id must be provided to KafkaConsumerService")

        logger.info("Initializing consumer for group %s", self._group_id)
        consumer = self._client.create_consumer(self._group_id)
        try:
            await consumer.connect()
            await consumer.subscribe(self._topics, from_beginning=False)
            await consumer.run(self._handle_message)
        except MessagingError:
            logger.exception("Failed to initialize consumer")
            raise
        except Exception as e:
            logger.exception("Failed to initialize consumer")
            raise MessagingError.from_error(e, "Failed to initialize consumer") from e
        self._consumer = consumer
        logger.info("Consumer subscribed to topics: %s", ", ".join(self._topics))

    async def stop(self) -> None:
        if self._consumer is None:
            return
        await self._consumer.disconnect()
        self._consumer = None
        logger.info("Consumer for group %s disconnected", self._group_id)

    async def _handle_message(self, message: InboundMessage) -> None:
        correlation_id = get_header(message.headers, CORRELATION_ID)
        reply_to = get_header(message.headers, REPLY_TO)
        wants_reply = bool(correlation_id and reply_to)

        if not message.value:
            logger.warning("Received empty message on %s", message.topic)
            return

        try:
            payload = decode_value(message.value)
            logger.debug("Processing message from topic %s", message.topic)
            result = await self._handler.handle_message(
                message.topic, payload, dict(message.headers)
            )
        except Exception as e:
            logger.exception("Error processing message from topic %s", message.topic)
            if wants_reply:
                await self._reply(reply_to, correlation_id, error_response(e))
            elif self._retry_handler is not None:
                await self._retry_handler.handle_error(message.topic, message, e)
            return

        if wants_reply:
            await self._reply(reply_to, correlation_id, SuccessResponse(data=result))
        logger.debug("Successfully processed message from topic %s", message.topic)

    async def _reply(
        self,
        reply_to: str | None,
        correlation_id: str | None,
        response: SuccessResponse | ErrorResponse,
    ) -> None:
        if not reply_to or not correlation_id:
            return
        try:
            await self._client.fire_and_forget.send(
                reply_to,
                response.model_dump(mode="json", by_alias=True),
                {CORRELATION_ID: correlation_id},
            )
        except Exception:
            logger.exception(
                "Failed to send response for %s to %s", correlation_id, reply_to
            )
