"""KafkaClient — owns the transport channels and wires the patterns together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .exceptions import AlreadyInitializedError
from .kafka import KafkaConnectionManager, KafkaTransport
from .patterns import FireAndForgetPattern, RequestReplyPattern
from .retry import DeadLetterConsumer, RetryHandler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import KafkaCoreOptions, RequestReplyOptions
    from .ports import IConsumerChannel, IProducerChannel, ITransport

logger = logging.getLogger("kafka_patterns.client")


class KafkaClient:
    """Low-level client exposing every pattern over one set of connections.

    Owns one producer channel, one consumer channel reserved for
    request/reply and, when ``options.dlq`` is set, one dead-letter consumer
    channel. The transport defaults to aiokafka; pass an
    :class:`~kafka_patterns.memory.InMemoryBroker` for tests.

    Usage::

        client = KafkaClient(KafkaCoreOptions(client_id="orders"))
        client.init_request_reply(["orders.responses"])
        await client.connect()
        await client.request_reply.start_listening()
        await client.fire_and_forget.send("orders.events", {"id": 1})
        await client.disconnect()
    """

    def __init__(
        self,
        options: KafkaCoreOptions,
        transport: ITransport | None = None,
    ) -> None:
        self._options = options
        self._transport: ITransport = transport or KafkaTransport(
            KafkaConnectionManager(
                options.bootstrap_servers, client_id=options.client_id
            )
        )
        self._producer: IProducerChannel = self._transport.producer(**options.producer)
        self._consumer: IConsumerChannel = self._transport.consumer(
            options.request_reply.group_id or f"{options.client_id}-consumer",
            **options.consumer,
        )

        self._dlq_consumer: IConsumerChannel | None = None
        self.dlq_handler: DeadLetterConsumer | None = None
        if options.dlq is not None:
            self._dlq_consumer = self._transport.consumer(
                options.dlq.group_id or f"{options.client_id}-dlq-consumer",
                **options.consumer,
            )
            self.dlq_handler = DeadLetterConsumer(
                self._dlq_consumer, options.dlq.on_message
            )

        self.fire_and_forget = FireAndForgetPattern(self._producer)
        self.retry_handler = RetryHandler(self._producer, options.retry)
        self._request_reply: RequestReplyPattern | None = None
        self._connected = False

    @property
    def options(self) -> KafkaCoreOptions:
        return self._options

    @property
    def request_reply(self) -> RequestReplyPattern | None:
        return self._request_reply

    @property
    def is_connected(self) -> bool:
        return self._connected

    def init_request_reply(
        self,
        response_topics: Sequence[str],
        options: RequestReplyOptions | None = None,
    ) -> RequestReplyPattern:
        """Create the request/reply pattern on the reserved consumer; once only."""
        if self._request_reply is not None:
            raise AlreadyInitializedError("Request/reply pattern already initialized")
        self._request_reply = RequestReplyPattern(
            self._producer,
            self._consumer,
            response_topics,
            options or self._options.request_reply,
        )
        return self._request_reply

    async def connect(self) -> None:
        if self._connected:
            logger.debug("Already connected")
            return
        await self._producer.connect()
        await self._consumer.connect()
        if self._dlq_consumer is not None:
            await self._dlq_consumer.connect()
        self._connected = True
        logger.info("Connected to Kafka")

    async def disconnect(self) -> None:
        """Stop the patterns (rejecting in-flight requests), then close channels."""
        if not self._connected:
            return
        if self._request_reply is not None:
            await self._request_reply.stop_listening()
        if self.dlq_handler is not None:
            await self.dlq_handler.stop()
        await self._producer.disconnect()
        await self._consumer.disconnect()
        if self._dlq_consumer is not None:
            await self._dlq_consumer.disconnect()
        self._connected = False
        logger.info("Disconnected from Kafka")

    def create_consumer(self, group_id: str, **config: Any) -> IConsumerChannel:
        """Return a new consumer channel, independent of the client's own."""
        return self._transport.consumer(group_id, **{**self._options.consumer, **config})

    async def health_check(self) -> bool:
        """Return True if the cluster is reachable."""
        return await self._transport.health_check()
