"""Application-facing services: one shared client plus a producer facade."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from .client import KafkaClient
from .exceptions import ConfigurationError, MessagingError, NotInitializedError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .config import KafkaClientSettings
    from .ports import ITransport

logger = logging.getLogger("kafka_patterns.service")


class KafkaClientService:
    """Owns the process-wide :class:`KafkaClient`.

    ``start()`` validates the settings, connects and, when response topics
    are configured, starts listening for replies.
    """

    def __init__(
        self,
        settings: KafkaClientSettings,
        *,
        transport: ITransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: KafkaClient | None = None

    async def start(self) -> None:
        if self._client is not None:
            return
        settings = self._settings
        if not settings.brokers or not settings.client_id:
            raise ConfigurationError(
                "brokers and client_id must be provided in KafkaClientSettings"
            )

        logger.info("Connecting to Kafka brokers: %s", ", ".join(settings.brokers))
        client = KafkaClient(settings.to_core_options(), transport=self._transport)
        try:
            await client.connect()
            if settings.response_topics:
                pattern = client.init_request_reply(settings.response_topics)
                await pattern.start_listening()
                logger.info(
                    "Request/reply initialized for topics: %s",
                    ", ".join(settings.response_topics),
                )
        except Exception as e:
            logger.exception("Failed to initialize Kafka client")
            with contextlib.suppress(Exception):
                await client.disconnect()
            if isinstance(e, MessagingError):
                raise
            raise MessagingError.from_error(
                e, "Failed to initialize Kafka client"
            ) from e

        self._client = client
        logger.info("Kafka client initialized")

    async def stop(self) -> None:
        if self._client is None:
            return
        await self._client.disconnect()
        self._client = None
        logger.info("Kafka client disconnected")

    def get_client(self) -> KafkaClient:
        if self._client is None:
            raise NotInitializedError("Kafka client not initialized")
        return self._client

    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected


class KafkaProducerService:
    """Sends messages through the shared client, wrapping every failure."""

    def __init__(self, client_service: KafkaClientService) -> None:
        self._client_service = client_service

    async def send_fire_and_forget(
        self,
        topic: str,
        message: Any,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        try:
            client = self._client_service.get_client()
            await client.fire_and_forget.send(topic, message, headers)
        except Exception as e:
            error = MessagingError.from_error(
                e, f"Failed to send fire-and-forget message to {topic}"
            )
            logger.error(
                "Failed to send fire-and-forget message to %s: %s", topic, error.message
            )
            if error is e:
                raise
            raise error from e

    async def send_command(
        self,
        command_topic: str,
        response_topic: str,
        message: Any,
        timeout: float | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and return the reply data.

        Request outcome errors (timeout, RPC error, ...) reach the caller with
        their own type.
        """
        try:
            client = self._client_service.get_client()
            pattern = client.request_reply
            if pattern is None:
                raise NotInitializedError(
                    "Request/reply not initialized",
                    code="REQUEST_REPLY_NOT_INITIALIZED",
                )
            logger.debug("Sending command to %s", command_topic)
            response = await pattern.send(
                command_topic, response_topic, message, timeout, extra_headers
            )
            logger.debug("Received response from %s", response_topic)
            return response
        except Exception as e:
            error = MessagingError.from_error(
                e, f"Failed to send command to {command_topic}"
            )
            logger.error(
                "Failed to send command to %s: %s", command_topic, error.message
            )
            if error is e:
                raise
            raise error from e

    def is_connected(self) -> bool:
        return self._client_service.is_connected()
