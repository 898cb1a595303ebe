"""Tests for KafkaClientService and KafkaProducerService."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kafka_patterns.config import KafkaClientSettings, RetryOptions
from kafka_patterns.exceptions import (
    ConfigurationError,
    MessagingError,
    MessagingSerializationError,
    NotInitializedError,
    RequestTimeoutError,
)
from kafka_patterns.memory import InMemoryBroker
from kafka_patterns.service import KafkaClientService, KafkaProducerService


def _settings(**overrides) -> KafkaClientSettings:
    values = {
        "brokers": ["localhost:9092"],
        "client_id": "svc",
        "response_topics": ["svc.responses"],
        "default_timeout": 0.05,
    }
    values.update(overrides)
    return KafkaClientSettings(**values)


def test_settings_client_config_in_milliseconds() -> None:
    settings = KafkaClientSettings(request_timeout=5.0, retry_backoff=0.25)
    assert settings.client_config() == {
        "request_timeout_ms": 5000,
        "retry_backoff_ms": 250,
    }


def test_settings_to_core_options() -> None:
    options = _settings().to_core_options()
    assert options.client_id == "svc"
    assert options.bootstrap_servers == ["localhost:9092"]
    assert options.request_reply.group_id == "svc-request-reply"
    assert options.request_reply.default_timeout == 0.05
    assert options.producer["request_timeout_ms"] == 30000


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides", [{"brokers": []}, {"client_id": ""}]
)
async def test_start_validates_before_connecting(overrides: dict) -> None:
    transport = MagicMock()
    service = KafkaClientService(_settings(**overrides), transport=transport)

    with pytest.raises(ConfigurationError):
        await service.start()

    transport.producer.assert_not_called()
    assert not service.is_connected()


@pytest.mark.asyncio
async def test_start_connects_and_listens(broker: InMemoryBroker) -> None:
    service = KafkaClientService(_settings(), transport=broker)
    await service.start()

    assert service.is_connected()
    client = service.get_client()
    assert client.request_reply is not None
    assert client.request_reply.is_listening
    assert client.request_reply.default_timeout == 0.05

    await service.start()
    assert service.get_client() is client

    await service.stop()
    assert not service.is_connected()
    with pytest.raises(NotInitializedError):
        service.get_client()


@pytest.mark.asyncio
async def test_start_without_response_topics(broker: InMemoryBroker) -> None:
    service = KafkaClientService(_settings(response_topics=[]), transport=broker)
    await service.start()

    assert service.get_client().request_reply is None
    await service.stop()


@pytest.mark.asyncio
async def test_start_wraps_connection_failures() -> None:
    producer = MagicMock()
    producer.connect = AsyncMock(side_effect=RuntimeError("connection refused"))
    transport = MagicMock()
    transport.producer.return_value = producer
    service = KafkaClientService(_settings(), transport=transport)

    with pytest.raises(MessagingError, match="connection refused") as exc_info:
        await service.start()

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert not service.is_connected()


def test_get_client_before_start() -> None:
    service = KafkaClientService(_settings())
    with pytest.raises(NotInitializedError) as exc_info:
        service.get_client()
    assert exc_info.value.code == "CLIENT_NOT_INITIALIZED"


@pytest.mark.asyncio
async def test_send_fire_and_forget(broker: InMemoryBroker) -> None:
    client_service = KafkaClientService(_settings(), transport=broker)
    await client_service.start()
    producer = KafkaProducerService(client_service)

    await producer.send_fire_and_forget("events", {"id": 1}, {"tenant": "t1"})

    [(_, record)] = broker.get_published("events")
    assert record.headers["tenant"] == "t1"
    assert producer.is_connected()
    await client_service.stop()


@pytest.mark.asyncio
async def test_send_fire_and_forget_before_start() -> None:
    producer = KafkaProducerService(KafkaClientService(_settings()))
    with pytest.raises(NotInitializedError):
        await producer.send_fire_and_forget("events", {})
    assert not producer.is_connected()


@pytest.mark.asyncio
async def test_send_fire_and_forget_keeps_messaging_errors(
    broker: InMemoryBroker,
) -> None:
    client_service = KafkaClientService(_settings(), transport=broker)
    await client_service.start()
    producer = KafkaProducerService(client_service)

    with pytest.raises(MessagingSerializationError):
        await producer.send_fire_and_forget("events", {"x": object()})
    await client_service.stop()


@pytest.mark.asyncio
async def test_send_fire_and_forget_wraps_other_errors(broker: InMemoryBroker) -> None:
    client_service = KafkaClientService(_settings(), transport=broker)
    await client_service.start()
    client_service.get_client().fire_and_forget.send = AsyncMock(
        side_effect=RuntimeError("socket closed")
    )
    producer = KafkaProducerService(client_service)

    with pytest.raises(MessagingError, match="socket closed") as exc_info:
        await producer.send_fire_and_forget("events", {})

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    await client_service.stop()


@pytest.mark.asyncio
async def test_send_command_round_trip(broker: InMemoryBroker) -> None:
    client_service = KafkaClientService(_settings(), transport=broker)
    await client_service.start()
    producer = KafkaProducerService(client_service)

    responder = client_service.get_client()

    async def answer(message) -> None:
        await responder.fire_and_forget.send(
            message.headers["reply-to"],
            {"success": True, "data": {"echo": True}},
            {"correlation-id": message.headers["correlation-id"]},
        )

    server = broker.consumer("server")
    await server.subscribe(["svc.commands"])
    await server.run(answer)

    result = await producer.send_command(
        "svc.commands", "svc.responses", {"id": 1}, timeout=1.0
    )

    assert result == {"echo": True}
    await server.disconnect()
    await client_service.stop()


@pytest.mark.asyncio
async def test_send_command_timeout_keeps_its_type(broker: InMemoryBroker) -> None:
    client_service = KafkaClientService(_settings(), transport=broker)
    await client_service.start()
    producer = KafkaProducerService(client_service)

    with pytest.raises(RequestTimeoutError):
        await producer.send_command("svc.commands", "svc.responses", {"id": 1})
    await client_service.stop()


@pytest.mark.asyncio
async def test_send_command_without_request_reply(broker: InMemoryBroker) -> None:
    client_service = KafkaClientService(_settings(response_topics=[]), transport=broker)
    await client_service.start()
    producer = KafkaProducerService(client_service)

    with pytest.raises(NotInitializedError) as exc_info:
        await producer.send_command("svc.commands", "svc.responses", {})

    assert exc_info.value.code == "REQUEST_REPLY_NOT_INITIALIZED"
    await client_service.stop()


def test_settings_retry_is_the_message_retry_policy() -> None:
    field = KafkaClientSettings.model_fields["retry"]
    assert field.description is not None
    assert "RetryHandler" in field.description

    settings = KafkaClientSettings(client_id="svc", retry=RetryOptions(max_retries=9))
    assert settings.to_core_options().retry.max_retries == 9
    assert "retries" not in settings.client_config()
