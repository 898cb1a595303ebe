"""Unit tests for the aiokafka channels with mocked clients (no real broker)."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.errors import KafkaError

from kafka_patterns.envelope import InboundMessage, TransportRecord
from kafka_patterns.exceptions import MessagingConnectionError
from kafka_patterns.kafka import (
    KafkaConnectionManager,
    KafkaConsumerChannel,
    KafkaProducerChannel,
    KafkaTransport,
)
from kafka_patterns.kafka.consumer import record_to_message


def _acked(*args, **kwargs) -> asyncio.Future[None]:
    future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
    future.set_result(None)
    return future


@pytest.fixture
def connection() -> KafkaConnectionManager:
    return KafkaConnectionManager("localhost:9092", client_id="app")


@pytest.fixture
def mock_producer() -> MagicMock:
    prod = MagicMock()
    prod.start = AsyncMock()
    prod.stop = AsyncMock()
    prod.send = AsyncMock(side_effect=_acked)
    return prod


@pytest.fixture
def mock_consumer() -> MagicMock:
    cons = MagicMock()
    cons.start = AsyncMock()
    cons.stop = AsyncMock()
    return cons


def test_connection_configs(connection: KafkaConnectionManager) -> None:
    assert connection.producer_config(acks="all") == {
        "bootstrap_servers": "localhost:9092",
        "client_id": "app",
        "acks": "all",
    }
    assert connection.consumer_config()["client_id"] == "app"
    assert "client_id" not in KafkaConnectionManager("b:9092").consumer_config()


@pytest.mark.asyncio
async def test_health_check_false_when_unreachable(
    connection: KafkaConnectionManager,
) -> None:
    admin = MagicMock()
    admin.start = AsyncMock(side_effect=KafkaError("unreachable"))
    with patch(
        "kafka_patterns.kafka.connection.AIOKafkaAdminClient", return_value=admin
    ):
        assert await connection.health_check() is False


@pytest.mark.asyncio
async def test_health_check_true(connection: KafkaConnectionManager) -> None:
    admin = MagicMock()
    admin.start = AsyncMock()
    admin.list_topics = AsyncMock(return_value=["t"])
    admin.close = AsyncMock()
    with patch(
        "kafka_patterns.kafka.connection.AIOKafkaAdminClient", return_value=admin
    ):
        assert await KafkaTransport(connection).health_check() is True
    admin.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_publish_encodes_headers(
    connection: KafkaConnectionManager, mock_producer: MagicMock
) -> None:
    with patch(
        "kafka_patterns.kafka.producer.AIOKafkaProducer", return_value=mock_producer
    ) as factory:
        channel = KafkaProducerChannel(connection, acks="all")
        await channel.publish(
            "orders",
            [
                TransportRecord(key=b"k1", value=b"1", headers={"correlation-id": "c"}),
                TransportRecord(key=b"k2", value=b"2"),
            ],
        )

    assert factory.call_args.kwargs["acks"] == "all"
    mock_producer.start.assert_awaited_once()
    assert mock_producer.send.await_count == 2
    first = mock_producer.send.call_args_list[0]
    assert first.args == ("orders",)
    assert first.kwargs["key"] == b"k1"
    assert first.kwargs["value"] == b"1"
    assert first.kwargs["headers"] == [("correlation-id", b"c")]
    assert mock_producer.send.call_args_list[1].kwargs["headers"] is None


@pytest.mark.asyncio
async def test_producer_is_started_once(
    connection: KafkaConnectionManager, mock_producer: MagicMock
) -> None:
    with patch(
        "kafka_patterns.kafka.producer.AIOKafkaProducer", return_value=mock_producer
    ):
        channel = KafkaProducerChannel(connection)
        await channel.connect()
        await channel.publish("t", [TransportRecord(value=b"1")])
        await channel.disconnect()
        await channel.disconnect()

    mock_producer.start.assert_awaited_once()
    mock_producer.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_publish_error_is_wrapped(
    connection: KafkaConnectionManager, mock_producer: MagicMock
) -> None:
    mock_producer.send = AsyncMock(side_effect=KafkaError("leader not available"))
    with patch(
        "kafka_patterns.kafka.producer.AIOKafkaProducer", return_value=mock_producer
    ):
        channel = KafkaProducerChannel(connection)
        with pytest.raises(MessagingConnectionError) as exc_info:
            await channel.publish("orders", [TransportRecord(value=b"1")])

    assert exc_info.value.details == {"topic": "orders"}
    assert isinstance(exc_info.value.__cause__, KafkaError)


@pytest.mark.asyncio
async def test_producer_start_error_is_wrapped(
    connection: KafkaConnectionManager, mock_producer: MagicMock
) -> None:
    mock_producer.start = AsyncMock(side_effect=KafkaError("no brokers"))
    with patch(
        "kafka_patterns.kafka.producer.AIOKafkaProducer", return_value=mock_producer
    ):
        with pytest.raises(MessagingConnectionError):
            await KafkaProducerChannel(connection).connect()


def test_record_to_message_normalizes_headers() -> None:
    record = SimpleNamespace(
        topic="orders.responses",
        partition=1,
        offset=42,
        timestamp=1700000000000,
        key=b"k",
        value=b"{}",
        headers=(("correlation-id", b"abc"), ("empty", b"")),
    )
    message = record_to_message(record)
    assert message.topic == "orders.responses"
    assert message.partition == 1
    assert message.offset == 42
    assert message.headers == {"correlation-id": "abc"}


@pytest.mark.asyncio
async def test_subscribe_creates_consumer(
    connection: KafkaConnectionManager, mock_consumer: MagicMock
) -> None:
    with patch(
        "kafka_patterns.kafka.consumer.AIOKafkaConsumer", return_value=mock_consumer
    ) as factory:
        channel = KafkaConsumerChannel(connection, "group-1", auto_offset_reset="none")
        await channel.connect()
        await channel.subscribe(["a", "b"], from_beginning=True)
        await channel.subscribe(["b", "c"])

    assert factory.call_count == 1
    assert factory.call_args.args == ("a", "b")
    kwargs = factory.call_args.kwargs
    assert kwargs["group_id"] == "group-1"
    assert kwargs["auto_offset_reset"] == "earliest"
    assert kwargs["bootstrap_servers"] == "localhost:9092"
    mock_consumer.start.assert_awaited_once()
    mock_consumer.subscribe.assert_called_once_with(["a", "b", "c"])


@pytest.mark.asyncio
async def test_subscribe_latest_by_default(
    connection: KafkaConnectionManager, mock_consumer: MagicMock
) -> None:
    with patch(
        "kafka_patterns.kafka.consumer.AIOKafkaConsumer", return_value=mock_consumer
    ) as factory:
        await KafkaConsumerChannel(connection, "g").subscribe(["a"])

    assert factory.call_args.kwargs["auto_offset_reset"] == "latest"


@pytest.mark.asyncio
async def test_run_before_subscribe_raises(connection: KafkaConnectionManager) -> None:
    channel = KafkaConsumerChannel(connection, "g")
    with pytest.raises(MessagingConnectionError):
        await channel.run(AsyncMock())


@pytest.mark.asyncio
async def test_run_delivers_and_survives_handler_errors(
    connection: KafkaConnectionManager, mock_consumer: MagicMock
) -> None:
    records = [
        SimpleNamespace(
            topic="a", partition=0, offset=n, timestamp=0, key=None,
            value=str(n).encode(), headers=(),
        )
        for n in range(3)
    ]
    mock_consumer.__aiter__.return_value = records
    received: list[InboundMessage] = []

    async def on_message(message: InboundMessage) -> None:
        if message.offset == 1:
            raise RuntimeError("handler failed")
        received.append(message)

    with patch(
        "kafka_patterns.kafka.consumer.AIOKafkaConsumer", return_value=mock_consumer
    ):
        channel = KafkaConsumerChannel(connection, "g")
        await channel.subscribe(["a"])
        await channel.run(on_message)
        assert channel._task is not None
        await channel._task
        await channel.disconnect()

    assert [m.offset for m in received] == [0, 2]
    mock_consumer.stop.assert_awaited_once()


class _FailingConsumer:
    """AIOKafkaConsumer stand-in whose fetch fails on the first iteration."""

    def __init__(self) -> None:
        self.start = AsyncMock()
        self.stop = AsyncMock()
        self.subscribe = MagicMock()

    def __aiter__(self) -> _FailingConsumer:
        return self

    async def __anext__(self) -> None:
        raise KafkaError("fetch failed")


@pytest.mark.asyncio
async def test_run_logs_when_the_fetch_loop_fails(
    connection: KafkaConnectionManager, caplog: pytest.LogCaptureFixture
) -> None:
    on_message = AsyncMock()
    with patch(
        "kafka_patterns.kafka.consumer.AIOKafkaConsumer",
        return_value=_FailingConsumer(),
    ):
        channel = KafkaConsumerChannel(connection, "g")
        await channel.subscribe(["a"])
        await channel.run(on_message)
        assert channel.is_running
        assert channel._task is not None
        await channel._task

    assert not channel.is_running
    on_message.assert_not_awaited()
    failures = [
        r for r in caplog.records
        if r.name == "kafka_patterns.kafka" and r.exc_info is not None
    ]
    assert len(failures) == 1
    assert "Consume loop for group g stopped" in failures[0].getMessage()
    assert isinstance(failures[0].exc_info[1], KafkaError)
    await channel.disconnect()
