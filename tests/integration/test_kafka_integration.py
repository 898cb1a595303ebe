"""Integration tests against a real broker (require testcontainers)."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

pytest.importorskip("aiokafka")
pytest.importorskip("testcontainers")

from testcontainers.kafka import KafkaContainer

from kafka_patterns.client import KafkaClient
from kafka_patterns.config import KafkaCoreOptions
from kafka_patterns.consumer import KafkaConsumerService

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def kafka_bootstrap_servers() -> str:
    with KafkaContainer("confluentinc/cp-kafka:7.5.0") as kafka:
        yield kafka.get_bootstrap_server()


class EchoHandler:
    async def handle_message(
        self, topic: str, message: Any, headers: dict[str, str]
    ) -> Any:
        return {"echo": message}


@pytest.mark.asyncio
async def test_request_reply_round_trip(kafka_bootstrap_servers: str) -> None:
    client = KafkaClient(
        KafkaCoreOptions(client_id="it", bootstrap_servers=kafka_bootstrap_servers)
    )
    pattern = client.init_request_reply(["it.responses"])
    await client.connect()
    # Create both topics before the consumers join with "latest" offsets.
    await client.fire_and_forget.send("it.commands", {"warmup": True})
    await client.fire_and_forget.send("it.responses", {"warmup": True})
    await pattern.start_listening()
    service = KafkaConsumerService(client, ["it.commands"], "it-service", EchoHandler())
    await service.start()
    await asyncio.sleep(5.0)
    try:
        result = await pattern.send(
            "it.commands", "it.responses", {"id": 1}, timeout=20.0
        )
        assert result == {"echo": {"id": 1}}
        assert pattern.get_pending_requests_count() == 0
    finally:
        await service.stop()
        await client.disconnect()


@pytest.mark.asyncio
async def test_health_check(kafka_bootstrap_servers: str) -> None:
    client = KafkaClient(
        KafkaCoreOptions(client_id="it-health", bootstrap_servers=kafka_bootstrap_servers)
    )
    assert await client.health_check() is True
