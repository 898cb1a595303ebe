"""Kafka bootstrap and health check."""

from __future__ import annotations

from typing import Any

from aiokafka.admin import AIOKafkaAdminClient


class KafkaConnectionManager:
    """Holds Kafka bootstrap config and optional admin client for health checks.

    Does not hold a long-lived producer/consumer; those are created per
    channel with the same bootstrap_servers and client_id.
    """

    def __init__(
        self,
        bootstrap_servers: str | list[str] = "localhost:9092",
        *,
        client_id: str | None = None,
        **config: Any,
    ) -> None:
        """Configure bootstrap servers, client id and shared aiokafka kwargs."""
        self._bootstrap_servers = bootstrap_servers
        self._client_id = client_id
        self._config = config

    @property
    def bootstrap_servers(self) -> str | list[str]:
        return self._bootstrap_servers

    @property
    def client_id(self) -> str | None:
        return self._client_id

    def _base_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {"bootstrap_servers": self._bootstrap_servers}
        if self._client_id:
            config["client_id"] = self._client_id
        return config

    def producer_config(self, **overrides: Any) -> dict[str, Any]:
        """Config dict for AIOKafkaProducer."""
        return {**self._base_config(), **self._config, **overrides}

    def consumer_config(self, **overrides: Any) -> dict[str, Any]:
        """Config dict for AIOKafkaConsumer."""
        return {**self._base_config(), **self._config, **overrides}

    async def health_check(self) -> bool:
        """Return True if the cluster is reachable."""
        try:
            admin = AIOKafkaAdminClient(**self._base_config())
            await admin.start()
            try:
                await admin.list_topics()
                return True
            finally:
                await admin.close()
        except Exception:  # noqa: BLE001
            return False
