"""Configuration models for the client, its patterns and the services."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestReplyOptions(BaseModel):
    """Options for the request/reply pattern."""

    model_config = ConfigDict(frozen=True)

    default_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for a reply"
    )
    group_id: str | None = None


class RetryOptions(BaseModel):
    """Options for the retry handler."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0, description="Seconds")
    use_exponential_backoff: bool = True


class DeadLetterOptions(BaseModel):
    """Options for the dead-letter consumer.

    ``on_message`` receives a :class:`~kafka_patterns.envelope.DeadLetterRecord`
    and may be a plain function or a coroutine function.
    """

    model_config = ConfigDict(frozen=True)

    on_message: Callable[..., Any]
    group_id: str | None = None


class KafkaCoreOptions(BaseModel):
    """Everything :class:`~kafka_patterns.client.KafkaClient` needs to wire itself.

    ``producer`` and ``consumer`` are passed through to the transport as
    extra client keyword arguments.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    bootstrap_servers: str | list[str] = "localhost:9092"
    producer: dict[str, Any] = Field(default_factory=dict)
    consumer: dict[str, Any] = Field(default_factory=dict)
    request_reply: RequestReplyOptions = Field(default_factory=RequestReplyOptions)
    retry: RetryOptions = Field(default_factory=RetryOptions)
    dlq: DeadLetterOptions | None = None


class KafkaClientSettings(BaseModel):
    """Service-level settings; validated by ``KafkaClientService.start()``."""

    model_config = ConfigDict(frozen=True)

    brokers: list[str] = Field(default_factory=list)
    client_id: str = ""
    response_topics: list[str] = Field(default_factory=list)
    default_timeout: float = Field(default=30.0, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    retry_backoff: float = Field(
        default=0.3, ge=0, description="Seconds between broker request retries"
    )
    retry: RetryOptions = Field(
        default_factory=RetryOptions,
        description=(
            "Republish/dead-letter policy for failed messages (RetryHandler); "
            "broker connection retries are governed by retry_backoff"
        ),
    )

    def client_config(self) -> dict[str, Any]:
        """aiokafka keyword arguments shared by producers and consumers."""
        return {
            "request_timeout_ms": int(self.request_timeout * 1000),
            "retry_backoff_ms": int(self.retry_backoff * 1000),
        }

    def to_core_options(self) -> KafkaCoreOptions:
        config = self.client_config()
        return KafkaCoreOptions(
            client_id=self.client_id,
            bootstrap_servers=list(self.brokers),
            producer=dict(config),
            consumer=dict(config),
            request_reply=RequestReplyOptions(
                default_timeout=self.default_timeout,
                group_id=f"{self.client_id}-request-reply",
            ),
            retry=self.retry,
        )
