"""Wire models: transport records, reply envelopes and dead-letter records."""

from __future__ import annotations

import time
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class TransportRecord(BaseModel):
    """Immutable message as handed to (or received from) the transport.

    ``headers`` are always normalized ``str -> str``; the transport adapter
    encodes them to bytes on the way out.
    """

    model_config = ConfigDict(frozen=True)

    key: bytes | None = None
    value: bytes | None = None
    headers: dict[str, str] = Field(default_factory=dict)


class InboundMessage(TransportRecord):
    """A record delivered by a consumer channel, with its broker coordinates."""

    topic: str
    partition: int = 0
    offset: int = 0
    timestamp: int | None = None


class SuccessResponse(BaseModel):
    """Reply body for a handled request."""

    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    data: Any = None
    timestamp: int = Field(default_factory=now_ms)


class ErrorResponse(BaseModel):
    """Reply body for a failed request; ``statusCode`` on the wire."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[False] = False
    status_code: int = Field(default=500, alias="statusCode")
    error: str = "InternalServerError"
    message: str = "Unknown error occurred"
    timestamp: int = Field(default_factory=now_ms)


class DeadLetterMessage(BaseModel):
    """The raw message part of a dead-letter record."""

    model_config = ConfigDict(frozen=True)

    key: bytes | None = None
    value: bytes | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    offset: int = 0


class DeadLetterRecord(BaseModel):
    """Failure metadata read back from a message on a ``.dlq`` topic.

    ``failed_at`` and ``total_retries`` are ``nan`` when the header held
    something that is not a number.
    """

    model_config = ConfigDict(frozen=True)

    topic: str
    partition: int
    message: DeadLetterMessage
    original_topic: str = "unknown"
    error: str = "Unknown error"
    error_stack: str = ""
    failed_at: Union[int, float] = 0
    total_retries: Union[int, float] = 0
