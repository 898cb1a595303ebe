"""In-memory transport for testing and local development."""

from __future__ import annotations

from .broker import InMemoryBroker
from .consumer import InMemoryConsumerChannel
from .producer import InMemoryProducerChannel

__all__ = [
    "InMemoryBroker",
    "InMemoryConsumerChannel",
    "InMemoryProducerChannel",
]
