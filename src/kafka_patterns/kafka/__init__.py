"""Kafka transport adapter built on aiokafka."""

from __future__ import annotations

from .connection import KafkaConnectionManager
from .consumer import KafkaConsumerChannel
from .producer import KafkaProducerChannel
from .transport import KafkaTransport

__all__ = [
    "KafkaConnectionManager",
    "KafkaConsumerChannel",
    "KafkaProducerChannel",
    "KafkaTransport",
]
