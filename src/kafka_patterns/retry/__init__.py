"""Retry and dead-letter handling."""

from __future__ import annotations

from .dead_letter import DeadLetterConsumer, build_dead_letter_record
from .handler import RetryHandler, dead_letter_topic, describe_error
from .policy import RetryPolicy

__all__ = [
    "DeadLetterConsumer",
    "RetryHandler",
    "RetryPolicy",
    "build_dead_letter_record",
    "dead_letter_topic",
    "describe_error",
]
