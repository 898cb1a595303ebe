"""Request/reply, fire-and-forget and retry/dead-letter patterns over Kafka."""

from __future__ import annotations

from .client import KafkaClient
from .config import (
    DeadLetterOptions,
    KafkaClientSettings,
    KafkaCoreOptions,
    RequestReplyOptions,
    RetryOptions,
)
from .consumer import IMessageHandler, KafkaConsumerService
from .envelope import (
    DeadLetterMessage,
    DeadLetterRecord,
    ErrorResponse,
    InboundMessage,
    SuccessResponse,
    TransportRecord,
)
from .exceptions import (
    AlreadyInitializedError,
    ConfigurationError,
    MessagingConnectionError,
    MessagingError,
    MessagingSerializationError,
    NotInitializedError,
    RequestExpiredError,
    RequestReplyError,
    RequestStoppedError,
    RequestTimeoutError,
    ResponseParseError,
    RpcRequestError,
)
from .memory import InMemoryBroker
from .patterns import FireAndForgetPattern, RequestReplyPattern
from .retry import DeadLetterConsumer, RetryHandler, RetryPolicy, dead_letter_topic
from .service import KafkaClientService, KafkaProducerService

__all__ = [
    "AlreadyInitializedError",
    "ConfigurationError",
    "DeadLetterConsumer",
    "DeadLetterMessage",
    "DeadLetterOptions",
    "DeadLetterRecord",
    "ErrorResponse",
    "FireAndForgetPattern",
    "IMessageHandler",
    "InMemoryBroker",
    "InboundMessage",
    "KafkaClient",
    "KafkaClientService",
    "KafkaClientSettings",
    "KafkaConsumerService",
    "KafkaCoreOptions",
    "KafkaProducerService",
    "MessagingConnectionError",
    "MessagingError",
    "MessagingSerializationError",
    "NotInitializedError",
    "RequestExpiredError",
    "RequestReplyError",
    "RequestReplyOptions",
    "RequestStoppedError",
    "RequestTimeoutError",
    "ResponseParseError",
    "RetryHandler",
    "RetryOptions",
    "RetryPolicy",
    "RpcRequestError",
    "SuccessResponse",
    "TransportRecord",
    "dead_letter_topic",
]
