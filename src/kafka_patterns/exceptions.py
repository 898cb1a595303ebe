"""Exceptions for kafka-patterns."""

from __future__ import annotations

from typing import Any


class MessagingError(Exception):
    """Root exception for the entire kafka-patterns package.

    Carries an optional machine-readable ``code`` and a ``details`` mapping
    with whatever context the raising site had at hand.
    """

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    @classmethod
    def from_error(
        cls,
        error: object,
        default_message: str = "Unknown error occurred",
    ) -> MessagingError:
        """Normalize any raised or rejected value into a ``MessagingError``.

        Existing ``MessagingError`` instances are returned unchanged. Other
        exceptions keep their message and record their type in ``details``.
        Strings become the message; anything else is rendered with ``repr``
        after ``default_message`` so callers never see an opaque object.
        """
        if isinstance(error, MessagingError):
            return error
        if isinstance(error, BaseException):
            wrapped = cls(
                str(error) or default_message,
                details={"original_error": type(error).__name__},
            )
            wrapped.__cause__ = error
            return wrapped
        if isinstance(error, str):
            return cls(error or default_message)
        return cls(
            f"{default_message}: {error!r}",
            details={"original_error": error},
        )


class ConfigurationError(MessagingError):
    """Raised synchronously when required settings are missing or invalid."""

    default_code = "INVALID_OPTIONS"


class MessagingConnectionError(MessagingError):
    """Raised when the transport fails to connect, subscribe or publish."""

    default_code = "TRANSPORT_ERROR"


class MessagingSerializationError(MessagingError):
    """Raised when a message value cannot be encoded or decoded."""

    default_code = "SERIALIZATION_ERROR"


class AlreadyInitializedError(MessagingError):
    """Raised when the request/reply pattern is initialized twice."""

    default_code = "REQUEST_REPLY_ALREADY_INITIALIZED"


class NotInitializedError(MessagingError):
    """Raised when a service is used before ``start()``."""

    default_code = "CLIENT_NOT_INITIALIZED"


# ── Request/Reply outcomes ───────────────────────────────────────────


class RequestReplyError(MessagingError):
    """Base class for every way a pending request can be rejected."""

    def __init__(
        self,
        message: str,
        correlation_id: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.correlation_id = correlation_id
        super().__init__(message, code=code, details=details)


class RequestTimeoutError(RequestReplyError):
    """The deadline timer fired before a reply arrived."""

    default_code = "REQUEST_TIMEOUT"

    def __init__(self, correlation_id: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            f"Request timeout after {round(timeout * 1000)}ms "
            f"for correlation id {correlation_id}",
            correlation_id=correlation_id,
        )


class RequestStoppedError(RequestReplyError):
    """The engine stopped listening while the request was in flight."""

    default_code = "REQUEST_REPLY_STOPPED"


class RequestExpiredError(RequestReplyError):
    """The request was swept by ``cleanup_old_requests``."""

    default_code = "REQUEST_EXPIRED"


class ResponseParseError(RequestReplyError):
    """A reply matched a pending request but its body could not be parsed."""

    default_code = "RESPONSE_PARSE_ERROR"


class RpcRequestError(RequestReplyError):
    """The remote handler reported an application-level failure.

    Also raised by message handlers to control the ``statusCode`` and
    ``error`` fields of the error reply they produce.
    """

    default_code = "RPC_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_name: str = "InternalServerError",
        correlation_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.error_name = error_name
        super().__init__(message, correlation_id=correlation_id)
