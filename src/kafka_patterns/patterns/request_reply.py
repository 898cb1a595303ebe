"""RequestReplyPattern — correlate replies on response topics to pending requests."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config import RequestReplyOptions
from ..envelope import TransportRecord, now_ms
from ..exceptions import (
    MessagingSerializationError,
    RequestExpiredError,
    RequestStoppedError,
    RequestTimeoutError,
    ResponseParseError,
    RpcRequestError,
)
from ..headers import (
    CORRELATION_ID,
    FIRE_AND_FORGET,
    MESSAGE_TYPE,
    REPLY_TO,
    REQUEST_REPLY,
    TIMESTAMP,
    find_header,
    get_header,
    merge_headers,
)
from ..serialization import decode_value, encode_value

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from ..envelope import InboundMessage
    from ..ports import IConsumerChannel, IProducerChannel

logger = logging.getLogger("kafka_patterns.request_reply")


@dataclass
class PendingRequest:
    """An in-flight request waiting for its reply."""

    correlation_id: str
    future: asyncio.Future[Any]
    created_at: float
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def resolve(self, value: Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class PendingRequestTable:
    """Sole owner of the pending requests, keyed by correlation id.

    Every method is synchronous and never awaits, so each call is atomic
    with respect to the event loop. Removal is compare-and-remove: once an
    entry has been taken by one path (reply, timeout, sweep, stop) every
    other path finds it gone and does nothing.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, correlation_id: object) -> bool:
        return correlation_id in self._entries

    def add(self, request: PendingRequest) -> None:
        if request.correlation_id in self._entries:
            raise ValueError(
                f"Duplicate pending request for correlation id {request.correlation_id}"
            )
        self._entries[request.correlation_id] = request

    def pop(self, correlation_id: str) -> PendingRequest | None:
        """Remove and return the entry, cancelling its deadline timer."""
        request = self._entries.pop(correlation_id, None)
        if request is not None:
            request.cancel_timer()
        return request

    def pop_older_than(self, max_age: float, now: float) -> list[PendingRequest]:
        expired = [
            cid for cid, req in self._entries.items() if now - req.created_at > max_age
        ]
        return [req for req in map(self.pop, expired) if req is not None]

    def drain(self) -> list[PendingRequest]:
        return [req for req in map(self.pop, list(self._entries)) if req is not None]


class RequestReplyPattern:
    """Send requests and await their correlated replies.

    Each ``send`` mints a correlation id, registers a pending request with a
    deadline timer and publishes the request with ``reply-to`` set. A single
    consume loop over the response topics routes every reply back to its
    waiter by ``correlation-id``.

    Usage::

        pattern = RequestReplyPattern(producer, consumer, ["orders.responses"])
        await pattern.start_listening()
        order = await pattern.send(
            "orders.commands", "orders.responses", {"type": "GET", "id": 1}
        )
    """

    def __init__(
        self,
        producer: IProducerChannel,
        consumer: IConsumerChannel,
        response_topics: Sequence[str],
        options: RequestReplyOptions | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure the pattern.

        Args:
            producer: Channel used to publish requests.
            consumer: Channel dedicated to the response topics.
            response_topics: Topics replies arrive on.
            options: Default timeout (seconds) and group id.
            clock: Monotonic clock used to age requests for
                ``cleanup_old_requests``.
        """
        self._producer = producer
        self._consumer = consumer
        self._response_topics = list(response_topics)
        self._options = options or RequestReplyOptions()
        self._default_timeout = self._options.default_timeout
        self._clock = clock
        self._pending = PendingRequestTable()
        self._listening = False

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def response_topics(self) -> list[str]:
        return list(self._response_topics)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start_listening(self) -> None:
        """Subscribe to the response topics and start the consume loop."""
        if self._listening:
            logger.debug("Already listening")
            return
        await self._consumer.subscribe(self._response_topics, from_beginning=False)
        await self._consumer.run(self._handle_response)
        self._listening = True
        logger.info(
            "Started listening to response topics: %s",
            ", ".join(self._response_topics),
        )

    async def stop_listening(self) -> None:
        """Reject every pending request and disconnect the consumer."""
        if not self._listening:
            return
        self._listening = False
        for request in self._pending.drain():
            request.reject(
                RequestStoppedError(
                    "Request/reply stopped", correlation_id=request.correlation_id
                )
            )
        await self._consumer.disconnect()
        logger.info("Stopped listening")

    # ── Sending ──────────────────────────────────────────────────────

    async def dispatch(
        self,
        command_topic: str,
        response_topic: str,
        message: Any,
        timeout: float | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> asyncio.Future[Any]:
        """Publish a request and return the future of its reply.

        Returns once the request is published; the caller awaits the future
        whenever it likes. If publishing fails the pending request is
        discarded and the error is raised here.
        """
        value = encode_value(message)
        correlation_id = str(uuid.uuid4())
        request_timeout = timeout or self._default_timeout

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        request = PendingRequest(
            correlation_id=correlation_id,
            future=future,
            created_at=self._clock(),
        )
        request.timer = loop.call_later(
            request_timeout, self._on_timeout, correlation_id, request_timeout
        )
        self._pending.add(request)
        future.add_done_callback(functools.partial(self._on_done, correlation_id))

        headers = merge_headers(
            {
                CORRELATION_ID: correlation_id,
                REPLY_TO: response_topic,
                MESSAGE_TYPE: REQUEST_REPLY,
                TIMESTAMP: str(now_ms()),
            },
            dict(extra_headers or {}),
        )
        record = TransportRecord(
            key=correlation_id.encode("utf-8"), value=value, headers=headers
        )
        try:
            await self._producer.publish(command_topic, [record])
        except BaseException:
            if self._pending.pop(correlation_id) is not None:
                future.cancel()
            elif future.done() and not future.cancelled():
                # Timed out mid-publish: only the publish error reaches the caller.
                future.exception()
            raise

        logger.debug(
            "Sent request with correlation id %s to %s", correlation_id, command_topic
        )
        return future

    async def send(
        self,
        command_topic: str,
        response_topic: str,
        message: Any,
        timeout: float | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Publish a request and wait for the reply's ``data``.

        Raises:
            RequestTimeoutError: No reply within ``timeout`` seconds.
            RpcRequestError: The remote handler replied with an error.
            ResponseParseError: The reply body was not a valid envelope.
            RequestStoppedError: ``stop_listening`` ran while waiting.
            RequestExpiredError: ``cleanup_old_requests`` swept the request.
        """
        future = await self.dispatch(
            command_topic, response_topic, message, timeout, extra_headers
        )
        return await future

    def _on_timeout(self, correlation_id: str, timeout: float) -> None:
        request = self._pending.pop(correlation_id)
        if request is None:
            return
        request.reject(RequestTimeoutError(correlation_id, timeout))
        logger.warning("Request %s timed out after %.3fs", correlation_id, timeout)

    def _on_done(self, correlation_id: str, future: asyncio.Future[Any]) -> None:
        # A waiter cancelled by its caller must not linger in the table.
        if future.cancelled():
            self._pending.pop(correlation_id)

    # ── Receiving ────────────────────────────────────────────────────

    async def _handle_response(self, message: InboundMessage) -> None:
        """Route one message from a response topic to its pending request."""
        if not message.value:
            return
        headers = message.headers
        if not headers:
            logger.debug("Received response without headers on %s", message.topic)
            return
        if get_header(headers, MESSAGE_TYPE) == FIRE_AND_FORGET:
            return
        found = find_header(headers, CORRELATION_ID)
        if found is None:
            logger.debug(
                "Received response without correlation-id. Available headers: %s",
                ", ".join(headers),
            )
            return
        correlation_id = found[1]
        if not correlation_id:
            logger.debug("Received response with an empty correlation-id")
            return

        request = self._pending.pop(correlation_id)
        if request is None:
            logger.debug("No pending request for correlation id %s", correlation_id)
            return
        self._settle(request, message.value)

    def _settle(self, request: PendingRequest, value: bytes) -> None:
        correlation_id = request.correlation_id
        try:
            body = decode_value(value)
        except MessagingSerializationError as e:
            error = ResponseParseError(
                f"Failed to parse response: {e.message}", correlation_id=correlation_id
            )
            error.__cause__ = e.__cause__ or e
            request.reject(error)
            logger.error("Error parsing response for %s: %s", correlation_id, e.message)
            return

        if not isinstance(body, dict):
            request.reject(
                ResponseParseError(
                    "Failed to parse response: envelope is not a JSON object",
                    correlation_id=correlation_id,
                )
            )
            logger.error("Response for %s is not a JSON object", correlation_id)
            return

        if body.get("success"):
            request.resolve(body.get("data"))
            logger.debug("Received success response for %s", correlation_id)
            return

        error_message = body.get("message") or body.get("error") or "Unknown error"
        status_code = _status_code(body.get("statusCode"))
        error_name = body.get("error") or "InternalServerError"
        request.reject(
            RpcRequestError(
                str(error_message),
                status_code=status_code,
                error_name=str(error_name),
                correlation_id=correlation_id,
            )
        )
        logger.warning(
            "Received error response for %s: %s (status: %d)",
            correlation_id,
            error_message,
            status_code,
        )

    # ── Maintenance ──────────────────────────────────────────────────

    def get_pending_requests_count(self) -> int:
        return len(self._pending)

    def cleanup_old_requests(self, max_age: float = 60.0) -> int:
        """Reject and drop requests older than ``max_age`` seconds.

        Returns the number of requests removed.
        """
        expired = self._pending.pop_older_than(max_age, self._clock())
        for request in expired:
            request.reject(
                RequestExpiredError(
                    "Request expired", correlation_id=request.correlation_id
                )
            )
        if expired:
            logger.info("Cleaned up %d old pending requests", len(expired))
        return len(expired)


def _status_code(value: Any) -> int:
    if not value or isinstance(value, bool):
        return 500
    try:
        return int(value)
    except (TypeError, ValueError):
        return 500
