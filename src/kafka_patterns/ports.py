from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .envelope import InboundMessage, TransportRecord

    MessageCallback = Callable[[InboundMessage], Awaitable[None]]


@runtime_checkable
class IProducerChannel(Protocol):
    """
    Port for the publishing side of a transport connection.

    Adapters encode ``TransportRecord.headers`` to the wire format themselves.
    """

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def publish(self, topic: str, records: Sequence[TransportRecord]) -> None:
        """
        Publish *records* to *topic* as one transport call.

        Raises:
            MessagingConnectionError: The transport rejected the publish.
        """
        ...


@runtime_checkable
class IConsumerChannel(Protocol):
    """
    Port for one consumer-group member of a transport connection.

    Messages are handed to the ``run`` callback one at a time; an exception
    raised by the callback is logged and does not stop delivery.
    """

    async def connect(self) -> None: ...

    async def subscribe(self, topics: Sequence[str], from_beginning: bool = False) -> None:
        ...

    async def run(self, on_message: MessageCallback) -> None:
        """Register *on_message* and start delivering in the background."""
        ...

    async def disconnect(self) -> None: ...


@runtime_checkable
class ITransport(Protocol):
    """Factory for producer and consumer channels on one broker cluster."""

    def producer(self, **config: Any) -> IProducerChannel: ...

    def consumer(self, group_id: str, **config: Any) -> IConsumerChannel: ...

    async def health_check(self) -> bool: ...
