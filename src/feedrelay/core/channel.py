"""Rendezvous hand-off channel between pipeline stages.

``send`` returns only once a receiver has taken the item, so a slow consumer
throttles its producer. Closing is done by the (single) sending side; the
receiver drains whatever is in flight and then sees the end of the stream.

Example:
    >>> import asyncio
    >>> from feedrelay.core.channel import Channel
    >>> async def example():
    ...     ch = Channel("numbers")
    ...     async def produce():
    ...         for n in range(3):
    ...             await ch.send(n)
    ...         ch.close()
    ...     producer = asyncio.create_task(produce())
    ...     received = [n async for n in ch]
    ...     await producer
    ...     return received
    >>> asyncio.run(example())
    [0, 1, 2]
"""

from __future__ import annotations

import asyncio
from typing import Any, Generic, TypeVar

from feedrelay.core.exceptions import ChannelClosed

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """Unbuffered single-producer hand-off channel.

    With one producer at most one item is ever queued: ``send`` blocks on
    ``join()`` until the receiver has taken it.

    Args:
        name: Channel name used in logs and error messages.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        """True once the sender has closed the channel."""
        return self._closed

    async def send(self, item: T) -> None:
        """Hand ``item`` to the receiver, waiting until it has been taken.

        Raises:
            ChannelClosed: If the channel was already closed.
        """
        if self._closed:
            raise ChannelClosed(f"send on closed channel '{self.name}'")
        self._queue.put_nowait(item)
        await self._queue.join()

    async def receive(self) -> T:
        """Take the next item.

        Raises:
            ChannelClosed: Once the channel is closed and drained.
        """
        if self._drained:
            raise ChannelClosed(f"channel '{self.name}' is closed")
        item = await self._queue.get()
        self._queue.task_done()
        if item is _CLOSED:
            self._drained = True
            raise ChannelClosed(f"channel '{self.name}' is closed")
        return item

    def close(self) -> None:
        """Close the channel. Idempotent, never blocks.

        An item still in flight is delivered before the end of the stream.
        """
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Channel[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosed:
            raise StopAsyncIteration from None
