"""Outbound message protocol.

Defines the interface used to deliver formatted feed items to the fixed
destination (a Telegram chat, the console...).

Example:
    >>> from feedrelay.protocols.notification import MessageSender
    >>> hasattr(MessageSender, "send")
    True
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageSender(Protocol):
    """Delivers text messages to a fixed destination."""

    async def send(self, text: str) -> None:
        """Deliver ``text``.

        Raises:
            DeliveryError: If the message was not accepted.
        """
        ...
