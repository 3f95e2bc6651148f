"""Feed fetcher protocol.

Example:
    >>> from feedrelay.protocols.feed import FeedFetcher
    >>> hasattr(FeedFetcher, "fetch")
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedrelay.models import Feed


@runtime_checkable
class FeedFetcher(Protocol):
    """Retrieves and parses one syndication source."""

    async def fetch(self, url: str) -> Feed:
        """Fetch the feed at ``url``.

        Raises:
            FeedError: If the feed cannot be retrieved or parsed.
        """
        ...
