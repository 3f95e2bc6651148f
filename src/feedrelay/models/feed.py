"""Feed models - what fetchers produce and what the store keeps.

- `FeedEntry`: one entry as found in a fetched feed
- `Feed`: a fetched feed with its ordered entries
- `FeedBatch`: the result of one fetch cycle
- `FeedItem`: a persisted entry with its delivery state

Example:
    >>> from feedrelay.models.feed import Feed, FeedEntry
    >>> feed = Feed(
    ...     url="https://example.com/rss",
    ...     entries=[FeedEntry(title=f"Post {n}", link=f"https://example.com/{n}") for n in range(5)],
    ... )
    >>> [e.link for e in feed.truncate(2).entries]
    ['https://example.com/0', 'https://example.com/1']
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

from pydantic import Field

from feedrelay.models.base import FeedRelayModel


class FeedEntry(FeedRelayModel):
    """A single entry of a fetched feed."""

    title: str = Field(default="", description="Entry title")
    link: str = Field(..., min_length=1, description="Entry URL, used as the dedup key")


class Feed(FeedRelayModel):
    """A fetched syndication feed.

    Example:
        >>> from feedrelay.models.feed import Feed
        >>> Feed(url="https://example.com/rss").entries
        []
    """

    url: str = Field(..., min_length=1, description="Source URL the feed was fetched from")
    title: str = Field(default="", description="Feed title")
    entries: list[FeedEntry] = Field(default_factory=list, description="Entries in source order")

    def truncate(self, limit: int) -> Feed:
        """Return a copy keeping only the first ``limit`` entries."""
        if len(self.entries) <= limit:
            return self
        return self.model_copy(update={"entries": self.entries[:limit]})


class FeedBatch(FeedRelayModel):
    """All feeds retrieved in one fetch cycle.

    Feeds are kept in the order their fetches completed. Uniqueness of
    entries is not required here; the store deduplicates on insert.

    Example:
        >>> from feedrelay.models.feed import Feed, FeedBatch, FeedEntry
        >>> batch = FeedBatch(feeds=[
        ...     Feed(url="a", entries=[FeedEntry(link="https://a/1")]),
        ...     Feed(url="b", entries=[FeedEntry(link="https://b/1"), FeedEntry(link="https://b/2")]),
        ... ])
        >>> batch.entry_count
        3
    """

    feeds: list[Feed] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def entries(self) -> Iterator[FeedEntry]:
        """Iterate over every entry of every feed, feed by feed."""
        for feed in self.feeds:
            yield from feed.entries

    @property
    def entry_count(self) -> int:
        return sum(len(feed.entries) for feed in self.feeds)


class FeedItem(FeedRelayModel):
    """A stored entry with its delivery state.

    Example:
        >>> from feedrelay.models.feed import FeedItem
        >>> item = FeedItem(link="https://example.com/1", title="Hello")
        >>> item.sent
        False
        >>> print(item.message_text())
        Hello
        https://example.com/1
    """

    link: str = Field(..., min_length=1, description="Unique identifier")
    title: str = Field(default="")
    sent: bool = Field(default=False, description="Delivered to the destination")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="First time the entry was stored",
    )

    @classmethod
    def from_entry(cls, entry: FeedEntry, created_at: datetime | None = None) -> FeedItem:
        """Create an unsent item from a fetched entry."""
        return cls(
            link=entry.link,
            title=entry.title,
            created_at=created_at or datetime.now(UTC),
        )

    def message_text(self) -> str:
        """Outbound message: title, then link on its own line."""
        return f"{self.title}\n{self.link}"
