"""In-memory item store.

Implements the same contract as the SQLite store without persistence. Used
by tests and by ``feedrelay run --dry-run``.

Example:
    >>> from feedrelay.storage.memory import MemoryStorage
    >>> storage = MemoryStorage()
    >>> hasattr(storage, "insert_batch")
    True
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from feedrelay.core.exceptions import StorageError
from feedrelay.models.feed import FeedBatch, FeedItem


class MemoryStorage:
    """In-memory storage keyed by link.

    Data is lost when the process exits.

    Example:
        >>> from feedrelay.storage.memory import MemoryStorage
        >>> s = MemoryStorage()
        >>> s._initialized
        False
    """

    def __init__(self) -> None:
        self._items: dict[str, FeedItem] = {}  # link -> item, in insertion order
        self._initialized = False

    async def initialize(self) -> None:
        """No-op for memory storage."""
        self._initialized = True

    async def close(self) -> None:
        """Clear all data."""
        self._items.clear()
        self._initialized = False

    def _check(self) -> None:
        if not self._initialized:
            raise StorageError("Storage not initialized. Call initialize() first.")

    async def insert_batch(self, batch: FeedBatch) -> int:
        """Insert entries whose link is not stored yet."""
        self._check()
        inserted = 0
        for entry in batch.entries():
            if entry.link in self._items:
                continue
            self._items[entry.link] = FeedItem.from_entry(entry, created_at=datetime.now(UTC))
            inserted += 1
        return inserted

    async def list_unsent(self, limit: int = 10) -> list[FeedItem]:
        """Unsent items, most recently stored first."""
        self._check()
        if limit < 1:
            raise StorageError(f"limit must be at least 1, got {limit}")
        # dicts keep insertion order, so reversing breaks created_at ties newest-first
        unsent = [item for item in reversed(self._items.values()) if not item.sent]
        unsent.sort(key=lambda item: item.created_at, reverse=True)
        return [item.model_copy() for item in unsent[:limit]]

    async def mark_sent(self, *items: FeedItem) -> None:
        """Set the sent flag; unknown links are ignored."""
        self._check()
        for item in items:
            stored = self._items.get(item.link)
            if stored is not None:
                stored.sent = True

    async def get(self, link: str) -> FeedItem | None:
        """Get a stored item by link."""
        self._check()
        item = self._items.get(link)
        return item.model_copy() if item else None

    async def count(self, *, unsent_only: bool = False) -> int:
        """Count stored items."""
        self._check()
        if unsent_only:
            return sum(1 for item in self._items.values() if not item.sent)
        return len(self._items)

    async def get_stats(self) -> dict[str, Any]:
        """Get storage statistics."""
        total = await self.count()
        unsent = await self.count(unsent_only=True)
        return {"items": total, "unsent": unsent, "sent": total - unsent, "path": ":memory:"}
