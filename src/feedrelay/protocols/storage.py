"""Item store protocol.

Defines the narrow contract the pipeline uses to persist entries and their
delivery state. The store is the single source of truth for "already
delivered".

Example:
    >>> from feedrelay.protocols.storage import ItemStore
    >>> hasattr(ItemStore, "insert_batch")
    True
    >>> hasattr(ItemStore, "mark_sent")
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedrelay.models import FeedBatch, FeedItem


@runtime_checkable
class ItemStore(Protocol):
    """Storage backend protocol.

    See Also:
        feedrelay.storage.sqlite.SQLiteStorage: Persistent implementation
        feedrelay.storage.memory.MemoryStorage: In-memory implementation
    """

    async def insert_batch(self, batch: FeedBatch) -> int:
        """Insert every entry of the batch unless its link is already stored.

        Existing rows are left untouched. The first failing insert aborts the
        rest of the call; rows inserted before it stay committed.

        Returns:
            Number of newly inserted items.

        Raises:
            StorageError: If an insert fails.
        """
        ...

    async def list_unsent(self, limit: int = 10) -> list[FeedItem]:
        """Return up to ``limit`` unsent items, most recently stored first.

        Raises:
            StorageError: If the read fails or ``limit`` is below 1.
        """
        ...

    async def mark_sent(self, *items: FeedItem) -> None:
        """Flag items as delivered. Idempotent.

        Every item is attempted even if an earlier one fails.

        Raises:
            StorageError: If any item could not be updated.
        """
        ...

    async def count(self, *, unsent_only: bool = False) -> int:
        """Count stored items."""
        ...

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Open the store and create the schema if needed."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...
