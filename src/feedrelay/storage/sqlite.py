"""SQLite storage backend - the default persistent item store.

Just pass a path: the parent directory and the schema are created on
``initialize()``.

Example:
    >>> from feedrelay.storage.sqlite import SQLiteStorage
    >>>
    >>> storage = SQLiteStorage("config/rss.db")
    >>> await storage.initialize()
    >>>
    >>> # Or use in-memory for testing
    >>> storage = SQLiteStorage(":memory:")
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from feedrelay.core.exceptions import StorageError
from feedrelay.models.feed import FeedBatch, FeedItem

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """SQLite item store with auto-schema creation.

    Every statement is committed on its own. ``insert_batch`` is therefore
    not atomic: rows inserted before a failure stay in the table.

    Args:
        path: Database file path, or ":memory:" for in-memory.
        timeout: Lock timeout in seconds (default 30).

    Example:
        >>> storage = SQLiteStorage(":memory:")
        >>> await storage.initialize()
        >>> await storage.insert_batch(batch)
        >>> unsent = await storage.list_unsent(10)
    """

    def __init__(
        self,
        path: str | Path = ":memory:",
        *,
        timeout: float = 30.0,
    ) -> None:
        self._path = str(path)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._initialized = False

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor with automatic commit/rollback."""
        if not self._conn:
            raise StorageError("Storage not initialized. Call initialize() first.")
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    async def initialize(self) -> None:
        """Open the database and create the schema.

        Safe to call multiple times.

        Raises:
            StorageError: If the database cannot be opened or the schema
                cannot be created.
        """
        if self._initialized:
            return
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._path, timeout=self._timeout)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open database {self._path}: {e}") from e
        self._initialized = True
        logger.info(f"SQLite storage ready at {self._path}")

    def _create_schema(self) -> None:
        """Create tables and indexes."""
        with self._cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS feed_items (
                    link TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL DEFAULT '',
                    sent INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_feed_items_unsent ON feed_items(sent, created_at)"
            )

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
        self._initialized = False

    # --- Item Operations ---

    async def insert_batch(self, batch: FeedBatch) -> int:
        """Insert entries that are not stored yet.

        Raises:
            StorageError: On the first failing insert; later entries of the
                batch are not attempted.
        """
        inserted = 0
        for entry in batch.entries():
            created_at = datetime.now(UTC).isoformat(timespec="microseconds")
            try:
                with self._cursor() as cursor:
                    cursor.execute(
                        """
                        INSERT OR IGNORE INTO feed_items (link, title, sent, created_at)
                        VALUES (?, ?, 0, ?)
                        """,
                        (entry.link, entry.title, created_at),
                    )
                    inserted += cursor.rowcount
            except sqlite3.Error as e:
                raise StorageError(
                    f"Failed to insert {entry.link} ({inserted} new items committed): {e}"
                ) from e
        return inserted

    async def list_unsent(self, limit: int = 10) -> list[FeedItem]:
        """Unsent items, most recently stored first."""
        if limit < 1:
            raise StorageError(f"limit must be at least 1, got {limit}")
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    SELECT link, title, sent, created_at
                    FROM feed_items
                    WHERE sent = 0
                    ORDER BY created_at DESC, rowid DESC
                    LIMIT ?
                    """,
                    (limit,),
                )
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list unsent items: {e}") from e
        return [self._row_to_item(row) for row in rows]

    async def mark_sent(self, *items: FeedItem) -> None:
        """Set the sent flag for each item, attempting all of them."""
        failed: list[str] = []
        for item in items:
            try:
                with self._cursor() as cursor:
                    cursor.execute("UPDATE feed_items SET sent = 1 WHERE link = ?", (item.link,))
            except sqlite3.Error as e:
                logger.error(f"Failed to mark {item.link} as sent: {e}")
                failed.append(item.link)
        if failed:
            raise StorageError(f"Failed to mark as sent: {', '.join(failed)}")

    async def get(self, link: str) -> FeedItem | None:
        """Get a stored item by link."""
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    "SELECT link, title, sent, created_at FROM feed_items WHERE link = ?",
                    (link,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {link}: {e}") from e
        return self._row_to_item(row) if row else None

    async def count(self, *, unsent_only: bool = False) -> int:
        """Count stored items."""
        sql = "SELECT COUNT(*) FROM feed_items"
        if unsent_only:
            sql += " WHERE sent = 0"
        try:
            with self._cursor() as cursor:
                cursor.execute(sql)
                return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count items: {e}") from e

    async def get_stats(self) -> dict[str, Any]:
        """Get storage statistics."""
        total = await self.count()
        unsent = await self.count(unsent_only=True)
        return {
            "items": total,
            "unsent": unsent,
            "sent": total - unsent,
            "path": self._path,
        }

    # --- Helper Methods ---

    def _row_to_item(self, row: sqlite3.Row) -> FeedItem:
        """Convert a database row to FeedItem."""
        return FeedItem(
            link=row["link"],
            title=row["title"],
            sent=bool(row["sent"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
