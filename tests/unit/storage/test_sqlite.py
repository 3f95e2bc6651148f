"""Tests for SQLiteStorage.

Tests cover:
- Schema creation and lifecycle
- Insert-if-absent semantics (idempotence, dedup across batches)
- Unsent listing order and limit
- Monotonic delivery state
- Partial failures (insert aborts, mark_sent isolation)
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from feedrelay.core.exceptions import StorageError
from feedrelay.models.feed import Feed, FeedBatch, FeedEntry, FeedItem
from feedrelay.protocols.storage import ItemStore
from feedrelay.storage.sqlite import SQLiteStorage

# =============================================================================
# Helpers
# =============================================================================


def make_batch(*links: str, title: str = "Post") -> FeedBatch:
    """One-feed batch with an entry per link."""
    entries = [FeedEntry(title=f"{title} {n}", link=link) for n, link in enumerate(links)]
    return FeedBatch(feeds=[Feed(url="https://example.com/rss", entries=entries)])


@pytest.fixture
async def storage():
    s = SQLiteStorage(":memory:")
    await s.initialize()
    yield s
    await s.close()


def add_trigger(storage: SQLiteStorage, sql: str) -> None:
    storage._conn.execute(sql)
    storage._conn.commit()


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestSQLiteLifecycle:
    """Tests for initialize/close."""

    async def test_implements_item_store_protocol(self, storage: SQLiteStorage) -> None:
        assert isinstance(storage, ItemStore)

    async def test_operations_require_initialize(self) -> None:
        s = SQLiteStorage(":memory:")

        with pytest.raises(StorageError, match="not initialized"):
            await s.list_unsent()

    async def test_initialize_is_idempotent(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))

        await storage.initialize()

        assert await storage.count() == 1

    async def test_creates_parent_directory(self, tmp_path) -> None:
        path = tmp_path / "config" / "rss.db"
        s = SQLiteStorage(path)

        await s.initialize()
        await s.close()

        assert path.exists()

    async def test_data_persists_across_reopen(self, tmp_path) -> None:
        path = tmp_path / "rss.db"
        s = SQLiteStorage(path)
        await s.initialize()
        await s.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))
        await s.mark_sent(FeedItem(link="https://example.com/1"))
        await s.close()

        reopened = SQLiteStorage(path)
        await reopened.initialize()
        try:
            assert await reopened.count() == 2
            unsent = await reopened.list_unsent()
            assert [item.link for item in unsent] == ["https://example.com/2"]
        finally:
            await reopened.close()

    async def test_unopenable_path_raises(self, tmp_path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        s = SQLiteStorage(blocker / "rss.db")

        with pytest.raises(StorageError, match="Failed to open database"):
            await s.initialize()


# =============================================================================
# Insert Tests
# =============================================================================


class TestSQLiteInsert:
    """Tests for insert_batch."""

    async def test_inserts_new_entries_unsent(self, storage: SQLiteStorage) -> None:
        inserted = await storage.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))

        assert inserted == 2
        item = await storage.get("https://example.com/1")
        assert item is not None
        assert item.title == "Post 0"
        assert item.sent is False
        assert item.created_at.tzinfo is not None

    async def test_empty_batch_is_noop(self, storage: SQLiteStorage) -> None:
        assert await storage.insert_batch(FeedBatch()) == 0
        assert await storage.count() == 0

    async def test_reinsert_keeps_first_title_and_created_at(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1", title="First"))
        before = await storage.get("https://example.com/1")

        inserted = await storage.insert_batch(make_batch("https://example.com/1", title="Second"))

        after = await storage.get("https://example.com/1")
        assert inserted == 0
        assert after == before
        assert after.title == "First 0"

    async def test_reinsert_does_not_reset_sent(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))
        await storage.mark_sent(FeedItem(link="https://example.com/1"))

        await storage.insert_batch(make_batch("https://example.com/1"))

        item = await storage.get("https://example.com/1")
        assert item.sent is True
        assert await storage.list_unsent() == []

    async def test_same_link_in_two_batches_stored_once(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))
        await storage.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))

        assert await storage.count() == 2

    async def test_duplicate_link_within_batch_stored_once(self, storage: SQLiteStorage) -> None:
        batch = FeedBatch(
            feeds=[
                Feed(url="a", entries=[FeedEntry(title="A", link="https://example.com/1")]),
                Feed(url="b", entries=[FeedEntry(title="B", link="https://example.com/1")]),
            ]
        )

        inserted = await storage.insert_batch(batch)

        assert inserted == 1
        assert (await storage.get("https://example.com/1")).title == "A"

    async def test_failure_aborts_rest_of_batch(self, storage: SQLiteStorage) -> None:
        add_trigger(
            storage,
            """
            CREATE TRIGGER reject_two BEFORE INSERT ON feed_items
            WHEN NEW.link = 'https://example.com/2'
            BEGIN SELECT RAISE(ABORT, 'rejected'); END
            """,
        )
        batch = make_batch("https://example.com/1", "https://example.com/2", "https://example.com/3")

        with pytest.raises(StorageError, match="example.com/2"):
            await storage.insert_batch(batch)

        # rows before the failure stay committed, rows after are not attempted
        assert await storage.get("https://example.com/1") is not None
        assert await storage.get("https://example.com/2") is None
        assert await storage.get("https://example.com/3") is None


# =============================================================================
# List Unsent Tests
# =============================================================================


class TestSQLiteListUnsent:
    """Tests for list_unsent ordering and limits."""

    async def test_newest_first(self, storage: SQLiteStorage) -> None:
        for n in range(3):
            await storage.insert_batch(make_batch(f"https://example.com/{n}"))
            await asyncio.sleep(0.002)

        unsent = await storage.list_unsent()

        assert [item.link for item in unsent] == [
            "https://example.com/2",
            "https://example.com/1",
            "https://example.com/0",
        ]

    async def test_ordered_by_created_at_descending(self, storage: SQLiteStorage) -> None:
        links = [f"https://example.com/{n}" for n in range(15)]
        await storage.insert_batch(make_batch(*links))

        unsent = await storage.list_unsent(100)

        stamps = [item.created_at for item in unsent]
        assert stamps == sorted(stamps, reverse=True)

    async def test_respects_limit(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch(*[f"https://example.com/{n}" for n in range(15)]))

        assert len(await storage.list_unsent(10)) == 10
        assert len(await storage.list_unsent(3)) == 3
        assert len(await storage.list_unsent(100)) == 15

    @pytest.mark.parametrize("limit", [0, -1])
    async def test_non_positive_limit_rejected(self, storage: SQLiteStorage, limit: int) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))

        with pytest.raises(StorageError, match="at least 1"):
            await storage.list_unsent(limit)

    async def test_excludes_sent(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))

        await storage.mark_sent(FeedItem(link="https://example.com/2"))

        assert [item.link for item in await storage.list_unsent()] == ["https://example.com/1"]

    async def test_timestamps_round_trip_as_utc(self, storage: SQLiteStorage) -> None:
        before = datetime.now(UTC)
        await storage.insert_batch(make_batch("https://example.com/1"))

        (item,) = await storage.list_unsent()

        assert before - timedelta(seconds=1) <= item.created_at <= datetime.now(UTC)


# =============================================================================
# Mark Sent Tests
# =============================================================================


class TestSQLiteMarkSent:
    """Tests for mark_sent."""

    async def test_marked_item_never_returns(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))
        (item,) = await storage.list_unsent()

        await storage.mark_sent(item)
        await storage.insert_batch(make_batch("https://example.com/1"))

        assert await storage.list_unsent() == []
        assert await storage.count(unsent_only=True) == 0

    async def test_idempotent(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1"))
        item = FeedItem(link="https://example.com/1")

        await storage.mark_sent(item)
        await storage.mark_sent(item)

        assert (await storage.get("https://example.com/1")).sent is True

    async def test_unknown_link_is_noop(self, storage: SQLiteStorage) -> None:
        await storage.mark_sent(FeedItem(link="https://example.com/missing"))

        assert await storage.count() == 0

    async def test_failure_is_isolated_per_item(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))
        add_trigger(
            storage,
            """
            CREATE TRIGGER reject_one BEFORE UPDATE ON feed_items
            WHEN OLD.link = 'https://example.com/1'
            BEGIN SELECT RAISE(ABORT, 'rejected'); END
            """,
        )

        with pytest.raises(StorageError, match="example.com/1"):
            await storage.mark_sent(
                FeedItem(link="https://example.com/1"),
                FeedItem(link="https://example.com/2"),
            )

        assert (await storage.get("https://example.com/1")).sent is False
        assert (await storage.get("https://example.com/2")).sent is True


# =============================================================================
# Stats Tests
# =============================================================================


class TestSQLiteStats:
    async def test_get_stats(self, storage: SQLiteStorage) -> None:
        await storage.insert_batch(make_batch("https://example.com/1", "https://example.com/2"))
        await storage.mark_sent(FeedItem(link="https://example.com/1"))

        stats = await storage.get_stats()

        assert stats == {"items": 2, "unsent": 1, "sent": 1, "path": ":memory:"}
