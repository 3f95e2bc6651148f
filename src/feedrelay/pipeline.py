"""Pipeline - the concurrent fetch / ingest / deliver / acknowledge loop.

Four long-lived stages run side by side:

1. Fetch: every ``fetch_interval`` retrieve all feeds concurrently, cap each
   at ``items_limit`` entries and hand the batch to ingest
2. Ingest: insert new entries into the store (insert-if-absent by link)
3. Deliver: every ``delivery_interval`` load up to 10 unsent items and send
   them one by one; each delivered item is handed to acknowledge
4. Acknowledge: mark delivered items as sent in the store

Stages are connected by rendezvous channels. ``stop()`` sets a shared
cancellation event that the two timer stages observe while waiting; each
then closes its output channel, the consumers drain and exit, and ``run()``
returns once all four stages are done.

Example:
    >>> from feedrelay.pipeline import Pipeline, PipelineStats
    >>> hasattr(Pipeline, "run")
    True
    >>> PipelineStats().items_sent
    0
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from feedrelay.core.channel import Channel
from feedrelay.core.runtime import RuntimeConfig, format_duration
from feedrelay.models.feed import Feed, FeedBatch, FeedItem

if TYPE_CHECKING:
    from collections.abc import Iterable

    from feedrelay.protocols.feed import FeedFetcher
    from feedrelay.protocols.notification import MessageSender
    from feedrelay.protocols.storage import ItemStore

logger = logging.getLogger(__name__)

# Max items loaded per delivery cycle, independent of items_limit
DELIVERY_BATCH_SIZE = 10


@dataclass
class PipelineStats:
    """Counters for a running pipeline.

    Example:
        >>> from feedrelay.pipeline import PipelineStats
        >>> stats = PipelineStats(items_sent=8, send_errors=2)
        >>> stats.send_failure_rate
        0.2
    """

    fetch_cycles: int = 0
    feeds_fetched: int = 0
    fetch_errors: int = 0
    batches_ingested: int = 0
    items_inserted: int = 0
    ingest_errors: int = 0
    delivery_cycles: int = 0
    items_sent: int = 0
    send_errors: int = 0
    ack_errors: int = 0
    last_error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def send_failure_rate(self) -> float:
        attempts = self.items_sent + self.send_errors
        if attempts == 0:
            return 0.0
        return self.send_errors / attempts

    def describe(self) -> str:
        """Summary used by the ``/stats`` command."""
        lines = [
            f"Running since: {self.started_at:%Y-%m-%d %H:%M:%S} UTC",
            f"Fetch cycles: {self.fetch_cycles} "
            f"(feeds fetched: {self.feeds_fetched}, failed: {self.fetch_errors})",
            f"New items stored: {self.items_inserted} (insert failures: {self.ingest_errors})",
            f"Delivery cycles: {self.delivery_cycles}",
            f"Sent: {self.items_sent} (send failures: {self.send_errors}, "
            f"ack failures: {self.ack_errors})",
        ]
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        return "\n".join(lines)


class Pipeline:
    """Feed relay pipeline.

    Args:
        storage: Item store, the source of truth for delivered items.
        fetcher: Retrieves one feed by URL.
        sender: Delivers one formatted message.
        feed_urls: Feed sources; duplicates are ignored.
        config: Runtime configuration (defaults: 13s / 24s / 10 items).
        delivery_batch_size: Max items loaded per delivery cycle.

    Example:
        >>> import asyncio
        >>> from feedrelay.pipeline import Pipeline
        >>> from feedrelay.storage.memory import MemoryStorage
        >>> from feedrelay.notifier.console import ConsoleNotifier
        >>> async def example(fetcher):
        ...     storage = MemoryStorage()
        ...     await storage.initialize()
        ...     pipeline = Pipeline(storage, fetcher, ConsoleNotifier(), ["https://e.com/rss"])
        ...     runner = asyncio.create_task(pipeline.run())
        ...     await asyncio.sleep(60)
        ...     pipeline.stop()
        ...     await runner
    """

    def __init__(
        self,
        storage: ItemStore,
        fetcher: FeedFetcher,
        sender: MessageSender,
        feed_urls: Iterable[str],
        config: RuntimeConfig | None = None,
        *,
        delivery_batch_size: int = DELIVERY_BATCH_SIZE,
    ) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._sender = sender
        self._feed_urls = list(dict.fromkeys(feed_urls))
        self._config = config or RuntimeConfig()
        self._delivery_batch_size = delivery_batch_size
        self._stop = asyncio.Event()
        self._running = False
        self.stats = PipelineStats()

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    @property
    def feed_urls(self) -> list[str]:
        return list(self._feed_urls)

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Request shutdown.

        Takes effect when the timer stages next wait; a fetch or delivery
        cycle already in progress is completed first.
        """
        if not self._stop.is_set():
            logger.info("Pipeline stop requested")
        self._stop.set()

    async def run(self) -> None:
        """Run all four stages until ``stop()`` is called and they drain.

        Raises:
            RuntimeError: If the pipeline is already running.
        """
        if self._running:
            raise RuntimeError("Pipeline is already running")
        self._running = True

        fetched: Channel[FeedBatch] = Channel("fetched")
        delivered: Channel[FeedItem] = Channel("delivered")
        logger.info(
            f"Starting pipeline for {len(self._feed_urls)} feeds "
            f"(fetch every {format_duration(self._config.fetch_interval)}, "
            f"deliver every {format_duration(self._config.delivery_interval)})"
        )
        try:
            async with asyncio.TaskGroup() as tg:
                tg.create_task(self._fetch_stage(fetched), name="fetch")
                tg.create_task(self._ingest_stage(fetched), name="ingest")
                tg.create_task(self._delivery_stage(delivered), name="delivery")
                tg.create_task(self._ack_stage(delivered), name="ack")
        finally:
            self._running = False
        logger.info("Pipeline stopped")

    async def _tick(self, interval: timedelta) -> bool:
        """Wait one interval. Returns False if stop was requested instead."""
        if self._stop.is_set():
            return False
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=interval.total_seconds())
        except TimeoutError:
            return True
        return False

    # --- Fetch ---

    async def _fetch_stage(self, out: Channel[FeedBatch]) -> None:
        try:
            while await self._tick(self._config.fetch_interval):
                batch = await self.fetch_cycle()
                await out.send(batch)
        finally:
            out.close()
        logger.info("Fetch stage done")

    async def fetch_cycle(self) -> FeedBatch:
        """Fetch every feed once and build the batch.

        ``items_limit`` is read once, before any fetch starts, so a change made
        during the cycle only applies to the next one. One task per feed;
        fine for a handful of feeds, not meant for hundreds.
        """
        limit = self._config.items_limit
        feeds: list[Feed] = []
        async with asyncio.TaskGroup() as tg:
            for url in self._feed_urls:
                tg.create_task(self._fetch_into(url, limit, feeds), name=f"fetch:{url}")

        self.stats.fetch_cycles += 1
        batch = FeedBatch(feeds=feeds)
        logger.info(f"Feeds fetched: {len(feeds)}/{len(self._feed_urls)} ({batch.entry_count} entries)")
        return batch

    async def _fetch_into(self, url: str, limit: int, feeds: list[Feed]) -> None:
        try:
            feed = await self._fetcher.fetch(url)
        except Exception as e:
            self.stats.fetch_errors += 1
            self.stats.last_error = f"fetch {url}: {e}"
            logger.warning(f"Failed to fetch feed {url}: {e}")
            return
        self.stats.feeds_fetched += 1
        feeds.append(feed.truncate(limit))

    # --- Ingest ---

    async def _ingest_stage(self, batches: Channel[FeedBatch]) -> None:
        async for batch in batches:
            try:
                inserted = await self._storage.insert_batch(batch)
            except Exception as e:
                self.stats.ingest_errors += 1
                self.stats.last_error = f"insert: {e}"
                logger.error(f"Failed to insert: {e}")
                continue
            self.stats.batches_ingested += 1
            self.stats.items_inserted += inserted
            if inserted:
                logger.info(f"Stored {inserted} new items")
        logger.info("Ingest stage done")

    # --- Delivery ---

    async def _delivery_stage(self, out: Channel[FeedItem]) -> None:
        try:
            while await self._tick(self._config.delivery_interval):
                await self._delivery_cycle(out)
        finally:
            out.close()
        logger.info("Delivery stage done")

    async def _delivery_cycle(self, out: Channel[FeedItem]) -> None:
        self.stats.delivery_cycles += 1
        try:
            items = await self._storage.list_unsent(self._delivery_batch_size)
        except Exception as e:
            self.stats.last_error = f"list unsent: {e}"
            logger.error(f"Failed to load unsent items, skipping cycle: {e}")
            return

        if items:
            logger.info(f"Items to send: {len(items)}")
        for item in items:
            try:
                await self._sender.send(item.message_text())
            except Exception as e:
                self.stats.send_errors += 1
                self.stats.last_error = f"send {item.link}: {e}"
                logger.warning(f"Failed to send {item.link}: {e}")
                continue
            self.stats.items_sent += 1
            await out.send(item)

    # --- Acknowledge ---

    async def _ack_stage(self, items: Channel[FeedItem]) -> None:
        async for item in items:
            try:
                await self._storage.mark_sent(item)
            except Exception as e:
                self.stats.ack_errors += 1
                self.stats.last_error = f"mark sent {item.link}: {e}"
                logger.error(f"Failed to mark as sent: {e}")
        logger.info("Acknowledge stage done")
