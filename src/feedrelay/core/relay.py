"""FeedRelay - process-level wiring of the relay.

`FeedRelay` owns the store, fetcher and sender lifecycles, runs the pipeline
and, when a Telegram bot is attached, the command listener next to it.

Example:
    >>> import asyncio
    >>> from feedrelay.core.relay import FeedRelay
    >>> from feedrelay.notifier.console import ConsoleNotifier
    >>> from feedrelay.storage.memory import MemoryStorage
    >>> async def example(fetcher):
    ...     relay = FeedRelay(MemoryStorage(), fetcher, ConsoleNotifier(), ["https://e.com/rss"])
    ...     async with relay:
    ...         relay.install_signal_handlers()
    ...         await relay.run()
"""

from __future__ import annotations

import asyncio
import logging
import signal
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from feedrelay.commands import CommandHandler, TelegramCommandListener
from feedrelay.core.runtime import (
    DEFAULT_DELIVERY_INTERVAL,
    DEFAULT_FETCH_INTERVAL,
    DEFAULT_ITEMS_LIMIT,
    RuntimeConfig,
    format_duration,
)
from feedrelay.pipeline import Pipeline

if TYPE_CHECKING:
    from collections.abc import Iterable

    from feedrelay.notifier.telegram import TelegramBot
    from feedrelay.protocols.feed import FeedFetcher
    from feedrelay.protocols.notification import MessageSender
    from feedrelay.protocols.storage import ItemStore

logger = logging.getLogger(__name__)


class FeedRelay:
    """Runs the feed relay pipeline and its command front end.

    Args:
        storage: Item store; opened by ``initialize()``.
        fetcher: Feed fetcher.
        sender: Message sender for feed items.
        feed_urls: Feed sources.
        config: Runtime configuration shared with the commands.
        command_bot: Telegram bot to take commands from. No listener runs
            without one.

    Example:
        >>> from feedrelay.core.relay import FeedRelay
        >>> from feedrelay.notifier.console import ConsoleNotifier
        >>> from feedrelay.storage.memory import MemoryStorage
        >>> relay = FeedRelay(MemoryStorage(), None, ConsoleNotifier(), ["https://e.com/rss"])
        >>> relay.info()["feed_count"]
        1
        >>> relay.info()["commands"]
        False
    """

    def __init__(
        self,
        storage: ItemStore,
        fetcher: FeedFetcher,
        sender: MessageSender,
        feed_urls: Iterable[str],
        *,
        config: RuntimeConfig | None = None,
        command_bot: TelegramBot | None = None,
    ) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._sender = sender
        self._config = config or RuntimeConfig()
        self._pipeline = Pipeline(storage, fetcher, sender, feed_urls, self._config)
        self._bot = command_bot
        self._listener: TelegramCommandListener | None = None
        if command_bot is not None:
            handler = CommandHandler(self._config, self._pipeline.stats, storage)
            self._listener = TelegramCommandListener(command_bot, handler)
        self._initialized = False

    @classmethod
    def for_telegram(
        cls,
        bot: TelegramBot,
        chat_id: int,
        feed_urls: Iterable[str],
        *,
        fetch_interval: timedelta = DEFAULT_FETCH_INTERVAL,
        delivery_interval: timedelta = DEFAULT_DELIVERY_INTERVAL,
        items_limit: int = DEFAULT_ITEMS_LIMIT,
        storage: ItemStore,
        fetcher: FeedFetcher | None = None,
        commands: bool = True,
    ) -> FeedRelay:
        """Relay delivering to ``chat_id`` and taking commands through ``bot``.

        Raises:
            ConfigurationError: If an interval or the limit is invalid.
        """
        from feedrelay.adapter.rss import RSSFeedFetcher
        from feedrelay.notifier.telegram import TelegramNotifier

        config = RuntimeConfig(
            fetch_interval=fetch_interval,
            delivery_interval=delivery_interval,
            items_limit=items_limit,
        )
        return cls(
            storage,
            fetcher or RSSFeedFetcher(),
            TelegramNotifier(bot, chat_id),
            feed_urls,
            config=config,
            command_bot=bot if commands else None,
        )

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def command_listener(self) -> TelegramCommandListener | None:
        return self._listener

    async def initialize(self) -> None:
        """Open the store and check the bot token.

        Raises:
            StorageError: If the store cannot be opened.
            DeliveryError: If Telegram rejects the bot token.
        """
        if self._initialized:
            return
        await self._storage.initialize()
        if self._bot is not None:
            me = await self._bot.get_me()
            logger.info(f"Authorized on account {me.get('username', '?')}")
        self._initialized = True

    async def close(self) -> None:
        """Close the fetcher, the bot and the store."""
        for resource in (self._fetcher, self._sender, self._bot):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        await self._storage.close()
        self._initialized = False

    async def __aenter__(self) -> FeedRelay:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def stop(self) -> None:
        """Request a cooperative shutdown."""
        self._pipeline.stop()

    def install_signal_handlers(self) -> None:
        """Stop the relay on SIGINT / SIGTERM.

        Must be called from the running event loop.
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except NotImplementedError:
                logger.debug(f"Signal handlers not supported, {sig.name} ignored")

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down")
        self.stop()

    async def run(self) -> None:
        """Run until stopped; returns once the pipeline has drained."""
        await self.initialize()
        async with asyncio.TaskGroup() as tg:
            listener = None
            if self._listener is not None:
                listener = tg.create_task(self._listener.run(), name="commands")
            try:
                await self._pipeline.run()
            finally:
                if listener is not None:
                    listener.cancel()

    def info(self) -> dict[str, Any]:
        return {
            "feeds": self._pipeline.feed_urls,
            "feed_count": len(self._pipeline.feed_urls),
            "commands": self._listener is not None,
            "initialized": self._initialized,
            "fetch_interval": format_duration(self._config.fetch_interval),
            "delivery_interval": format_duration(self._config.delivery_interval),
            "items_limit": self._config.items_limit,
        }
