"""
FeedRelay - RSS/Atom to Telegram relay.

FeedRelay periodically fetches a fixed set of feeds, stores new entries in a
local SQLite database keyed by link, and forwards unsent entries to a Telegram
chat at a steady pace. Intervals and the per-feed item cap can be changed at
runtime through chat commands.

Quick Start:
    >>> from feedrelay import FeedRelay, SQLiteStorage, TelegramBot
    >>> bot = TelegramBot(token)
    >>> relay = FeedRelay.for_telegram(bot, chat_id, feed_urls, storage=SQLiteStorage("rss.db"))
    >>> async with relay:
    ...     await relay.run()

Architecture:
    Fetchers: RSSFeedFetcher
    Stores: SQLiteStorage, MemoryStorage
    Senders: TelegramNotifier, ConsoleNotifier
    Commands: CommandHandler, TelegramCommandListener
"""

from feedrelay.adapter.rss import RSSFeedFetcher
from feedrelay.commands import CommandHandler, TelegramCommandListener
from feedrelay.core.config import Settings, get_settings
from feedrelay.core.exceptions import (
    ChannelClosed,
    ConfigurationError,
    DeliveryError,
    FeedError,
    FeedRelayError,
    StorageError,
)
from feedrelay.core.relay import FeedRelay
from feedrelay.core.runtime import RuntimeConfig
from feedrelay.models.feed import Feed, FeedBatch, FeedEntry, FeedItem
from feedrelay.notifier.console import ConsoleNotifier
from feedrelay.notifier.telegram import TelegramBot, TelegramNotifier
from feedrelay.pipeline import Pipeline, PipelineStats
from feedrelay.protocols import FeedFetcher, ItemStore, MessageSender
from feedrelay.storage.memory import MemoryStorage
from feedrelay.storage.sqlite import SQLiteStorage

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core
    "FeedRelay",
    "Pipeline",
    "PipelineStats",
    "RuntimeConfig",
    "Settings",
    "get_settings",
    # Models
    "Feed",
    "FeedBatch",
    "FeedEntry",
    "FeedItem",
    # Protocols
    "FeedFetcher",
    "ItemStore",
    "MessageSender",
    # Backends
    "ConsoleNotifier",
    "MemoryStorage",
    "RSSFeedFetcher",
    "SQLiteStorage",
    "TelegramBot",
    "TelegramNotifier",
    # Commands
    "CommandHandler",
    "TelegramCommandListener",
    # Errors
    "ChannelClosed",
    "ConfigurationError",
    "DeliveryError",
    "FeedError",
    "FeedRelayError",
    "StorageError",
]
