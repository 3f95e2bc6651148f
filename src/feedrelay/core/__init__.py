"""Core configuration, runtime state and process wiring."""

from feedrelay.core.channel import Channel
from feedrelay.core.config import Settings, get_settings
from feedrelay.core.exceptions import (
    ChannelClosed,
    ConfigurationError,
    DeliveryError,
    FeedError,
    FeedRelayError,
    StorageError,
)
from feedrelay.core.runtime import (
    ConfigSnapshot,
    RuntimeConfig,
    format_duration,
    parse_duration,
    parse_items_limit,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Runtime configuration
    "ConfigSnapshot",
    "RuntimeConfig",
    "format_duration",
    "parse_duration",
    "parse_items_limit",
    # Channels
    "Channel",
    # Errors
    "ChannelClosed",
    "ConfigurationError",
    "DeliveryError",
    "FeedError",
    "FeedRelayError",
    "StorageError",
]
