"""FeedRelay configuration.

Application settings loaded from environment variables with the FEEDRELAY_
prefix (and from a local ``.env`` file). The Telegram credentials are also
read from the bare ``TELEGRAM_TOKEN`` / ``TELEGRAM_CHAT_ID`` variables.

Example:
    >>> from feedrelay.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.items_limit
    10
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedrelay.core.exceptions import ConfigurationError
from feedrelay.core.runtime import (
    DEFAULT_DELIVERY_INTERVAL,
    DEFAULT_FETCH_INTERVAL,
    DEFAULT_ITEMS_LIMIT,
    RuntimeConfig,
    parse_duration,
)

DEFAULT_FEED_URLS = [
    "https://blog.golang.org/feed.atom",
    "https://www.cockroachlabs.com/blog/index.xml",
    "https://matklad.github.io/feed.xml",
    "https://envoy.engineering/feed",
    "https://eng.lyft.com/feed",
]


class Settings(BaseSettings):
    """Application settings.

    Example:
        >>> from feedrelay.core.config import Settings
        >>> s = Settings(fetch_interval="1m", feed_urls=["https://example.com/rss"])
        >>> s.fetch_interval
        datetime.timedelta(seconds=60)
        >>> s.database_path.name
        'rss.db'
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram
    telegram_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("telegram_token", "FEEDRELAY_TELEGRAM_TOKEN", "TELEGRAM_TOKEN"),
        description="Bot API token",
    )
    telegram_chat_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("telegram_chat_id", "FEEDRELAY_TELEGRAM_CHAT_ID", "TELEGRAM_CHAT_ID"),
        description="Chat that receives feed items",
    )

    # Storage
    database_path: Path = Field(default=Path("config/rss.db"), description="SQLite database file")

    # Feeds
    feed_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_FEED_URLS))
    fetch_interval: timedelta = Field(default=DEFAULT_FETCH_INTERVAL)
    delivery_interval: timedelta = Field(default=DEFAULT_DELIVERY_INTERVAL)
    items_limit: int = Field(default=DEFAULT_ITEMS_LIMIT, ge=1)

    # HTTP
    request_timeout: float = Field(default=30.0, ge=1.0)
    user_agent: str = Field(default="FeedRelay/0.1")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="rich", description="Log format: rich or plain")

    @field_validator("fetch_interval", "delivery_interval", mode="before")
    @classmethod
    def parse_interval(cls, v: Any) -> timedelta:
        """Accept the same duration syntax as the chat commands."""
        try:
            interval = parse_duration(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        if interval <= timedelta():
            raise ValueError("interval must be positive")
        return interval

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        if v not in ("rich", "plain"):
            raise ValueError("log_format must be 'rich' or 'plain'")
        return v

    def runtime_config(self) -> RuntimeConfig:
        """Build the initial runtime configuration from these settings."""
        return RuntimeConfig(
            fetch_interval=self.fetch_interval,
            delivery_interval=self.delivery_interval,
            items_limit=self.items_limit,
        )

    def require_telegram(self) -> tuple[str, int]:
        """Return the Telegram credentials.

        Raises:
            ConfigurationError: If the token or chat id is not set.
        """
        if not self.telegram_token:
            raise ConfigurationError("TELEGRAM_TOKEN env var is not set")
        if self.telegram_chat_id is None:
            raise ConfigurationError("TELEGRAM_CHAT_ID env var is not set")
        return self.telegram_token, self.telegram_chat_id


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from feedrelay.core.config import get_settings
        >>> s = get_settings(items_limit=3)
        >>> s.items_limit
        3
    """
    return Settings(**overrides)
