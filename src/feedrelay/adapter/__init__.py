"""Feed fetchers."""

from feedrelay.adapter.rss import RSSFeedFetcher

__all__ = ["RSSFeedFetcher"]
