"""FeedRelay data models."""

from feedrelay.models.base import FeedRelayModel
from feedrelay.models.feed import Feed, FeedBatch, FeedEntry, FeedItem

__all__ = [
    "Feed",
    "FeedBatch",
    "FeedEntry",
    "FeedItem",
    "FeedRelayModel",
]
