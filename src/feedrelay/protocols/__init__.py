"""Protocols for the collaborators the pipeline depends on."""

from feedrelay.protocols.feed import FeedFetcher
from feedrelay.protocols.notification import MessageSender
from feedrelay.protocols.storage import ItemStore

__all__ = [
    "FeedFetcher",
    "ItemStore",
    "MessageSender",
]
