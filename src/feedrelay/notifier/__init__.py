"""Outbound message senders."""

from feedrelay.notifier.console import ConsoleNotifier
from feedrelay.notifier.telegram import TelegramBot, TelegramNotifier

__all__ = [
    "ConsoleNotifier",
    "TelegramBot",
    "TelegramNotifier",
]
