"""Chat commands for changing the relay configuration at runtime.

`CommandHandler` turns command text into a reply and applies configuration
changes; it knows nothing about the transport. `TelegramCommandListener`
long-polls the bot for messages and answers in the chat they came from.

Commands:
    /setfd <duration>   set the fetch interval
    /setsd <duration>   set the delivery interval
    /setlim <number>    set the per-feed item cap
    /config             show the current configuration
    /stats              show pipeline counters
    /help               list commands

Example:
    >>> import asyncio
    >>> from feedrelay.commands import CommandHandler
    >>> from feedrelay.core.runtime import RuntimeConfig
    >>> handler = CommandHandler(RuntimeConfig())
    >>> asyncio.run(handler.handle("/setfd 1m"))
    'Fetch interval set to 1m0s'
    >>> asyncio.run(handler.handle("/setlim many"))
    "Error: invalid items limit: 'many'"
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from feedrelay.core.exceptions import ConfigurationError, DeliveryError, StorageError
from feedrelay.core.runtime import format_duration

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from feedrelay.core.runtime import RuntimeConfig
    from feedrelay.notifier.telegram import TelegramBot
    from feedrelay.pipeline import PipelineStats
    from feedrelay.protocols.storage import ItemStore

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Available commands:\n"
    "/setfd <duration> - fetch interval (e.g. 30s, 5m, 1m30s)\n"
    "/setsd <duration> - delivery interval\n"
    "/setlim <number> - items kept per feed per fetch\n"
    "/config - current configuration\n"
    "/stats - relay counters\n"
    "/help - this message"
)


@dataclass(frozen=True)
class Command:
    """A parsed chat command."""

    name: str
    args: str = ""


def parse_command(text: str) -> Command | None:
    """Parse ``/name[@bot] args`` into a `Command`.

    Example:
        >>> from feedrelay.commands import parse_command
        >>> parse_command("/setsd@relay_bot  2m ")
        Command(name='setsd', args='2m')
        >>> parse_command("hello") is None
        True
    """
    parts = text.strip().split(maxsplit=1)
    if not parts or not parts[0].startswith("/"):
        return None
    name = parts[0][1:].split("@", 1)[0].lower()
    if not name:
        return None
    args = parts[1].strip() if len(parts) > 1 else ""
    return Command(name=name, args=args)


class CommandHandler:
    """Applies chat commands to the runtime configuration.

    Args:
        config: Runtime configuration shared with the pipeline.
        stats: Pipeline counters reported by ``/stats``.
        storage: Store whose item counts ``/stats`` reports.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        stats: PipelineStats | None = None,
        storage: ItemStore | None = None,
    ) -> None:
        self._config = config
        self._stats = stats
        self._storage = storage
        self._commands: dict[str, Callable[[str], Awaitable[str]]] = {
            "setfd": self._set_fetch_interval,
            "setsd": self._set_delivery_interval,
            "setlim": self._set_items_limit,
            "config": self._show_config,
            "stats": self._show_stats,
            "help": self._help,
            "start": self._help,
        }

    async def handle(self, text: str) -> str | None:
        """Handle one message. Returns the reply, or None for non-commands.

        Invalid values leave the configuration unchanged and produce an
        ``Error: ...`` reply.
        """
        command = parse_command(text)
        if command is None:
            return None
        action = self._commands.get(command.name, self._help)
        try:
            return await action(command.args)
        except ConfigurationError as e:
            logger.info(f"Rejected /{command.name} {command.args!r}: {e}")
            return f"Error: {e}"

    async def _set_fetch_interval(self, args: str) -> str:
        interval = self._config.set_fetch_interval(args)
        logger.info(f"Fetch interval set to {format_duration(interval)}")
        return f"Fetch interval set to {format_duration(interval)}"

    async def _set_delivery_interval(self, args: str) -> str:
        interval = self._config.set_delivery_interval(args)
        logger.info(f"Delivery interval set to {format_duration(interval)}")
        return f"Delivery interval set to {format_duration(interval)}"

    async def _set_items_limit(self, args: str) -> str:
        limit = self._config.set_items_limit(args)
        logger.info(f"Items limit set to {limit}")
        return f"Items limit set to {limit}"

    async def _show_config(self, args: str) -> str:
        return self._config.snapshot().describe()

    async def _show_stats(self, args: str) -> str:
        lines = []
        if self._stats is not None:
            lines.append(self._stats.describe())
        if self._storage is not None:
            try:
                total = await self._storage.count()
                unsent = await self._storage.count(unsent_only=True)
            except StorageError as e:
                lines.append(f"Stored items: unavailable ({e})")
            else:
                lines.append(f"Stored items: {total} (unsent: {unsent})")
        return "\n".join(lines) or "No stats available"

    async def _help(self, args: str) -> str:
        return HELP_TEXT


class TelegramCommandListener:
    """Long-polls Telegram for commands and replies in the sender's chat.

    Runs until cancelled.

    Args:
        bot: Telegram client.
        handler: Command handler producing the replies.
        poll_timeout: Long-poll timeout in seconds.
        retry_delay: Pause after a failed poll.
    """

    def __init__(
        self,
        bot: TelegramBot,
        handler: CommandHandler,
        *,
        poll_timeout: int = 60,
        retry_delay: float = 5.0,
    ) -> None:
        self._bot = bot
        self._handler = handler
        self._poll_timeout = poll_timeout
        self._retry_delay = retry_delay
        self._offset: int | None = None

    async def run(self) -> None:
        logger.info("Listening for commands")
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Command polling failed")
                await asyncio.sleep(self._retry_delay)

    async def poll_once(self) -> int:
        """Fetch and process one round of updates; returns how many."""
        try:
            updates = await self._bot.get_updates(self._offset, timeout=self._poll_timeout)
        except DeliveryError as e:
            logger.warning(f"Polling for commands failed: {e}")
            await asyncio.sleep(self._retry_delay)
            return 0
        if not isinstance(updates, list):
            logger.warning(f"Ignoring malformed getUpdates result: {updates!r}")
            return 0

        for update in updates:
            update_id = update.get("update_id") if isinstance(update, dict) else None
            if not isinstance(update_id, int):
                logger.warning(f"Skipping update without update_id: {update!r}")
                continue
            self._offset = update_id + 1
            await self.process_update(update)
        return len(updates)

    async def process_update(self, update: dict[str, Any]) -> None:
        message = update.get("message") or {}
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if not text or chat_id is None:
            return

        try:
            reply = await self._handler.handle(text)
        except Exception as e:
            logger.exception(f"Command {text!r} failed")
            reply = f"Error: {e}"
        if reply is None:
            return
        try:
            await self._bot.send_message(chat_id, reply)
        except DeliveryError as e:
            logger.error(f"Failed to reply to {chat_id}: {e}")
