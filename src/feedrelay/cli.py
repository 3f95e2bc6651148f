"""CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from feedrelay.core.config import Settings, get_settings
from feedrelay.core.exceptions import FeedRelayError
from feedrelay.core.logging import configure_logging
from feedrelay.core.runtime import format_duration

app = typer.Typer(
    name="feedrelay",
    help="Relay RSS/Atom feeds to a Telegram chat",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)


def _load_settings(**overrides: object) -> Settings:
    try:
        return get_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=2) from e


@app.command()
def run(
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Print items to the console instead of Telegram")
    ] = False,
    db: Annotated[Path | None, typer.Option("--db", help="SQLite database path")] = None,
    fetch_interval: Annotated[
        str | None, typer.Option("--fetch-interval", help="Fetch interval, e.g. 13s or 1m")
    ] = None,
    delivery_interval: Annotated[
        str | None, typer.Option("--delivery-interval", help="Delivery interval, e.g. 24s")
    ] = None,
    items_limit: Annotated[
        int | None, typer.Option("--items-limit", help="Items kept per feed per fetch")
    ] = None,
    no_commands: Annotated[
        bool, typer.Option("--no-commands", help="Do not listen for chat commands")
    ] = False,
) -> None:
    """Start the relay."""
    settings = _load_settings(
        database_path=db,
        fetch_interval=fetch_interval,
        delivery_interval=delivery_interval,
        items_limit=items_limit,
    )
    configure_logging(settings.log_level, settings.log_format)

    try:
        asyncio.run(_run(settings, dry_run=dry_run, commands=not no_commands))
    except FeedRelayError as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(code=1) from e
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None


async def _run(settings: Settings, *, dry_run: bool, commands: bool) -> None:
    from feedrelay.adapter.rss import RSSFeedFetcher
    from feedrelay.core.relay import FeedRelay
    from feedrelay.notifier.console import ConsoleNotifier
    from feedrelay.notifier.telegram import TelegramBot
    from feedrelay.storage import create_storage

    fetcher = RSSFeedFetcher(timeout=settings.request_timeout, user_agent=settings.user_agent)
    if dry_run:
        relay = FeedRelay(
            create_storage(None),
            fetcher,
            ConsoleNotifier(),
            settings.feed_urls,
            config=settings.runtime_config(),
        )
    else:
        token, chat_id = settings.require_telegram()
        bot = TelegramBot(token, timeout=settings.request_timeout)
        relay = FeedRelay.for_telegram(
            bot,
            chat_id,
            settings.feed_urls,
            fetch_interval=settings.fetch_interval,
            delivery_interval=settings.delivery_interval,
            items_limit=settings.items_limit,
            storage=create_storage(settings.database_path),
            fetcher=fetcher,
            commands=commands,
        )

    async with relay:
        relay.install_signal_handlers()
        await relay.run()


@app.command("config")
def show_config() -> None:
    """Show the effective settings."""
    settings = _load_settings()

    table = Table(title="FeedRelay settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    token = settings.telegram_token
    table.add_row("telegram_token", f"{token[:4]}…" if token else "[red]not set[/red]")
    chat_id = settings.telegram_chat_id
    table.add_row("telegram_chat_id", str(chat_id) if chat_id is not None else "[red]not set[/red]")
    table.add_row("database_path", str(settings.database_path))
    table.add_row("fetch_interval", format_duration(settings.fetch_interval))
    table.add_row("delivery_interval", format_duration(settings.delivery_interval))
    table.add_row("items_limit", str(settings.items_limit))
    table.add_row("request_timeout", f"{settings.request_timeout:g}s")
    table.add_row("user_agent", settings.user_agent)
    table.add_row("log_level", settings.log_level)
    table.add_row("log_format", settings.log_format)
    table.add_row("feed_urls", "\n".join(settings.feed_urls))
    console.print(table)


@app.command()
def version() -> None:
    """Show version."""
    from feedrelay import __version__

    console.print(f"feedrelay {__version__}")


@app.command()
def info() -> None:
    """Show system information."""
    import sqlite3
    import sys

    from feedrelay import __version__

    console.print(f"[bold]FeedRelay[/bold] {__version__}")
    console.print(f"Python {sys.version}")
    console.print(f"SQLite {sqlite3.sqlite_version}")


if __name__ == "__main__":
    app()
