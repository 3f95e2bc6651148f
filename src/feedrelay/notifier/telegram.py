"""Telegram Bot API transport.

`TelegramBot` is a thin async client for the few Bot API methods the relay
needs; `TelegramNotifier` binds it to the destination chat so it can be used
as the pipeline's `MessageSender`.

Example:
    >>> from feedrelay.notifier.telegram import TelegramBot, TelegramNotifier
    >>> async def example(token):
    ...     async with TelegramBot(token) as bot:
    ...         notifier = TelegramNotifier(bot, chat_id=-100123456)
    ...         await notifier.send("Hello\\nhttps://example.com")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from feedrelay.core.exceptions import DeliveryError

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org"


class TelegramBot:
    """Minimal async Telegram Bot API client.

    Args:
        token: Bot API token.
        client: Optional ``httpx.AsyncClient`` (mainly for tests).
        base_url: Bot API server.
        timeout: Request timeout in seconds; long polls add their own
            poll timeout on top.

    Example:
        >>> from feedrelay.notifier.telegram import TelegramBot
        >>> bot = TelegramBot("123:abc")
        >>> bot.method_url("sendMessage")
        'https://api.telegram.org/bot123:abc/sendMessage'
    """

    def __init__(
        self,
        token: str,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = API_URL,
        timeout: float = 30.0,
    ) -> None:
        if not token:
            raise ValueError("token must not be empty")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def method_url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this bot created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> TelegramBot:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Call a Bot API method and return its ``result``.

        Raises:
            DeliveryError: On transport errors, non-JSON answers, or
                ``"ok": false`` responses.
        """
        client = self._ensure_client()
        try:
            response = await client.post(
                self.method_url(method),
                json=payload or {},
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"{method} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise DeliveryError(
                f"{method} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if response.is_error or not body.get("ok", False):
            description = body.get("description", f"HTTP {response.status_code}")
            raise DeliveryError(f"{method} failed: {description}", status_code=response.status_code)
        return body.get("result")

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's own user object (also validates the token)."""
        return await self.call("getMe")

    async def send_message(self, chat_id: int, text: str) -> dict[str, Any]:
        """Send a text message; returns the sent message object."""
        return await self.call("sendMessage", {"chat_id": chat_id, "text": text})

    async def get_updates(self, offset: int | None = None, timeout: int = 60) -> list[dict[str, Any]]:
        """Long-poll for updates newer than ``offset``."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        return await self.call("getUpdates", payload, timeout=self._timeout + timeout)


class TelegramNotifier:
    """Sends relay messages to one Telegram chat.

    Example:
        >>> from feedrelay.notifier.telegram import TelegramBot, TelegramNotifier
        >>> notifier = TelegramNotifier(TelegramBot("123:abc"), chat_id=42)
        >>> notifier.chat_id
        42
    """

    def __init__(self, bot: TelegramBot, chat_id: int) -> None:
        self._bot = bot
        self.chat_id = chat_id

    @property
    def bot(self) -> TelegramBot:
        return self._bot

    async def close(self) -> None:
        await self._bot.close()

    async def send(self, text: str) -> None:
        """Deliver ``text`` to the destination chat.

        Raises:
            DeliveryError: If Telegram did not accept the message.
        """
        await self._bot.send_message(self.chat_id, text)
