"""Console message sender.

Prints relay messages to stdout instead of delivering them, useful for dry
runs and development.

Example:
    >>> from feedrelay.notifier.console import ConsoleNotifier
    >>> notifier = ConsoleNotifier()
    >>> hasattr(notifier, "send")
    True
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import TextIO


class ConsoleNotifier:
    """Writes each message to a text stream.

    Example:
        >>> import asyncio
        >>> import io
        >>> from feedrelay.notifier.console import ConsoleNotifier
        >>> out = io.StringIO()
        >>> notifier = ConsoleNotifier(stdout=out, show_timestamp=False)
        >>> asyncio.run(notifier.send("Title\\nhttps://example.com/1"))
        >>> print(out.getvalue().strip())
        Title
          https://example.com/1
    """

    def __init__(
        self,
        stdout: TextIO | None = None,
        show_timestamp: bool = True,
    ) -> None:
        """Initialize console notifier.

        Args:
            stdout: Output stream (default sys.stdout).
            show_timestamp: Prefix each message with a UTC timestamp.
        """
        self._stdout = stdout or sys.stdout
        self._show_timestamp = show_timestamp
        self.sent_count = 0

    async def send(self, text: str) -> None:
        """Print ``text``; continuation lines are indented."""
        self._stdout.write(self._format(text) + "\n")
        self._stdout.flush()
        self.sent_count += 1

    def _format(self, text: str) -> str:
        first, *rest = text.split("\n")
        if self._show_timestamp:
            ts = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
            first = f"[{ts}] {first}"
        return "\n".join([first, *(f"  {line}" for line in rest)])
