"""Tests for ConsoleNotifier."""

import io
import re

from feedrelay.notifier.console import ConsoleNotifier
from feedrelay.protocols.notification import MessageSender


class TestConsoleNotifier:
    async def test_implements_message_sender(self):
        assert isinstance(ConsoleNotifier(), MessageSender)

    async def test_writes_message(self):
        out = io.StringIO()
        notifier = ConsoleNotifier(stdout=out, show_timestamp=False)

        await notifier.send("Title\nhttps://example.com/1")

        assert out.getvalue() == "Title\n  https://example.com/1\n"

    async def test_timestamp_prefix(self):
        out = io.StringIO()
        notifier = ConsoleNotifier(stdout=out)

        await notifier.send("Title\nhttps://example.com/1")

        first_line = out.getvalue().splitlines()[0]
        assert re.match(r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] Title$", first_line)

    async def test_counts_sent_messages(self):
        notifier = ConsoleNotifier(stdout=io.StringIO())

        await notifier.send("a")
        await notifier.send("b")

        assert notifier.sent_count == 2
