"""Tests for feedrelay.adapter.rss - RSS/Atom feed fetcher."""

from __future__ import annotations

import httpx
import pytest

from feedrelay.adapter.rss import RSSFeedFetcher
from feedrelay.core.exceptions import FeedError
from feedrelay.protocols.feed import FeedFetcher

FEED_URL = "https://example.com/feed.xml"

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def sample_rss_xml() -> str:
    """Sample RSS 2.0 feed XML."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
        <channel>
            <title>Test Feed</title>
            <link>https://example.com</link>
            <item>
                <title>First Article</title>
                <link>https://example.com/article/1</link>
                <guid>article-001</guid>
            </item>
            <item>
                <title> Second Article </title>
                <link>https://example.com/article/2</link>
            </item>
            <item>
                <title>Permalink Only</title>
                <guid isPermaLink="true">https://example.com/article/3</guid>
            </item>
            <item>
                <title>No Link</title>
                <guid isPermaLink="false">article-004</guid>
            </item>
        </channel>
    </rss>"""


@pytest.fixture
def sample_atom_xml() -> str:
    """Sample Atom feed XML."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <feed xmlns="http://www.w3.org/2005/Atom">
        <title>Atom Feed</title>
        <link href="https://example.com"/>
        <entry>
            <title>Atom Entry 1</title>
            <link rel="self" href="https://example.com/entry/1.atom"/>
            <link rel="alternate" href="https://example.com/entry/1"/>
            <id>urn:uuid:entry-001</id>
        </entry>
        <entry>
            <title>Atom Entry 2</title>
            <link href="https://example.com/entry/2"/>
        </entry>
        <entry>
            <title>Atom Entry Without Link</title>
        </entry>
    </feed>"""


def make_fetcher(handler) -> RSSFeedFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RSSFeedFetcher(client=client, user_agent="FeedRelay/test")


def serve(body: str, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body)

    return handler


# =============================================================================
# Protocol Compliance Tests
# =============================================================================


class TestRSSFetcherProtocol:
    def test_implements_feed_fetcher_protocol(self) -> None:
        assert isinstance(RSSFeedFetcher(), FeedFetcher)

    def test_default_headers(self) -> None:
        fetcher = RSSFeedFetcher(user_agent="Relay/1.0", headers={"X-Extra": "1"})

        assert fetcher.headers["User-Agent"] == "Relay/1.0"
        assert fetcher.headers["X-Extra"] == "1"


# =============================================================================
# Parsing Tests
# =============================================================================


class TestRSSParsing:
    def test_parses_rss_items_in_order(self, sample_rss_xml: str) -> None:
        feed = RSSFeedFetcher().parse(sample_rss_xml, FEED_URL)

        assert feed.url == FEED_URL
        assert feed.title == "Test Feed"
        assert [(e.title, e.link) for e in feed.entries] == [
            ("First Article", "https://example.com/article/1"),
            ("Second Article", "https://example.com/article/2"),
            ("Permalink Only", "https://example.com/article/3"),
        ]

    def test_parses_atom_entries(self, sample_atom_xml: str) -> None:
        feed = RSSFeedFetcher().parse(sample_atom_xml, FEED_URL)

        assert feed.title == "Atom Feed"
        assert [(e.title, e.link) for e in feed.entries] == [
            ("Atom Entry 1", "https://example.com/entry/1"),
            ("Atom Entry 2", "https://example.com/entry/2"),
        ]

    def test_parses_atom_without_namespace(self) -> None:
        xml = '<feed><title>Plain</title><entry><title>E</title><link href="https://e.com/1"/></entry></feed>'

        feed = RSSFeedFetcher().parse(xml, FEED_URL)

        assert feed.entries[0].link == "https://e.com/1"

    def test_parses_rss1_rdf(self) -> None:
        xml = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" xmlns="http://purl.org/rss/1.0/">
  <channel rdf:about="https://example.com/">
    <title>RDF Feed</title>
  </channel>
  <item rdf:about="https://example.com/rdf/1">
    <title>RDF One</title>
    <link>https://example.com/rdf/1</link>
  </item>
  <item rdf:about="https://example.com/rdf/2">
    <title>RDF Two</title>
  </item>
</rdf:RDF>"""

        feed = RSSFeedFetcher().parse(xml, FEED_URL)

        assert feed.title == "RDF Feed"
        assert [(e.title, e.link) for e in feed.entries] == [
            ("RDF One", "https://example.com/rdf/1"),
            ("RDF Two", "https://example.com/rdf/2"),
        ]

    def test_missing_title_is_empty(self) -> None:
        xml = "<rss><channel><item><link>https://e.com/1</link></item></channel></rss>"

        feed = RSSFeedFetcher().parse(xml, FEED_URL)

        assert feed.title == ""
        assert feed.entries[0].title == ""

    def test_empty_channel(self) -> None:
        feed = RSSFeedFetcher().parse("<rss><channel><title>T</title></channel></rss>", FEED_URL)

        assert feed.entries == []

    def test_invalid_xml_raises_feed_error(self) -> None:
        with pytest.raises(FeedError) as exc_info:
            RSSFeedFetcher().parse("<rss><channel>", FEED_URL)

        assert exc_info.value.source == FEED_URL
        assert exc_info.value.cause is not None


# =============================================================================
# Fetch Tests
# =============================================================================


class TestRSSFetch:
    async def test_fetch_parses_response(self, sample_rss_xml: str) -> None:
        async with make_fetcher(serve(sample_rss_xml)) as fetcher:
            feed = await fetcher.fetch(FEED_URL)

        assert len(feed.entries) == 3

    async def test_sends_user_agent(self, sample_rss_xml: str) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=sample_rss_xml)

        fetcher = make_fetcher(handler)
        await fetcher.fetch(FEED_URL)

        assert seen[0].headers["User-Agent"] == "FeedRelay/test"
        assert str(seen[0].url) == FEED_URL

    async def test_http_error_status(self) -> None:
        fetcher = make_fetcher(serve("not found", status_code=404))

        with pytest.raises(FeedError, match="HTTP 404") as exc_info:
            await fetcher.fetch(FEED_URL)

        assert exc_info.value.source == FEED_URL

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)

        with pytest.raises(FeedError, match="connection refused"):
            await fetcher.fetch(FEED_URL)

    async def test_malformed_body(self) -> None:
        fetcher = make_fetcher(serve("<html><body>"))

        with pytest.raises(FeedError, match="parse"):
            await fetcher.fetch(FEED_URL)

    async def test_shared_client_not_closed(self, sample_rss_xml: str) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(serve(sample_rss_xml)))
        fetcher = RSSFeedFetcher(client=client)

        await fetcher.fetch(FEED_URL)
        await fetcher.close()

        assert not client.is_closed
        await client.aclose()
