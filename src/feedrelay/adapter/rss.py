"""RSS/Atom feed fetcher.

Retrieves feeds over HTTP with ``httpx`` and parses RSS 2.0, RSS 1.0 (RDF) and Atom
documents into `Feed` objects. Entries without a usable link are skipped
since the link is the deduplication key.

Example:
    >>> from feedrelay.adapter.rss import RSSFeedFetcher
    >>> async with RSSFeedFetcher(timeout=10.0) as fetcher:
    ...     feed = await fetcher.fetch("https://matklad.github.io/feed.xml")
    ...     print(feed.entries[0].title)
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from feedrelay.core.exceptions import FeedError
from feedrelay.models.feed import Feed, FeedEntry

logger = logging.getLogger(__name__)


class RSSFeedFetcher:
    """Feed fetcher for RSS 2.0 and Atom feeds.

    Args:
        client: Optional shared ``httpx.AsyncClient``. When omitted the
            fetcher creates (and later closes) its own.
        timeout: Request timeout in seconds (default: 30.0).
        user_agent: User-Agent header sent with every request.
        headers: Optional extra HTTP headers.

    Example:
        >>> from feedrelay.adapter.rss import RSSFeedFetcher
        >>> fetcher = RSSFeedFetcher(timeout=5.0)
        >>> fetcher.timeout
        5.0
    """

    # Atom namespace
    ATOM_NS = "http://www.w3.org/2005/Atom"
    # RSS 1.0 (RDF) namespaces
    RSS1_NS = "http://purl.org/rss/1.0/"
    RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        user_agent: str = "FeedRelay/0.1",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
            **(headers or {}),
        }
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> RSSFeedFetcher:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch(self, url: str) -> Feed:
        """Fetch and parse the feed at ``url``.

        Raises:
            FeedError: If the request fails, the server answers with an
                error status, or the document is not valid XML.
        """
        client = self._ensure_client()
        try:
            response = await client.get(url, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedError(
                f"Failed to fetch {url}: HTTP {e.response.status_code}",
                source=url,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise FeedError(f"Failed to fetch {url}: {e}", source=url, cause=e) from e

        feed = self.parse(response.content, url)
        logger.debug(f"Fetched {len(feed.entries)} entries from {url}")
        return feed

    def parse(self, content: str | bytes, url: str) -> Feed:
        """Parse an RSS or Atom document.

        Example:
            >>> from feedrelay.adapter.rss import RSSFeedFetcher
            >>> xml = "<rss><channel><title>T</title><item><title>A</title>"
            >>> xml += "<link>https://e.com/a</link></item></channel></rss>"
            >>> feed = RSSFeedFetcher().parse(xml, "https://e.com/rss")
            >>> (feed.title, feed.entries[0].link)
            ('T', 'https://e.com/a')

        Raises:
            FeedError: If the document is not valid XML.
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise FeedError(f"Failed to parse feed XML from {url}: {e}", source=url, cause=e) from e

        if self._is_atom_feed(root):
            title, entries = self._parse_atom(root)
        else:
            title, entries = self._parse_rss(root)
        return Feed(url=url, title=title, entries=entries)

    def _is_atom_feed(self, root: ET.Element) -> bool:
        return root.tag == f"{{{self.ATOM_NS}}}feed" or root.tag == "feed"

    def _parse_rss(self, root: ET.Element) -> tuple[str, list[FeedEntry]]:
        """Parse RSS 2.0 or RSS 1.0 (RDF) channel title and items."""
        channel = self._rss_find(root, "channel")
        channel_title = _text(self._rss_find(channel, "title")) if channel is not None else ""
        item_tags = ("item", f"{{{self.RSS1_NS}}}item")
        entries = []
        for item in root.iter():
            if item.tag not in item_tags:
                continue
            entry = self._parse_rss_item(item)
            if entry is not None:
                entries.append(entry)
        return channel_title, entries

    def _parse_rss_item(self, item: ET.Element) -> FeedEntry | None:
        link = _text(self._rss_find(item, "link"))
        if not link:
            # a permalink guid is the item URL
            guid = item.find("guid")
            if guid is not None and guid.get("isPermaLink", "true").lower() == "true":
                link = _text(guid)
        if not link:
            link = item.get(f"{{{self.RDF_NS}}}about", "").strip()
        if not link:
            logger.debug("Skipping RSS item without link")
            return None
        return FeedEntry(title=_text(self._rss_find(item, "title")), link=link)

    def _rss_find(self, element: ET.Element, name: str) -> ET.Element | None:
        found = element.find(name)
        if found is None:
            found = element.find(f"{{{self.RSS1_NS}}}{name}")
        return found

    def _parse_atom(self, root: ET.Element) -> tuple[str, list[FeedEntry]]:
        """Parse Atom feed title and entries, namespaced or not."""
        ns = self.ATOM_NS
        feed_title = _text(root.find(f"{{{ns}}}title")) or _text(root.find("title"))
        elements = root.findall(f"{{{ns}}}entry") or root.findall("entry")
        entries = []
        for element in elements:
            entry = self._parse_atom_entry(element)
            if entry is not None:
                entries.append(entry)
        return feed_title, entries

    def _parse_atom_entry(self, entry: ET.Element) -> FeedEntry | None:
        ns = self.ATOM_NS
        title = _text(entry.find(f"{{{ns}}}title")) or _text(entry.find("title"))

        links = entry.findall(f"{{{ns}}}link") + entry.findall("link")
        href = None
        for link in links:
            if link.get("rel", "alternate") == "alternate" and link.get("href"):
                href = link.get("href")
                break
        if href is None and links:
            href = links[0].get("href")
        if not href:
            logger.debug("Skipping Atom entry without link")
            return None
        return FeedEntry(title=title, link=href.strip())


def _text(element: ET.Element | None) -> str:
    """Stripped text of an element, '' when missing."""
    if element is None or element.text is None:
        return ""
    return element.text.strip()
