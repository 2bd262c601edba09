"""RSS feed client for collecting candidate news items.

Downloads each configured feed with httpx and parses it with feedparser.
Feeds are fetched concurrently; a feed that fails to download or parse is
logged and skipped without affecting the others.
"""

import asyncio
from calendar import timegm
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import feedparser
import httpx

from newsrelay.config import FeedSource
from newsrelay.core.constants import RSS_CONNECT_TIMEOUT, RSS_READ_TIMEOUT
from newsrelay.core.exceptions import FeedFetchError
from newsrelay.core.logging import get_logger
from newsrelay.processing.common.text import clean_html
from newsrelay.processing.models import Item

logger = get_logger(__name__)


def _parse_published(entry: dict[str, Any]) -> datetime:
    """Entry publication time; falls back to now when the feed omits it."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(timegm(parsed), tz=UTC)
            except (ValueError, OverflowError):
                continue
    return datetime.now(UTC)


def _extract_description(entry: dict[str, Any]) -> str:
    if summary := entry.get("summary"):
        return clean_html(summary)
    content = entry.get("content")
    if isinstance(content, list) and content:
        return clean_html(content[0].get("value", ""))
    return ""


def entry_to_item(entry: dict[str, Any], source: str) -> Item:
    """Convert a feedparser entry to an Item (fingerprint computed here)."""
    now = datetime.now(UTC)
    return Item(
        title=clean_html(entry.get("title", "")),
        description=_extract_description(entry),
        url=entry.get("link", ""),
        source=source,
        published_at=_parse_published(entry),
        created_at=now,
    )


@dataclass
class RSSFeedClient:
    """Fetch and parse the configured RSS feeds."""

    feeds: list[FeedSource]
    user_agent: str = "Mozilla/5.0 (compatible; NewsRelay/1.0)"

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                timeout=httpx.Timeout(RSS_READ_TIMEOUT, connect=RSS_CONNECT_TIMEOUT),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_feed(self, feed: FeedSource) -> list[Item]:
        """Fetch all entries of one feed.

        Raises:
            FeedFetchError: If the feed can't be downloaded or parsed
        """
        log = logger.bind(feed=feed.name, url=feed.url)
        try:
            response = await self._get_client().get(feed.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedFetchError(
                f"Feed {feed.name} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise FeedFetchError(f"Feed {feed.name} request failed: {e}") from e

        parsed = feedparser.parse(response.text)
        if parsed.bozo and not parsed.entries:
            raise FeedFetchError(f"Feed {feed.name} could not be parsed: {parsed.bozo_exception}")

        items: list[Item] = []
        for entry in parsed.entries:
            item = entry_to_item(entry, feed.name)
            if not item.title or not item.url:
                log.debug("Skipping entry without title or link", entry_id=entry.get("id"))
                continue
            items.append(item)

        log.info("Feed fetched", entries=len(parsed.entries), items=len(items))
        return items

    async def fetch_all(self) -> list[Item]:
        """Fetch every configured feed; failed feeds contribute nothing."""
        if not self.feeds:
            logger.warning("No RSS feeds configured")
            return []

        results = await asyncio.gather(
            *(self.fetch_feed(feed) for feed in self.feeds),
            return_exceptions=True,
        )

        items: list[Item] = []
        for feed, result in zip(self.feeds, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to fetch feed",
                    feed=feed.name,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                continue
            items.extend(result)

        logger.info("Feeds fetched", feeds=len(self.feeds), items=len(items))
        return items
