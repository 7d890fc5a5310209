"""
RSS/Atom feed reader.

Fetches a feed with httpx and normalizes its entries with feedparser.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import feedparser
import httpx
from dateutil import parser as date_parser
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from acme_rss.core.logging import get_logger
from acme_rss.feeds.base import Feed, FeedItem, FeedReaderError, FeedSource

logger = get_logger(__name__)


class FeedReader:
    """Fetches feeds for the sources listed in the feeds file over a shared client."""

    def __init__(self, client: httpx.AsyncClient, *, max_attempts: int = 3):
        self.client = client
        self.max_attempts = max_attempts

    async def fetch(self, source: FeedSource) -> Feed:
        """
        Fetch and parse the feed for ``source``.

        Returns:
            The feed with its items in document order.

        Raises:
            FeedReaderError: When fetching or parsing fails after retries.
        """
        log = logger.bind(feed=source.name, feed_url=source.url)
        log.info("fetching_feed")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=8),
                retry=(
                    retry_if_exception_type(httpx.RequestError)
                    & retry_if_not_exception_type(httpx.UnsupportedProtocol)
                ),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.get(source.url)
                    response.raise_for_status()
        except httpx.InvalidURL as e:
            log.error("feed_invalid_url", error=str(e))
            raise FeedReaderError(f"invalid URL: {e}") from e
        except httpx.RequestError as e:
            log.error("feed_network_error", error=str(e))
            raise FeedReaderError(f"network error: {e}") from e
        except httpx.HTTPStatusError as e:
            log.error("feed_http_error", status_code=e.response.status_code)
            raise FeedReaderError(
                f"HTTP {e.response.status_code} {e.response.reason_phrase}".rstrip()
            ) from e

        parsed = feedparser.parse(response.content)
        feed_title = parsed.feed.get("title", "")

        if parsed.bozo:
            if not parsed.entries and not feed_title:
                log.error("feed_parse_failed", error=str(parsed.bozo_exception))
                raise FeedReaderError(f"cannot parse feed: {parsed.bozo_exception}")
            log.warning("feed_has_parsing_issues", bozo_exception=str(parsed.bozo_exception))

        items = [self._parse_entry(entry) for entry in parsed.entries]
        log.info("fetched_feed", items=len(items))
        return Feed(title=feed_title, url=source.url, items=items)

    def _parse_entry(self, entry: Any) -> FeedItem:
        """Parse a single RSS/Atom entry into a FeedItem."""
        description = entry.get("summary") or entry.get("description") or ""
        return FeedItem(
            title=(entry.get("title") or "").strip(),
            link=entry.get("link") or "",
            description=description,
            published=self._parse_date(entry),
        )

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        """Parse publication date, preferring feedparser's normalized fields."""
        for field in ("published_parsed", "updated_parsed"):
            parsed = entry.get(field)
            if parsed:
                try:
                    return datetime(*parsed[:6], tzinfo=timezone.utc)
                except (TypeError, ValueError):
                    continue

        for field in ("published", "updated"):
            date_str = entry.get(field)
            if date_str:
                try:
                    return date_parser.parse(date_str)
                except (ValueError, OverflowError):
                    continue

        return None
