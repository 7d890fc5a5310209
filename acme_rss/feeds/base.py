"""
Shared data models for feeds and the HTTP client used to fetch them.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, List, Optional

import httpx

from acme_rss.core.config import DEFAULT_USER_AGENT

# Default timeout for feed fetching (seconds)
DEFAULT_FEED_TIMEOUT = 30.0


@dataclass(frozen=True)
class FeedSource:
    """A subscribed feed: the name shown in the tag and the URL it is fetched from."""

    name: str
    url: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("FeedSource name is required")
        if not self.url:
            raise ValueError("FeedSource url is required")


@dataclass
class FeedItem:
    """One entry of a fetched feed, normalized across RSS and Atom."""

    title: str
    link: str
    description: str = ""
    published: Optional[datetime] = None

    def date_label(self) -> str:
        """Publication date as YYYY-MM-DD, or an empty string when unknown."""
        if self.published is None:
            return ""
        return self.published.strftime("%Y-%m-%d")


@dataclass
class Feed:
    """A fetched feed with its items in document order."""

    title: str
    url: str
    items: List[FeedItem] = field(default_factory=list)


class FeedReaderError(Exception):
    """Exception raised when feed reading fails."""
    pass


@asynccontextmanager
async def http_client(
    timeout: float = DEFAULT_FEED_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> AsyncIterator[httpx.AsyncClient]:
    """
    Context manager for HTTP client with proper lifecycle management.

    This ensures the client is always closed after use, preventing connection leaks.
    """
    client = httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )
    try:
        yield client
    finally:
        await client.aclose()
