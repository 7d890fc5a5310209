"""
Event handlers for the listing window and the article windows.

The listing window shows one feed at a time. Its tag names every source
(the current one in brackets) plus ``Reload``; executing a name switches
feeds. Executing or looking at an item number opens that item in a new
window with the article's readable text.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from acme_rss.acme.client import AcmeError
from acme_rss.acme.window import Window
from acme_rss.core.logging import get_logger, log_exception
from acme_rss.feeds.base import FeedItem, FeedReaderError, FeedSource
from acme_rss.feeds.reader import FeedReader
from acme_rss.feeds.sources import find_source
from acme_rss.ingestion.fetcher import ArticleFetchError
from acme_rss.ingestion.parser import ArticleParseError, clean_html

logger = get_logger(__name__)

RELOAD_COMMAND = "Reload"
FALLBACK_NOTICE = "[Could not fetch full article — showing RSS summary instead]"

ArticleLoader = Callable[[str], Awaitable[str]]


def parse_item_number(text: str) -> Optional[int]:
    """Item number from ``"3"`` or ``"3/"`` (the listing's prefix), else None."""
    text = text.strip()
    if text.endswith("/"):
        text = text[:-1]
    if not text or not text.lstrip("+-").isdigit():
        return None
    return int(text)


def render_tag(sources: Sequence[FeedSource], current: FeedSource) -> str:
    parts = [f"[{s.name}]" if s.name == current.name else s.name for s in sources]
    parts.append(RELOAD_COMMAND)
    return " ".join(parts)


def render_listing(title: str, source: FeedSource, items: Sequence[FeedItem]) -> str:
    lines = [f"Feed: {title} ({source.url})\n\n"]
    for i, item in enumerate(items, start=1):
        lines.append(f"{i}/ {item.title} ({item.date_label()})\n")
    return "".join(lines)


def render_item_header(item: FeedItem) -> str:
    return f"{item.title}\n\n{clean_html(item.description)}\n\nLink: {item.link}\n\n"


class MessageHandler:
    """Article window handler: declines everything so acme's defaults apply."""

    def __init__(self, window: Window):
        self.window = window

    async def execute(self, cmd: str) -> bool:
        return False

    async def look(self, arg: str) -> bool:
        return False


class RssHandler:
    """Listing window handler."""

    def __init__(
        self,
        window: Window,
        sources: Sequence[FeedSource],
        reader: FeedReader,
        load_article: ArticleLoader,
        *,
        current: Optional[FeedSource] = None,
        window_name: str = "rss",
    ):
        if not sources:
            raise ValueError("RssHandler needs at least one feed source")
        self.window = window
        self.sources = list(sources)
        self.reader = reader
        self.load_article = load_article
        self.current = current or self.sources[0]
        self.window_name = window_name
        self.items: List[FeedItem] = []
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Show the initial feed."""
        async with self._lock:
            await self.reload()

    async def execute(self, cmd: str) -> bool:
        async with self._lock:
            return await self._execute(cmd)

    async def look(self, arg: str) -> bool:
        number = parse_item_number(arg)
        if number is None:
            return False
        async with self._lock:
            await self.open_item(number - 1)
        return True

    async def _execute(self, cmd: str) -> bool:
        source = find_source(self.sources, cmd)
        if source is not None:
            self.current = source
            await self.reload()
            return True
        if cmd == RELOAD_COMMAND:
            await self.reload()
            return True
        number = parse_item_number(cmd)
        if number is not None:
            await self.open_item(number - 1)
            return True
        return False

    async def reload(self) -> None:
        """Fetch the current feed and redraw the tag and body."""
        source = self.current
        try:
            feed = await self.reader.fetch(source)
        except FeedReaderError as exc:
            logger.warning("feed_load_failed", feed=source.name, error=str(exc))
            self.items = []
            await self.window.replace_body(f"Failed to load feed {source.url}: {exc}\n")
            await self.window.ctl("clean")
            return

        self.items = feed.items
        await self.window.ctl("cleartag")
        await self.window.write("tag", render_tag(self.sources, source))
        await self.window.replace_body(render_listing(feed.title, source, feed.items))
        await self.window.ctl("clean")

    async def open_item(self, index: int) -> Optional[Window]:
        """Show item ``index`` (0-based) in a new window.

        Failures writing to the new window are logged and leave the listing
        window untouched.
        """
        if index < 0 or index >= len(self.items):
            return None
        item = self.items[index]

        try:
            win = await Window.new(self.window.client)
            await win.name(f"{self.window_name}/item/{index + 1}")
            await win.write("body", render_item_header(item))

            text = ""
            try:
                text = await self.load_article(item.link)
            except (ArticleFetchError, ArticleParseError) as exc:
                logger.info("article_unavailable", link=item.link, error=str(exc))

            if text:
                await win.write("body", f"{text}\n")
            else:
                await win.write("body", f"{FALLBACK_NOTICE}\n\n{clean_html(item.description)}\n")
            await win.ctl("clean")
        except AcmeError as exc:
            log_exception(logger, exc, {"item": index + 1, "link": item.link})
            return None

        task = asyncio.create_task(self._listen(win))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return win

    async def _listen(self, win: Window) -> None:
        try:
            await win.event_loop(MessageHandler(win))
        except AcmeError as exc:
            log_exception(logger, exc, {"window_id": win.id})

    async def close(self) -> None:
        """Cancel the article windows' listeners."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
