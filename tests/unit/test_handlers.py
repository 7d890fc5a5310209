"""
Unit tests for the listing and article window handlers.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from acme_rss.acme.client import AcmeError
from acme_rss.acme.window import Window
from acme_rss.feeds.base import Feed, FeedItem, FeedReaderError, FeedSource
from acme_rss.handlers import (
    FALLBACK_NOTICE,
    MessageHandler,
    RssHandler,
    parse_item_number,
    render_listing,
    render_tag,
)
from acme_rss.ingestion import ArticleFetchError, ArticleParseError, fetch_readable_text
from tests.conftest import exec_event, wait_for

SOURCES = [
    FeedSource(name="plan9", url="https://example.org/rss.xml"),
    FeedSource(name="go", url="https://go.dev/blog/feed.atom"),
]

ITEMS = [
    FeedItem(
        title="Acme tips and tricks",
        link="https://example.org/posts/acme-tips",
        description="<p>Chording &amp; plumbing</p>",
        published=datetime(2024, 9, 3, 10, 15, tzinfo=timezone.utc),
    ),
    FeedItem(title="Undated musings", link="https://example.org/posts/musings", description="No date."),
]


def _feed(source: FeedSource) -> Feed:
    return Feed(title=f"{source.name} feed", url=source.url, items=list(ITEMS))


class TestRendering:
    """Test the text written into the listing window."""

    def test_render_tag_marks_current(self):
        assert render_tag(SOURCES, SOURCES[1]) == "plan9 [go] Reload"

    def test_render_listing(self):
        text = render_listing("Plan 9 Notes", SOURCES[0], ITEMS)
        assert text == (
            "Feed: Plan 9 Notes (https://example.org/rss.xml)\n"
            "\n"
            "1/ Acme tips and tricks (2024-09-03)\n"
            "2/ Undated musings ()\n"
        )

    def test_render_listing_without_items(self):
        assert render_listing("Empty", SOURCES[0], []) == "Feed: Empty (https://example.org/rss.xml)\n\n"

    @pytest.mark.parametrize(
        "text,expected",
        [("3", 3), ("3/", 3), (" 12 ", 12), ("0", 0), ("-1", -1), ("", None), ("/", None), ("Reload", None), ("3a", None)],
    )
    def test_parse_item_number(self, text, expected):
        assert parse_item_number(text) == expected


class TestRssHandler:
    """Test the listing window's behaviour."""

    async def _handler(self, fake_acme, load_article=None):
        window = await Window.new(fake_acme)
        await window.name("rss")
        reader = AsyncMock()
        reader.fetch = AsyncMock(side_effect=_feed)
        loader = load_article or AsyncMock(return_value="Full readable text.")
        handler = RssHandler(window, SOURCES, reader, loader)
        return handler, reader, loader

    def test_requires_sources(self, fake_acme):
        with pytest.raises(ValueError, match="at least one"):
            RssHandler(None, [], AsyncMock(), AsyncMock())

    @pytest.mark.asyncio
    async def test_start_renders_first_feed(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)

        await handler.start()

        reader.fetch.assert_awaited_once_with(SOURCES[0])
        state = fake_acme.windows[1]
        assert state.tag == "[plan9] go Reload"
        assert state.body.startswith("Feed: plan9 feed (https://example.org/rss.xml)\n\n1/ Acme tips")
        assert "cleartag" in state.ctl
        assert state.is_clean
        assert handler.items == ITEMS

    @pytest.mark.asyncio
    async def test_execute_feed_name_switches(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("go") is True

        reader.fetch.assert_awaited_with(SOURCES[1])
        assert handler.current is SOURCES[1]
        assert fake_acme.windows[1].tag == "plan9 [go] Reload"
        assert fake_acme.windows[1].body.startswith("Feed: go feed (https://go.dev/blog/feed.atom)")

    @pytest.mark.asyncio
    async def test_execute_bracketed_current_name(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("[plan9]") is True
        assert reader.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_execute_reload(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("Reload") is True
        assert reader.fetch.await_count == 2
        assert handler.current is SOURCES[0]

    @pytest.mark.asyncio
    async def test_execute_unknown_command_declined(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("Del") is False
        assert await handler.execute("Put") is False
        assert reader.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_fetch_failure(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        await handler.start()
        reader.fetch = AsyncMock(side_effect=FeedReaderError("HTTP 503 Service Unavailable"))

        await handler.execute("go")

        state = fake_acme.windows[1]
        assert state.body == "Failed to load feed https://go.dev/blog/feed.atom: HTTP 503 Service Unavailable\n"
        assert state.is_clean
        assert handler.items == []
        assert await handler.look("1") is True
        assert len(fake_acme.windows) == 1

    @pytest.mark.asyncio
    async def test_open_item_by_number(self, fake_acme):
        handler, _, loader = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("1") is True

        loader.assert_awaited_once_with("https://example.org/posts/acme-tips")
        item_win = fake_acme.window_named("rss/item/1")
        assert item_win is not None
        assert item_win.body == (
            "Acme tips and tricks\n\n"
            "Chording & plumbing\n\n"
            "Link: https://example.org/posts/acme-tips\n\n"
            "Full readable text.\n"
        )
        assert item_win.is_clean
        await handler.close()

    @pytest.mark.asyncio
    async def test_look_listing_prefix(self, fake_acme):
        handler, _, _ = await self._handler(fake_acme)
        await handler.start()

        assert await handler.look("2/") is True
        assert fake_acme.window_named("rss/item/2") is not None
        assert await handler.look("Acme") is False
        await handler.close()

    @pytest.mark.asyncio
    async def test_open_item_out_of_range(self, fake_acme):
        handler, _, loader = await self._handler(fake_acme)
        await handler.start()

        assert await handler.execute("0") is True
        assert await handler.execute("3") is True
        assert await handler.look("99") is True

        loader.assert_not_awaited()
        assert len(fake_acme.windows) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "outcome",
        [ArticleFetchError("HTTP error"), ArticleParseError("no readable text"), ""],
    )
    async def test_open_item_falls_back_to_summary(self, fake_acme, outcome):
        if isinstance(outcome, Exception):
            loader = AsyncMock(side_effect=outcome)
        else:
            loader = AsyncMock(return_value=outcome)
        handler, _, _ = await self._handler(fake_acme, load_article=loader)
        await handler.start()

        await handler.open_item(1)

        item_win = fake_acme.window_named("rss/item/2")
        assert item_win.body == (
            "Undated musings\n\n"
            "No date.\n\n"
            "Link: https://example.org/posts/musings\n\n"
            f"{FALLBACK_NOTICE}\n\n"
            "No date.\n"
        )
        await handler.close()

    @pytest.mark.asyncio
    async def test_invalid_article_link_falls_back_to_summary(self, fake_acme):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

        async def load_article(url: str) -> str:
            return await fetch_readable_text(url, client=client, max_attempts=1)

        handler, _, _ = await self._handler(fake_acme, load_article=load_article)
        await handler.start()
        handler.items = [FeedItem(title="Typo", link="http://[::1", description="<p>Summary</p>")]

        win = await handler.open_item(0)

        assert win is not None
        item_win = fake_acme.window_named("rss/item/1")
        assert item_win.body.endswith(f"{FALLBACK_NOTICE}\n\nSummary\n")
        assert item_win.is_clean
        await handler.close()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_article_window_failure_keeps_listing_running(self, fake_acme):
        handler, reader, _ = await self._handler(fake_acme)
        loop_task = asyncio.create_task(handler.window.event_loop(handler))
        await handler.start()

        write = fake_acme.write

        async def write_vanishing_article(path: str, data: str) -> None:
            if path.startswith("acme/2/"):
                raise AcmeError(f"{path}: file does not exist")
            await write(path, data)

        fake_acme.write = write_vanishing_article
        fake_acme.push_event(1, exec_event("1"))
        fake_acme.push_event(1, exec_event("Reload"))
        await wait_for(lambda: reader.fetch.await_count == 2)

        assert not loop_task.done()
        assert 2 in fake_acme.windows
        assert not handler._tasks
        assert fake_acme.windows[1].returned_events == []

        fake_acme.delete_window(1)
        await asyncio.wait_for(loop_task, timeout=2)

    @pytest.mark.asyncio
    async def test_new_window_failure(self, fake_acme):
        handler, _, loader = await self._handler(fake_acme)
        await handler.start()
        fake_acme.fail_new = True

        assert await handler.open_item(0) is None
        loader.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_article_window_hands_events_back(self, fake_acme):
        handler, _, _ = await self._handler(fake_acme)
        await handler.start()

        win = await handler.open_item(0)
        fake_acme.push_event(win.id, exec_event("Del"))
        await wait_for(lambda: fake_acme.windows[win.id].returned_events == ["Mx0 3\n"])

        fake_acme.delete_window(win.id)
        await wait_for(lambda: not handler._tasks)

    @pytest.mark.asyncio
    async def test_close_cancels_listeners(self, fake_acme):
        handler, _, _ = await self._handler(fake_acme)
        await handler.start()
        await handler.open_item(0)
        await handler.open_item(1)
        assert len(handler._tasks) == 2

        await handler.close()

        await wait_for(lambda: not handler._tasks)

    @pytest.mark.asyncio
    async def test_custom_window_name(self, fake_acme):
        window = await Window.new(fake_acme)
        reader = AsyncMock()
        reader.fetch = AsyncMock(side_effect=_feed)
        handler = RssHandler(window, SOURCES, reader, AsyncMock(return_value="x"), window_name="news")
        await handler.start()

        await handler.open_item(0)

        assert fake_acme.window_named("news/item/1") is not None
        await handler.close()


class TestMessageHandler:
    """Test the article window handler."""

    @pytest.mark.asyncio
    async def test_declines_everything(self, fake_acme):
        handler = MessageHandler(await Window.new(fake_acme))
        assert await handler.execute("Del") is False
        assert await handler.look("https://example.org") is False
