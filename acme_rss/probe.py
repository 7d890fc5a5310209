#!/usr/bin/env python3
"""Quick feed probe for checking the feeds file from a terminal, without acme.

Run with:
    acme-rss-probe --limit 3 --feed lobsters
    acme-rss-probe --feed lobsters --limit 1 --show-content --content-limit 0

Only fetches and prints items; use ``--show-content`` to also fetch and print
the extracted article text (via Trafilatura).
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import structlog
from pydantic import ValidationError

from acme_rss.core.config import get_settings
from acme_rss.core.logging import configure_logging
from acme_rss.feeds.base import FeedItem, FeedReaderError, FeedSource, http_client
from acme_rss.feeds.reader import FeedReader
from acme_rss.feeds.sources import FeedsFileError, read_feeds_file
from acme_rss.ingestion import ArticleFetchError, ArticleParseError, clean_html, fetch_readable_text

LOGGER = structlog.get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch the configured feeds and print their items")
    parser.add_argument("--feeds", help="Feeds file (default: ~/.rss or ACME_RSS_FEEDS_FILE)")
    parser.add_argument(
        "--feed",
        dest="feeds_selected",
        action="append",
        default=None,
        help="Limit run to one or more feed names. Can be repeated.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=3,
        help="Number of items to display per feed (default: 3)",
    )
    parser.add_argument(
        "--show-summary",
        action="store_true",
        help="Print the item description if available",
    )
    parser.add_argument(
        "--show-content",
        action="store_true",
        help="Fetch and display extracted article content (may take longer)",
    )
    parser.add_argument(
        "--content-limit",
        type=int,
        default=800,
        help="Max characters of article content to show with --show-content (default 800, 0 = unlimited)",
    )
    parser.add_argument(
        "--no-logs",
        action="store_true",
        help="Leave logging unconfigured",
    )
    return parser


async def _get_article_content(item: FeedItem, client: httpx.AsyncClient, *, limit: int) -> str:
    try:
        text = await fetch_readable_text(item.link, client=client, max_attempts=1)
    except ArticleFetchError as exc:
        LOGGER.warning("article_content_fetch_failed", url=item.link, error=str(exc))
        return f"[content fetch failed: {exc}]"
    except ArticleParseError as exc:
        LOGGER.warning("article_content_parse_failed", url=item.link, error=str(exc))
        return f"[content parse failed: {exc}]"

    if limit and limit > 0 and len(text) > limit:
        return text[:limit].rstrip() + "…"
    return text


def _format_item(index: int, item: FeedItem, *, show_summary: bool, content: Optional[str] = None) -> str:
    line = f"{index}/ {item.title} ({item.date_label() or '?'})\n  {item.link}"
    summary = clean_html(item.description) if show_summary else ""
    if summary:
        line += "\n    " + summary.replace("\n", " ")
    if content:
        body = content.strip().replace("\r", "")
        if body:
            indented = "\n".join(f"    {row}" for row in body.splitlines())
            line += f"\n    --- article content ---\n{indented}"
    return line


async def probe(
    sources: Sequence[FeedSource],
    client: httpx.AsyncClient,
    *,
    limit: int = 3,
    show_summary: bool = False,
    show_content: bool = False,
    content_limit: int = 800,
) -> bool:
    """Fetch every source concurrently and print its first ``limit`` items.

    Returns False if any feed failed.
    """
    reader = FeedReader(client=client, max_attempts=1)
    tasks: List[asyncio.Task] = [asyncio.create_task(reader.fetch(source)) for source in sources]

    success = True
    for source, task in zip(sources, tasks):
        try:
            feed = await task
        except FeedReaderError as exc:
            LOGGER.error("feed_failed", feed=source.name, error=str(exc))
            print(f"\n=== {source.name} ({source.url}) ===\n  failed: {exc}")
            success = False
            continue

        print(f"\n=== {source.name}: {feed.title} ({source.url}) ===")
        for index, item in enumerate(feed.items[:limit], start=1):
            content = None
            if show_content:
                content = await _get_article_content(item, client, limit=content_limit)
            print(_format_item(index, item, show_summary=show_summary, content=content))

        if len(feed.items) > limit:
            print(f"  … {len(feed.items) - limit} more items (increase --limit to view)")

    return success


async def _run(argv: Optional[Sequence[str]]) -> int:
    args = _build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError:
        return 1

    if not args.no_logs:
        configure_logging(settings.log_level, json_format=settings.log_json)

    feeds_path = Path(args.feeds).expanduser() if args.feeds else settings.feeds_path
    try:
        sources = read_feeds_file(feeds_path)
    except FeedsFileError as exc:
        LOGGER.error("feeds_file_unreadable", path=str(feeds_path), error=exc.reason)
        return 1

    if args.feeds_selected:
        sources = [s for s in sources if s.name in args.feeds_selected]
    if not sources:
        LOGGER.error("no_matching_feeds", requested=args.feeds_selected, path=str(feeds_path))
        return 1

    async with http_client(timeout=settings.http_timeout, user_agent=settings.user_agent) as client:
        success = await probe(
            sources,
            client,
            limit=args.limit,
            show_summary=args.show_summary,
            show_content=args.show_content,
            content_limit=args.content_limit,
        )
    return 0 if success else 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    return asyncio.run(_run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
