"""Command line entry point: open the ``rss`` window in acme and serve its events."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from acme_rss.acme.client import AcmeError, NinePClient
from acme_rss.acme.window import Window
from acme_rss.core.config import Settings, get_settings
from acme_rss.core.logging import configure_logging, get_logger
from acme_rss.feeds.base import FeedSource, http_client
from acme_rss.feeds.reader import FeedReader
from acme_rss.feeds.sources import FeedsFileError, find_source, read_feeds_file
from acme_rss.handlers import RssHandler
from acme_rss.ingestion.parser import fetch_readable_text

logger = get_logger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="acme-rss",
        description="Read RSS/Atom feeds in an acme window.",
    )
    parser.add_argument("--feeds", help="Feeds file (default: ~/.rss or ACME_RSS_FEEDS_FILE)")
    parser.add_argument("--feed", help="Name of the feed to show first")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override ACME_RSS_LOG_LEVEL",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the configured feeds and exit without opening a window",
    )
    return parser.parse_args(argv)


async def run(settings: Settings, sources: List[FeedSource], start: FeedSource) -> int:
    """Create the listing window and process its events until it is deleted."""
    client = NinePClient(settings.ninep_command, namespace=settings.namespace)

    async with http_client(timeout=settings.http_timeout, user_agent=settings.user_agent) as http:
        reader = FeedReader(client=http, max_attempts=settings.http_max_attempts)

        async def load_article(url: str) -> str:
            return await fetch_readable_text(
                url,
                client=http,
                max_attempts=settings.http_max_attempts,
            )

        window = await Window.new(client)
        await window.name(settings.window_name)
        handler = RssHandler(
            window,
            sources,
            reader,
            load_article,
            current=start,
            window_name=settings.window_name,
        )
        logger.info("window_opened", window_id=window.id, feeds=len(sources), feed=start.name)

        loop_task = asyncio.create_task(window.event_loop(handler))
        try:
            await handler.start()
            await window.ctl("clean")
            await loop_task
        finally:
            if not loop_task.done():
                loop_task.cancel()
            await handler.close()

    logger.info("window_closed")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = get_settings()
    except ValidationError:
        return 1
    configure_logging(args.log_level or settings.log_level, json_format=settings.log_json)

    feeds_path = Path(args.feeds).expanduser() if args.feeds else settings.feeds_path
    try:
        sources = read_feeds_file(feeds_path)
    except FeedsFileError as exc:
        print(exc, file=sys.stderr)
        return 1
    if not sources:
        print(f"No feeds found in {feeds_path}", file=sys.stderr)
        return 1

    if args.list:
        for source in sources:
            print(f"{source.name} {source.url}")
        return 0

    start = sources[0]
    if args.feed:
        start = find_source(sources, args.feed)
        if start is None:
            print(f"No feed named {args.feed} in {feeds_path}", file=sys.stderr)
            return 2

    try:
        return asyncio.run(run(settings, sources, start))
    except AcmeError as exc:
        logger.error("acme_unavailable", error=str(exc))
        print(exc, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
