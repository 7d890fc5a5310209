"""Feed sources and the RSS/Atom reader."""

from .base import Feed, FeedItem, FeedReaderError, FeedSource, http_client
from .reader import FeedReader
from .sources import FeedsFileError, find_source, parse_feeds, read_feeds_file

__all__ = [
    "Feed",
    "FeedItem",
    "FeedReader",
    "FeedReaderError",
    "FeedSource",
    "FeedsFileError",
    "find_source",
    "http_client",
    "parse_feeds",
    "read_feeds_file",
]
