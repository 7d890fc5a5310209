"""
Reading the feed list.

The feeds file holds one source per line::

    # comment
    lobsters https://lobste.rs/rss
    https://example.com/atom.xml

A line with a single field is a bare URL and gets a generated ``FeedN`` name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from acme_rss.core.logging import get_logger
from acme_rss.feeds.base import FeedSource

logger = get_logger(__name__)

DEFAULT_FEEDS_FILE = "~/.rss"


class FeedsFileError(Exception):
    """Raised when the feeds file cannot be read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = path
        self.reason = reason


def parse_feeds(lines: Iterable[str]) -> List[FeedSource]:
    """Parse feeds file lines into sources, keeping file order."""
    feeds: List[FeedSource] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) == 1:
            feeds.append(FeedSource(name=f"Feed{len(feeds) + 1}", url=parts[0]))
        else:
            feeds.append(FeedSource(name=parts[0], url=parts[1]))
    return feeds


def read_feeds_file(path: Optional[Union[str, Path]] = None) -> List[FeedSource]:
    """
    Read and parse the feeds file.

    Args:
        path: File to read; defaults to ``~/.rss``

    Returns:
        The sources in file order (possibly empty).

    Raises:
        FeedsFileError: When the file is missing or unreadable.
    """
    feeds_path = Path(path or DEFAULT_FEEDS_FILE).expanduser()
    try:
        with feeds_path.open("r", encoding="utf-8") as f:
            feeds = parse_feeds(f)
    except (OSError, UnicodeDecodeError) as exc:
        raise FeedsFileError(feeds_path, str(exc)) from exc

    logger.debug("feeds_file_loaded", path=str(feeds_path), count=len(feeds))
    return feeds


def find_source(sources: Sequence[FeedSource], name: str) -> Optional[FeedSource]:
    """Look up a source by name; ``[name]`` (the tag's current-feed marker) also matches."""
    candidates = [name]
    if len(name) > 2 and name.startswith("[") and name.endswith("]"):
        candidates.append(name[1:-1])
    for candidate in candidates:
        for source in sources:
            if source.name == candidate:
                return source
    return None
