"""HTML helpers: readable-text extraction with Trafilatura and feed summary cleanup."""

from __future__ import annotations

import html
import re
from typing import Optional

import httpx
import trafilatura

from acme_rss.core.logging import get_logger
from acme_rss.ingestion.fetcher import fetch_article_html

logger = get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_RE = re.compile(r"</?(p|div|br|li|h[1-6]|blockquote|pre|tr)\b[^>]*>", re.IGNORECASE)
_SPACES_RE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


class ArticleParseError(Exception):
    """Raised when article parsing fails."""


def extract_readable_text(html_text: str, *, url: Optional[str] = None) -> str:
    """Strip boilerplate from an article page, returning its readable text."""

    if not html_text or not html_text.strip():
        raise ArticleParseError("Empty HTML payload received")

    text = trafilatura.extract(
        html_text,
        url=url,
        include_comments=False,
        include_tables=False,
        include_images=False,
        favor_recall=True,
    )

    if not text or not text.strip():
        logger.warning("article_parse_failed", url=url, reason="empty_extraction")
        raise ArticleParseError("Article contains no readable text")

    return text.strip()


async def fetch_readable_text(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    **fetch_options,
) -> str:
    """Download ``url`` and return its readable text.

    Raises ArticleFetchError or ArticleParseError.
    """
    page = await fetch_article_html(url, client=client, **fetch_options)
    return extract_readable_text(page, url=url)


def clean_html(text: Optional[str]) -> str:
    """Turn an HTML feed description into plain text, keeping paragraph breaks."""
    if not text:
        return ""

    clean_text = _BLOCK_RE.sub("\n", text)
    clean_text = _TAG_RE.sub("", clean_text)
    clean_text = html.unescape(clean_text)
    clean_text = _SPACES_RE.sub(" ", clean_text)
    clean_text = "\n".join(line.strip() for line in clean_text.split("\n"))
    clean_text = _BLANK_LINES_RE.sub("\n\n", clean_text)

    return clean_text.strip()
