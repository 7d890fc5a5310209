"""Ingestion helpers for fetching and parsing article content."""

from .fetcher import ArticleFetchError, fetch_article_html
from .parser import ArticleParseError, clean_html, extract_readable_text, fetch_readable_text

__all__ = [
    "fetch_article_html",
    "ArticleFetchError",
    "extract_readable_text",
    "fetch_readable_text",
    "ArticleParseError",
    "clean_html",
]
