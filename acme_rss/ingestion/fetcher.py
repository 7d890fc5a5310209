"""Async HTTP fetching of article pages."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from structlog.stdlib import BoundLogger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from acme_rss.core.config import DEFAULT_USER_AGENT
from acme_rss.core.logging import get_logger

DEFAULT_TIMEOUT = 15.0


class ArticleFetchError(Exception):
    """Raised when an article cannot be fetched after retries."""


@asynccontextmanager
async def _client_context(
    client: Optional[httpx.AsyncClient],
    *,
    timeout: float,
    user_agent: str,
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    ) as owned_client:
        yield owned_client


async def fetch_article_html(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    max_attempts: int = 3,
    logger: Optional[BoundLogger] = None,
) -> str:
    """Fetch article HTML, retrying network errors.

    ``timeout`` and ``user_agent`` only configure the client created when
    ``client`` is None; a shared client keeps its own settings.
    """

    log = (logger or get_logger(__name__)).bind(url=url)

    if not url:
        raise ArticleFetchError("Item has no link")

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=(
                retry_if_exception_type(httpx.RequestError)
                & retry_if_not_exception_type(httpx.UnsupportedProtocol)
            ),
            reraise=True,
        ):
            with attempt:
                log.debug("fetching_article_html", attempt=attempt.retry_state.attempt_number)
                async with _client_context(client, timeout=timeout, user_agent=user_agent) as active_client:
                    response = await active_client.get(url)
                    response.raise_for_status()
                    return response.text
    except httpx.InvalidURL as exc:
        log.warning("article_invalid_url", error=str(exc))
        raise ArticleFetchError(f"Invalid article URL {url}: {exc}") from exc
    except httpx.RequestError as exc:
        log.warning("article_fetch_failed", error=str(exc))
        raise ArticleFetchError(f"Failed to fetch article from {url}: {exc}") from exc
    except httpx.HTTPStatusError as exc:
        log.warning(
            "article_fetch_http_error",
            status_code=exc.response.status_code,
            error=str(exc),
        )
        raise ArticleFetchError(f"HTTP error fetching article from {url}") from exc

    raise ArticleFetchError(f"Unable to fetch article from {url}")
