"""HTTP page fetcher using httpx async client."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "SignalRadar/1.0 (Competitive Intelligence)"
PAGE_TIMEOUT = 15.0
MAX_REDIRECTS = 5


class FetchError(Exception):
    """A monitored page could not be fetched (network, timeout or HTTP status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


async def fetch_page(url: str, *, timeout: float = PAGE_TIMEOUT) -> str:
    """Fetch a URL and return its body text.

    - Follows redirects transparently (up to 5)
    - No retry: a failure aborts this check until the next poll
    - Raises FetchError on timeout, connection error or non-2xx status
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
    except httpx.TimeoutException as exc:
        logger.warning("Timeout after %.0fs fetching %s", timeout, url)
        raise FetchError(url, "timeout") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %s for %s", exc.response.status_code, url)
        raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("HTTP error fetching %s: %s", url, exc)
        raise FetchError(url, str(exc) or type(exc).__name__) from exc
