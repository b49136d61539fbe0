"""Fetch and normalize a single RSS/Atom feed."""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx

from radar.schemas.feed import SNIPPET_MAX_LENGTH, FeedItem
from radar.services.extractor import html_to_plain_text
from radar.services.fetcher import USER_AGENT

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 10.0
FEED_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
}


def _parse_time(entry: Any) -> datetime | None:
    """Best-effort publication time from feedparser's normalized tuples (UTC)."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
            except (OverflowError, TypeError, ValueError):
                continue
    return None


def _entry_text(entry: Any) -> str:
    content = entry.get("content") or []
    for block in content:
        value = block.get("value") if hasattr(block, "get") else None
        if value:
            return html_to_plain_text(value)
    return html_to_plain_text(entry.get("summary") or "")


def _source_label(entry: Any, feed_title: str) -> str:
    source = entry.get("source") or {}
    source_title = source.get("title") if hasattr(source, "get") else None
    return entry.get("author") or source_title or feed_title or ""


def normalize_entry(entry: Any, feed_title: str = "") -> FeedItem:
    """Convert a feedparser entry into a FeedItem.

    Title and link default to empty strings; the date string falls back from
    ``published`` to ``updated``; the source label falls back from the entry
    creator to the entry's <source> title to the feed title.
    """
    return FeedItem(
        title=(entry.get("title") or "").strip(),
        link=(entry.get("link") or "").strip(),
        pub_date=entry.get("published") or entry.get("updated") or "",
        published_at=_parse_time(entry),
        source=_source_label(entry, feed_title),
        snippet=_entry_text(entry)[:SNIPPET_MAX_LENGTH],
    )


async def fetch_feed(url: str, *, timeout: float = FEED_TIMEOUT) -> list[FeedItem]:
    """Fetch one feed URL and return its normalized items.

    Never raises: network errors, timeouts, HTTP errors and unparsable
    documents are logged and yield an empty list, so one broken feed
    cannot block its group.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=FEED_HEADERS,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            body = response.content
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Feed error [%s]: %s", url[:80], str(exc) or type(exc).__name__)
        return []

    try:
        parsed = feedparser.parse(body)
        entries = getattr(parsed, "entries", []) or []
        if parsed.get("bozo") and not entries:
            logger.warning("Feed error [%s]: unparsable feed (%s)", url[:80], parsed.get("bozo_exception"))
            return []
        feed_title = (parsed.get("feed") or {}).get("title") or ""
        return [normalize_entry(entry, feed_title) for entry in entries]
    except Exception as exc:  # noqa: BLE001
        logger.warning("Feed error [%s]: %s", url[:80], exc)
        return []
