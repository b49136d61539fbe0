"""Aggregate feeds per group: fetch, dedupe, sort, truncate, cache."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Sequence

from radar.schemas.feed import CompetitorGroup, FeedItem, TaggedFeedItem
from radar.schemas.sources import CompetitorFeeds, SourceConfig
from radar.services.feed_cache import COMPETITORS, INDUSTRY, FeedCache
from radar.services.feed_fetcher import FEED_TIMEOUT, fetch_feed

logger = logging.getLogger(__name__)

DEDUP_KEY_LENGTH = 60

_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")
COMPETITOR_ITEM_LIMIT = 15
INDUSTRY_ITEM_LIMIT = 30

FeedFetcher = Callable[..., Awaitable[list[FeedItem]]]


def dedup_key(item: FeedItem) -> str:
    """Lowercased title truncated to 60 characters, punctuation removed.

    Truncation happens first, so titles sharing a 60-character prefix
    always share a key.
    """
    prefix = item.title.lower()[:DEDUP_KEY_LENGTH]
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub("", prefix)).strip()


def dedupe_items(items: Iterable[FeedItem]) -> list[FeedItem]:
    """Drop items whose dedup key was already seen; first occurrence wins."""
    seen: set[str] = set()
    unique: list[FeedItem] = []
    for item in items:
        key = dedup_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _sort_timestamp(item: FeedItem) -> float:
    return item.published_at.timestamp() if item.published_at else 0.0


def sort_items(items: Iterable[FeedItem]) -> list[FeedItem]:
    """Newest first; undated items count as the epoch and land last."""
    return sorted(items, key=_sort_timestamp, reverse=True)


def flatten_for_classification(
    competitor_groups: dict[str, CompetitorGroup],
    industry_items: Sequence[FeedItem],
) -> list[TaggedFeedItem]:
    """Tag every item with its group so the classifier gets a source-type hint."""
    tagged: list[TaggedFeedItem] = []
    for key, group in competitor_groups.items():
        for item in group.items:
            tagged.append(
                TaggedFeedItem(
                    **item.model_dump(),
                    source_type="competitor",
                    source_key=key,
                    source_name=group.name,
                )
            )
    for item in industry_items:
        tagged.append(TaggedFeedItem(**item.model_dump(), source_type="industry"))
    return tagged


class FeedAggregator:
    """Fetches feed groups through a shared :class:`FeedCache`."""

    def __init__(
        self,
        cache: FeedCache,
        *,
        fetcher: FeedFetcher = fetch_feed,
        feed_timeout: float = FEED_TIMEOUT,
    ) -> None:
        self.cache = cache
        self._fetcher = fetcher
        self.feed_timeout = feed_timeout

    async def _fetch_all(self, urls: Sequence[str]) -> list[FeedItem]:
        # One feed at a time to bound load on each source
        items: list[FeedItem] = []
        for url in urls:
            items.extend(await self._fetcher(url, timeout=self.feed_timeout))
        return items

    async def _fetch_group(self, feeds: CompetitorFeeds) -> CompetitorGroup:
        items = sort_items(dedupe_items(await self._fetch_all(feeds.feeds)))
        return CompetitorGroup(name=feeds.name, items=items[:COMPETITOR_ITEM_LIMIT])

    async def _load_competitors(self, config: SourceConfig) -> dict[str, CompetitorGroup]:
        logger.info("Fetching competitor feeds (%d groups)...", len(config.competitors))
        keys = list(config.competitors)
        groups = await asyncio.gather(
            *(self._fetch_group(config.competitors[key]) for key in keys)
        )
        results = dict(zip(keys, groups))
        logger.info("Competitor feeds complete: %d groups", len(results))
        return results

    async def _load_industry(self, config: SourceConfig) -> list[FeedItem]:
        logger.info("Fetching industry feeds (%d feeds)...", len(config.industry))
        items = sort_items(dedupe_items(await self._fetch_all(config.industry)))
        result = items[:INDUSTRY_ITEM_LIMIT]
        logger.info("Industry feed: %d items", len(result))
        return result

    async def fetch_competitor_feeds(
        self, config: SourceConfig, *, force: bool = False
    ) -> dict[str, CompetitorGroup]:
        """Return ``{key: CompetitorGroup}`` with at most 15 items per group."""
        return await self.cache.get_or_refresh(
            COMPETITORS, lambda: self._load_competitors(config), force=force
        )

    async def fetch_industry_feeds(
        self, config: SourceConfig, *, force: bool = False
    ) -> list[FeedItem]:
        """Return at most 30 deduplicated industry items, newest first."""
        return await self.cache.get_or_refresh(
            INDUSTRY, lambda: self._load_industry(config), force=force
        )

    def invalidate(self) -> None:
        """Drop cached results; call whenever source configuration changes."""
        self.cache.invalidate()
