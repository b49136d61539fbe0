"""Tests for feed aggregation: dedupe, sort, truncate and caching."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from radar.schemas.feed import CompetitorGroup, FeedItem
from radar.schemas.sources import CompetitorFeeds, SourceConfig
from radar.services.feed_aggregator import (
    COMPETITOR_ITEM_LIMIT,
    INDUSTRY_ITEM_LIMIT,
    FeedAggregator,
    dedupe_items,
    flatten_for_classification,
    sort_items,
)
from radar.services.feed_cache import FeedCache

BASE = datetime(2025, 10, 1, tzinfo=timezone.utc)


def _item(title: str, hours: int | None = 0, link: str = "") -> FeedItem:
    return FeedItem(
        title=title,
        link=link or f"https://news.example.com/{abs(hash(title))}",
        published_at=BASE + timedelta(hours=hours) if hours is not None else None,
    )


class FakeFetcher:
    """Serves canned items per URL and records the calls."""

    def __init__(self, feeds: dict[str, list[FeedItem]]) -> None:
        self.feeds = feeds
        self.calls: list[tuple[str, float]] = []

    async def __call__(self, url: str, *, timeout: float) -> list[FeedItem]:
        self.calls.append((url, timeout))
        return list(self.feeds.get(url, []))


class TestDedupeAndSort:
    def test_case_insensitive_title_dedupe_first_wins(self):
        first = _item("NFM wins contract", 2, link="https://a.example.com/1")
        dup = _item("nfm WINS contract", 5, link="https://b.example.com/2")
        other = _item("Savotta opens factory", 1)
        result = dedupe_items([first, dup, other])
        assert result == [first, other]

    def test_trailing_punctuation_collapses(self):
        items = [
            _item("NFM wins contract", 3),
            _item("NFM Wins Contract!!", 2),
            _item("Savotta opens factory", 1),
        ]
        assert [i.title for i in dedupe_items(items)] == ["NFM wins contract", "Savotta opens factory"]

    def test_distinct_titles_kept(self):
        items = [_item("NFM wins contract", 1), _item("NFM loses contract", 2)]
        assert len(dedupe_items(items)) == 2

    def test_dedupe_uses_first_60_characters(self):
        prefix = "x" * 60
        a = _item(prefix + " version one")
        b = _item(prefix.upper() + " version two")
        assert dedupe_items([a, b]) == [a]

    def test_sort_newest_first_undated_last(self):
        undated = _item("undated", None)
        old = _item("old", 1)
        new = _item("new", 5)
        assert sort_items([undated, old, new]) == [new, old, undated]


class TestFetchCompetitorFeeds:
    async def test_group_dedupes_sorts_and_keeps_name(self):
        fetcher = FakeFetcher(
            {
                "https://feeds.example.com/nfm-1": [
                    _item("NFM wins contract", 1),
                    _item("Savotta opens factory", 3),
                ],
                "https://feeds.example.com/nfm-2": [_item("nfm Wins Contract", 9)],
            }
        )
        config = SourceConfig(
            competitors={
                "nfm": CompetitorFeeds(
                    name="NFM",
                    feeds=["https://feeds.example.com/nfm-1", "https://feeds.example.com/nfm-2"],
                )
            }
        )
        aggregator = FeedAggregator(FeedCache(), fetcher=fetcher, feed_timeout=4.0)

        groups = await aggregator.fetch_competitor_feeds(config)

        assert list(groups) == ["nfm"]
        assert groups["nfm"].name == "NFM"
        assert [i.title for i in groups["nfm"].items] == ["Savotta opens factory", "NFM wins contract"]
        assert [c[1] for c in fetcher.calls] == [4.0, 4.0]

    async def test_group_truncated_to_limit(self):
        items = [_item(f"Headline number {n}", n) for n in range(40)]
        fetcher = FakeFetcher({"https://f.example.com/a": items})
        config = SourceConfig(competitors={"a": CompetitorFeeds(name="A", feeds=["https://f.example.com/a"])})
        groups = await FeedAggregator(FeedCache(), fetcher=fetcher).fetch_competitor_feeds(config)
        assert len(groups["a"].items) == COMPETITOR_ITEM_LIMIT
        assert groups["a"].items[0].title == "Headline number 39"

    async def test_competitor_without_feeds_yields_empty_group(self):
        config = SourceConfig(competitors={"ghost": CompetitorFeeds(name="Ghost", feeds=[])})
        groups = await FeedAggregator(FeedCache(), fetcher=FakeFetcher({})).fetch_competitor_feeds(config)
        assert groups == {"ghost": CompetitorGroup(name="Ghost", items=[])}

    async def test_failed_feed_does_not_block_group(self):
        fetcher = FakeFetcher({"https://f.example.com/ok": [_item("Still here", 1)]})
        config = SourceConfig(
            competitors={
                "a": CompetitorFeeds(name="A", feeds=["https://f.example.com/down", "https://f.example.com/ok"])
            }
        )
        groups = await FeedAggregator(FeedCache(), fetcher=fetcher).fetch_competitor_feeds(config)
        assert [i.title for i in groups["a"].items] == ["Still here"]

    async def test_served_from_cache_until_forced(self):
        fetcher = FakeFetcher({"https://f.example.com/a": [_item("One", 1)]})
        config = SourceConfig(competitors={"a": CompetitorFeeds(name="A", feeds=["https://f.example.com/a"])})
        aggregator = FeedAggregator(FeedCache(), fetcher=fetcher)

        await aggregator.fetch_competitor_feeds(config)
        await aggregator.fetch_competitor_feeds(config)
        assert len(fetcher.calls) == 1

        await aggregator.fetch_competitor_feeds(config, force=True)
        assert len(fetcher.calls) == 2

        aggregator.invalidate()
        await aggregator.fetch_competitor_feeds(config)
        assert len(fetcher.calls) == 3


class TestFetchIndustryFeeds:
    async def test_merged_deduped_truncated(self):
        feeds = {
            "https://f.example.com/1": [_item(f"Story {n}", n) for n in range(20)],
            "https://f.example.com/2": [_item(f"Story {n}", n) for n in range(10, 35)],
        }
        config = SourceConfig(industry=list(feeds))
        items = await FeedAggregator(FeedCache(), fetcher=FakeFetcher(feeds)).fetch_industry_feeds(config)
        assert len(items) == INDUSTRY_ITEM_LIMIT
        titles = [i.title for i in items]
        assert len(set(titles)) == len(titles)
        assert titles[0] == "Story 34"

    async def test_no_feeds(self):
        items = await FeedAggregator(FeedCache(), fetcher=FakeFetcher({})).fetch_industry_feeds(SourceConfig())
        assert items == []


class TestFlatten:
    def test_tags_items_with_group(self):
        groups = {"nfm": CompetitorGroup(name="NFM", items=[_item("Comp story", 1)])}
        tagged = flatten_for_classification(groups, [_item("Industry story", 2)])
        assert [(t.title, t.source_type, t.source_key, t.source_name) for t in tagged] == [
            ("Comp story", "competitor", "nfm", "NFM"),
            ("Industry story", "industry", None, None),
        ]
