"""Tests for the feed result cache."""

from __future__ import annotations

import asyncio

import pytest

from radar.services.feed_cache import COMPETITORS, INDUSTRY, FeedCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _counting_loader(values):
    calls = {"n": 0}

    async def loader():
        calls["n"] += 1
        return values[min(calls["n"], len(values)) - 1]

    return loader, calls


class TestFeedCacheTTL:
    async def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = FeedCache(ttl_seconds=900, clock=clock)
        loader, calls = _counting_loader(["first", "second"])

        assert await cache.get_or_refresh(INDUSTRY, loader) == "first"
        clock.now += 899
        assert await cache.get_or_refresh(INDUSTRY, loader) == "first"
        assert calls["n"] == 1

    async def test_refresh_after_ttl(self):
        clock = FakeClock()
        cache = FeedCache(ttl_seconds=900, clock=clock)
        loader, calls = _counting_loader(["first", "second"])

        await cache.get_or_refresh(INDUSTRY, loader)
        clock.now += 901
        assert cache.get(INDUSTRY) is None
        assert await cache.get_or_refresh(INDUSTRY, loader) == "second"
        assert calls["n"] == 2

    async def test_force_bypasses_fresh_entry(self):
        cache = FeedCache(clock=FakeClock())
        loader, calls = _counting_loader(["first", "second"])

        await cache.get_or_refresh(COMPETITORS, loader)
        assert await cache.get_or_refresh(COMPETITORS, loader, force=True) == "second"
        assert cache.get(COMPETITORS) == "second"

    async def test_keys_are_independent(self):
        cache = FeedCache(clock=FakeClock())
        comp, _ = _counting_loader(["c"])
        ind, _ = _counting_loader(["i"])
        await cache.get_or_refresh(COMPETITORS, comp)
        await cache.get_or_refresh(INDUSTRY, ind)
        assert cache.get(COMPETITORS) == "c"
        assert cache.get(INDUSTRY) == "i"


class TestFeedCacheInvalidate:
    async def test_invalidate_all(self):
        cache = FeedCache(clock=FakeClock())
        loader, calls = _counting_loader(["a", "b"])
        await cache.get_or_refresh(INDUSTRY, loader)
        cache.invalidate()
        assert cache.get(INDUSTRY) is None
        assert await cache.get_or_refresh(INDUSTRY, loader) == "b"

    async def test_invalidate_single_key(self):
        cache = FeedCache(clock=FakeClock())
        await cache.get_or_refresh(COMPETITORS, _counting_loader(["c"])[0])
        await cache.get_or_refresh(INDUSTRY, _counting_loader(["i"])[0])
        cache.invalidate(INDUSTRY)
        assert cache.get(INDUSTRY) is None
        assert cache.get(COMPETITORS) == "c"

    async def test_refresh_started_before_invalidate_is_not_cached(self):
        cache = FeedCache(clock=FakeClock())
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_loader():
            started.set()
            await release.wait()
            return "stale"

        task = asyncio.create_task(cache.get_or_refresh(COMPETITORS, slow_loader))
        await started.wait()
        cache.invalidate()
        release.set()

        assert await task == "stale"
        assert cache.get(COMPETITORS) is None


class TestFeedCacheConcurrency:
    async def test_concurrent_callers_share_one_load(self):
        cache = FeedCache(clock=FakeClock())
        calls = {"n": 0}

        async def loader():
            calls["n"] += 1
            await asyncio.sleep(0.01)
            return "value"

        results = await asyncio.gather(*(cache.get_or_refresh(INDUSTRY, loader) for _ in range(5)))
        assert results == ["value"] * 5
        assert calls["n"] == 1

    async def test_failed_load_leaves_cache_empty(self):
        cache = FeedCache(clock=FakeClock())

        async def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_refresh(INDUSTRY, broken)
        assert cache.get(INDUSTRY) is None


class TestFeedCacheStatus:
    async def test_status_reports_age(self):
        clock = FakeClock()
        cache = FeedCache(ttl_seconds=900, clock=clock)
        await cache.get_or_refresh(INDUSTRY, _counting_loader(["i"])[0])
        clock.now += 12.34

        status = cache.status()
        assert status[INDUSTRY] == {"cached": True, "age_seconds": 12.3}
        assert status[COMPETITORS] == {"cached": False, "age_seconds": None}

    async def test_stale_entry_reported_not_cached(self):
        clock = FakeClock()
        cache = FeedCache(ttl_seconds=10, clock=clock)
        await cache.get_or_refresh(INDUSTRY, _counting_loader(["i"])[0])
        clock.now += 60
        assert cache.status()[INDUSTRY]["cached"] is False
