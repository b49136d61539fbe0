"""Tests for single-feed fetching and entry normalization."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from radar.services.feed_fetcher import fetch_feed, normalize_entry

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Defence Wire</title>
    <item>
      <title>NFM wins Nordic contract</title>
      <link>https://news.example.com/nfm</link>
      <pubDate>Tue, 14 Oct 2025 08:30:00 GMT</pubDate>
      <description>&lt;p&gt;NFM &lt;b&gt;signed&lt;/b&gt; a deal.&lt;/p&gt;</description>
      <source url="https://reuters.example.com">Reuters</source>
    </item>
    <item>
      <title>Undated item</title>
      <link>https://news.example.com/undated</link>
      <dc:creator>Jane Reporter</dc:creator>
    </item>
  </channel>
</rss>
"""


def _mock_response(content: bytes, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request("GET", "https://feeds.example.com/rss"),
    )


def _patch_client(MockClient, *, response=None, side_effect=None) -> AsyncMock:
    instance = AsyncMock()
    if side_effect is not None:
        instance.get.side_effect = side_effect
    else:
        instance.get.return_value = response
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    MockClient.return_value = instance
    return instance


class TestFetchFeed:
    async def test_parses_rss_items(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, response=_mock_response(RSS))
            items = await fetch_feed("https://feeds.example.com/rss")

        assert [i.title for i in items] == ["NFM wins Nordic contract", "Undated item"]
        first, second = items
        assert first.link == "https://news.example.com/nfm"
        assert first.pub_date == "Tue, 14 Oct 2025 08:30:00 GMT"
        assert first.published_at == datetime(2025, 10, 14, 8, 30, tzinfo=timezone.utc)
        assert first.snippet == "NFM signed a deal."
        assert first.source == "Reuters"
        assert second.published_at is None
        assert second.pub_date == ""
        assert second.source == "Jane Reporter"

    async def test_http_error_yields_empty(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, response=_mock_response(b"gone", status_code=500))
            assert await fetch_feed("https://feeds.example.com/rss") == []

    async def test_timeout_yields_empty(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, side_effect=httpx.ReadTimeout("timeout"))
            assert await fetch_feed("https://feeds.example.com/rss") == []

    async def test_garbage_yields_empty(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, response=_mock_response(b"\x00\x01 definitely not xml <<<"))
            assert await fetch_feed("https://feeds.example.com/rss") == []

    @pytest.mark.parametrize("url", ["https://example.com/feed\n", "http://a\x00b/"])
    async def test_malformed_url_yields_empty(self, url):
        assert await fetch_feed(url) == []

    async def test_invalid_url_from_client_yields_empty(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, side_effect=httpx.InvalidURL("bad url"))
            assert await fetch_feed("https://feeds.example.com/rss") == []

    async def test_passes_timeout(self):
        with patch("radar.services.feed_fetcher.httpx.AsyncClient") as MockClient:
            _patch_client(MockClient, response=_mock_response(RSS))
            await fetch_feed("https://feeds.example.com/rss", timeout=2.5)
            assert MockClient.call_args[1]["timeout"] == 2.5


class TestNormalizeEntry:
    def test_missing_fields_default_to_empty(self):
        item = normalize_entry({}, "")
        assert item.title == ""
        assert item.link == ""
        assert item.snippet == ""
        assert item.published_at is None

    def test_falls_back_to_feed_title_and_updated(self):
        entry = {
            "title": " Spaced ",
            "updated": "2025-10-01T00:00:00Z",
            "updated_parsed": (2025, 10, 1, 0, 0, 0, 2, 274, 0),
        }
        item = normalize_entry(entry, "Feed Title")
        assert item.title == "Spaced"
        assert item.source == "Feed Title"
        assert item.pub_date == "2025-10-01T00:00:00Z"
        assert item.published_at == datetime(2025, 10, 1, tzinfo=timezone.utc)

    def test_snippet_truncated(self):
        item = normalize_entry({"summary": "x" * 1000}, "")
        assert len(item.snippet) == 300

    def test_prefers_content_over_summary(self):
        entry = {"summary": "short", "content": [{"value": "<p>full body</p>"}]}
        assert normalize_entry(entry, "").snippet == "full body"
