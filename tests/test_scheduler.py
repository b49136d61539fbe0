"""Tests for the background poll scheduler."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from radar.config import Settings
from radar.models import ScanRun
from radar.scheduler import FEED_JOB_ID, WEB_MONITOR_JOB_ID, PollScheduler
from radar.services.feed_aggregator import FeedAggregator
from radar.services.feed_cache import FeedCache


class _NoFeeds:
    async def __call__(self, url, *, timeout):
        return []


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.poll_interval_minutes = 30
    s.initial_poll_delay_seconds = 10
    s.llm_api_key = None
    return s


@pytest.fixture
def poll_scheduler(settings, session_factory):
    ps = PollScheduler(
        settings,
        session_factory=session_factory,
        aggregator=FeedAggregator(FeedCache(), fetcher=_NoFeeds()),
    )
    yield ps
    ps.shutdown()


class TestPollJobs:
    async def test_poll_feeds_records_run_in_own_session(self, poll_scheduler, db):
        run = await poll_scheduler.poll_feeds()
        assert run.run_type == "rss_poll"
        assert db.query(ScanRun).count() == 1

    async def test_poll_web_monitors_records_run(self, poll_scheduler, db):
        run = await poll_scheduler.poll_web_monitors()
        assert run.run_type == "web_monitor"

    async def test_job_errors_are_swallowed(self, poll_scheduler):
        with patch("radar.scheduler.run_feed_poll", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await poll_scheduler.poll_feeds() is None


class TestSchedulerLifecycle:
    async def test_start_registers_two_non_overlapping_jobs(self, poll_scheduler):
        poll_scheduler.start()
        assert poll_scheduler.running

        jobs = {job.id: job for job in poll_scheduler._scheduler.get_jobs()}
        assert set(jobs) == {FEED_JOB_ID, WEB_MONITOR_JOB_ID}
        for job in jobs.values():
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.trigger.interval.total_seconds() == 30 * 60
        poll_scheduler.shutdown()

    async def test_start_is_idempotent_and_shutdown_stops(self, poll_scheduler):
        poll_scheduler.start()
        first = poll_scheduler._scheduler
        poll_scheduler.start()
        assert poll_scheduler._scheduler is first

        poll_scheduler.shutdown()
        assert not poll_scheduler.running

    def test_from_settings_without_key_has_no_providers(self, settings):
        ps = PollScheduler.from_settings(settings)
        assert ps.classify_provider is None
        assert ps.summary_provider is None
        assert ps.cache.ttl_seconds == settings.feed_cache_ttl_seconds
