"""Background polling on a fixed interval using APScheduler.

Two independent jobs, feed ingestion and the web monitor sweep, run every
``POLL_INTERVAL_MINUTES`` and once shortly after start. Each job opens its
own session and records its own ScanRun. ``max_instances=1`` keeps a slow
run from overlapping the next tick of the same job; the skipped tick is
logged by APScheduler and the job runs again on the following one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from radar.config import Settings, get_settings
from radar.db.session import SessionLocal
from radar.llm.provider import LLMProvider
from radar.llm.router import ModelRole, resolve_llm_provider
from radar.models.scan_run import ScanRun
from radar.services.feed_aggregator import FeedAggregator
from radar.services.feed_cache import FeedCache
from radar.services.polling import run_feed_poll, run_web_monitor_poll

logger = logging.getLogger(__name__)

FEED_JOB_ID = "rss_poll"
WEB_MONITOR_JOB_ID = "web_monitor"


class PollScheduler:
    """Owns the feed cache, aggregator and the two polling jobs."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        aggregator: FeedAggregator | None = None,
        classify_provider: LLMProvider | None = None,
        summary_provider: LLMProvider | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self.aggregator = aggregator or FeedAggregator(
            FeedCache(ttl_seconds=self.settings.feed_cache_ttl_seconds),
            feed_timeout=self.settings.feed_timeout,
        )
        self.classify_provider = classify_provider
        self.summary_provider = summary_provider
        self._scheduler: AsyncIOScheduler | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> PollScheduler:
        """Build a scheduler with LLM providers resolved from settings (None without a key)."""
        settings = settings or get_settings()
        return cls(
            settings,
            classify_provider=resolve_llm_provider(ModelRole.CLASSIFY, settings),
            summary_provider=resolve_llm_provider(ModelRole.SUMMARY, settings),
            **kwargs,
        )

    @property
    def cache(self) -> FeedCache:
        return self.aggregator.cache

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def poll_feeds(self) -> ScanRun | None:
        db = self._session_factory()
        try:
            return await run_feed_poll(
                db,
                self.aggregator,
                self.classify_provider,
                chunk_size=self.settings.radar_chunk_size,
            )
        except Exception:
            logger.exception("Feed poll job failed")
            return None
        finally:
            db.close()

    async def poll_web_monitors(self) -> ScanRun | None:
        db = self._session_factory()
        try:
            return await run_web_monitor_poll(
                db,
                self.summary_provider,
                timeout=self.settings.page_timeout,
            )
        except Exception:
            logger.exception("Web monitor job failed")
            return None
        finally:
            db.close()

    def start(self) -> None:
        """Schedule both jobs; must be called with a running event loop."""
        if self.running:
            return
        first_run = datetime.now(timezone.utc) + timedelta(
            seconds=self.settings.initial_poll_delay_seconds
        )
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        for job_id, func in (
            (FEED_JOB_ID, self.poll_feeds),
            (WEB_MONITOR_JOB_ID, self.poll_web_monitors),
        ):
            scheduler.add_job(
                func,
                IntervalTrigger(minutes=self.settings.poll_interval_minutes),
                id=job_id,
                name=job_id,
                next_run_time=first_run,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Background polling started (every %d min, first run in %ds)",
            self.settings.poll_interval_minutes,
            self.settings.initial_poll_delay_seconds,
        )

    def shutdown(self) -> None:
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background polling stopped")
