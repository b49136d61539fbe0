"""Poll runs: feed ingestion pipeline and web monitor sweep.

Each run records exactly one ScanRun row. Run-level failures (source
configuration unreadable, batch insert rolled back) are caught here,
logged and recorded on the ScanRun rather than raised, so a scheduler
tick never dies; recovery is the next tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from radar.llm.provider import LLMProvider
from radar.models.scan_run import ScanRun
from radar.schemas.classification import LABEL_MAX_LENGTH, ClassifiedItem
from radar.schemas.signal import SignalCreate
from radar.services.classifier import DEFAULT_CHUNK_SIZE, classify_items
from radar.services.feed_aggregator import FeedAggregator, flatten_for_classification
from radar.services.fetcher import PAGE_TIMEOUT
from radar.services.scan_runs import RUN_TYPE_RSS_POLL, RUN_TYPE_WEB_MONITOR, record_scan_run
from radar.services.signal_storage import create_signals_batch
from radar.services.source_config import get_sources_by_type, load_source_config, mark_polled
from radar.services.web_monitor import check_source

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def to_signal(classified: ClassifiedItem) -> SignalCreate:
    """Map a classified feed item onto the Signal columns."""
    item = classified.item
    return SignalCreate(
        title=item.title,
        link=item.link or None,
        pub_date=item.published_at,
        snippet=item.snippet or None,
        quadrant=classified.quadrant,
        relevance=classified.relevance,
        label=classified.label[:LABEL_MAX_LENGTH],
        source_name=item.source_name or item.source or None,
        source_type=item.source_type,
        source_key=item.source_key,
    )


def signals_for_storage(classified: Sequence[ClassifiedItem]) -> list[SignalCreate]:
    """Linked items mapped to SignalCreate; items that fail validation are skipped."""
    signals: list[SignalCreate] = []
    for entry in classified:
        if not entry.item.link:
            continue
        try:
            signals.append(to_signal(entry))
        except ValidationError as exc:
            logger.warning(
                "Skipping item %r (%s): %s",
                entry.item.title[:60],
                entry.item.link[:80],
                exc.errors()[0]["msg"],
            )
    return signals


def _record_failure(db: Session, run_type: str, message: str, start: float, **counts: int) -> ScanRun | None:
    db.rollback()
    try:
        return record_scan_run(
            db, run_type, errors=message, duration_ms=_elapsed_ms(start), **counts
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not record failed %s run: %s", run_type, exc)
        return None


async def run_feed_poll(
    db: Session,
    aggregator: FeedAggregator,
    provider: LLMProvider | None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ScanRun | None:
    """Fetch all feeds, classify, store new signals, record the run.

    Both feed families are refreshed (bypassing the cache TTL) so each
    poll sees current feeds; the fresh results also repopulate the cache.

    Returns
    -------
    ScanRun | None
        The recorded run; ``None`` only if recording the failure itself failed.
    """
    start = time.monotonic()
    logger.info("Starting feed poll...")
    found = 0
    try:
        config = load_source_config(db)
        competitor_groups, industry_items = await asyncio.gather(
            aggregator.fetch_competitor_feeds(config, force=True),
            aggregator.fetch_industry_feeds(config, force=True),
        )
        tagged = flatten_for_classification(competitor_groups, industry_items)
        found = len(tagged)
        classified = await classify_items(tagged, provider, chunk_size=chunk_size)
        signals = signals_for_storage(classified)
        inserted = create_signals_batch(db, signals)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Feed poll error: %s", exc)
        return _record_failure(db, RUN_TYPE_RSS_POLL, str(exc) or type(exc).__name__, start, items_found=found)

    duration = _elapsed_ms(start)
    run = record_scan_run(
        db,
        RUN_TYPE_RSS_POLL,
        items_found=found,
        items_classified=len(inserted),
        duration_ms=duration,
    )
    logger.info("Feed poll complete: %d items, %d new (%dms)", found, len(inserted), duration)
    return run


async def run_web_monitor_poll(
    db: Session,
    provider: LLMProvider | None,
    *,
    timeout: float = PAGE_TIMEOUT,
) -> ScanRun | None:
    """Check every enabled web_monitor source and record the sweep.

    A failing source is logged and listed in ``errors`` but does not stop
    the sweep. ``items_classified`` counts detected changes (baselines
    excluded).
    """
    start = time.monotonic()
    logger.info("Starting web monitor poll...")
    try:
        monitors = get_sources_by_type(db, "web_monitor")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Web monitor poll error: %s", exc)
        return _record_failure(db, RUN_TYPE_WEB_MONITOR, str(exc) or type(exc).__name__, start)

    changes = 0
    errors: list[str] = []
    for source in monitors:
        url = source.url
        try:
            result = await check_source(db, source, provider, timeout=timeout)
            if result.changed:
                changes += 1
            mark_polled(db, source.id)
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            msg = f"{url}: {exc}"
            logger.error("Web monitor error for %s", msg)
            errors.append(msg)

    duration = _elapsed_ms(start)
    try:
        run = record_scan_run(
            db,
            RUN_TYPE_WEB_MONITOR,
            items_found=len(monitors),
            items_classified=changes,
            errors="; ".join(errors) if errors else None,
            duration_ms=duration,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not record web monitor run: %s", exc)
        return None
    logger.info(
        "Web monitor complete: %d pages, %d changes, %d errors (%dms)",
        len(monitors),
        changes,
        len(errors),
        duration,
    )
    return run
