"""Web change monitor: snapshot, hash and diff monitored pages.

Per source there are two states. Without a prior snapshot, the first check
stores a baseline and emits nothing. With one, an identical content hash is
a no-op; a different hash stores a new snapshot with an LLM-written diff
summary and emits one Signal.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urldefrag

from sqlalchemy.orm import Session

from radar.llm.provider import LLMProvider
from radar.models.signal import Signal
from radar.models.source import Source
from radar.models.web_snapshot import WebSnapshot
from radar.prompts.loader import load_prompt, render_prompt
from radar.schemas.classification import DEFAULT_RELEVANCE, LABEL_MAX_LENGTH, Quadrant
from radar.schemas.signal import LINK_MAX_LENGTH, SignalCreate
from radar.services.extractor import extract_text
from radar.services.fetcher import PAGE_TIMEOUT, fetch_page
from radar.services.signal_storage import insert_signal

logger = logging.getLogger(__name__)

BASELINE_SUMMARY = "Initial snapshot captured"
NO_PROVIDER_SUMMARY = "Content changed (no AI key for summary)"
FAILED_SUMMARY = "Content changed (AI summary failed)"
EXCERPT_LENGTH = 3000
SUMMARY_MAX_TOKENS = 500

STATUS_BASELINE = "baseline"
STATUS_UNCHANGED = "unchanged"
STATUS_CHANGED = "changed"


@dataclass(frozen=True)
class WebCheckResult:
    status: str
    diff_summary: str | None = None
    snapshot: WebSnapshot | None = None
    signal: Signal | None = None

    @property
    def changed(self) -> bool:
        return self.status == STATUS_CHANGED


def hash_content(text: str) -> str:
    """SHA-256 hex digest of extracted page text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def change_link(url: str, snapshot_id: int) -> str | None:
    """Per-change signal link: the page URL without its fragment plus ``#snapshot-<id>``.

    ``None`` when the result would not fit the link column; the signal is
    then stored without a link.
    """
    link = f"{urldefrag(url).url}#snapshot-{snapshot_id}"
    if len(link) > LINK_MAX_LENGTH:
        logger.warning(
            "Change link for %s exceeds %d chars; storing signal without link",
            url[:80],
            LINK_MAX_LENGTH,
        )
        return None
    return link


def infer_quadrant(source: Source) -> Quadrant:
    """Quadrant for a page change, from the source's own configuration."""
    if source.competitor_key:
        return Quadrant.COMPETITORS
    if source.category == "industry":
        return Quadrant.INDUSTRY
    return Quadrant.ANOMALIES


def get_latest_snapshot(db: Session, source_id: int) -> WebSnapshot | None:
    return (
        db.query(WebSnapshot)
        .filter(WebSnapshot.source_id == source_id)
        .order_by(WebSnapshot.created_at.desc(), WebSnapshot.id.desc())
        .first()
    )


async def summarize_changes(
    provider: LLMProvider | None, old_text: str, new_text: str, url: str
) -> str:
    """Short natural-language description of what changed.

    Never raises: without a provider, or when the call fails, a placeholder
    string is returned instead.
    """
    if provider is None:
        return NO_PROVIDER_SUMMARY
    try:
        prompt = render_prompt(
            "web_change_summary_v1",
            URL=url,
            OLD_TEXT=old_text[:EXCERPT_LENGTH],
            NEW_TEXT=new_text[:EXCERPT_LENGTH],
        )
        summary = await asyncio.to_thread(
            provider.complete,
            prompt,
            system_prompt=load_prompt("web_change_system_v1"),
            max_tokens=SUMMARY_MAX_TOKENS,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("AI summary error for %s: %s", url, exc)
        return FAILED_SUMMARY
    return summary.strip() or FAILED_SUMMARY


async def check_source(
    db: Session,
    source: Source,
    provider: LLMProvider | None = None,
    *,
    timeout: float = PAGE_TIMEOUT,
) -> WebCheckResult:
    """Run one change check for a web_monitor source.

    Raises
    ------
    FetchError
        When the page cannot be fetched; nothing is written.
    """
    logger.info("Checking %s...", source.url)
    html = await fetch_page(source.url, timeout=timeout)
    text = extract_text(html)
    content_hash = hash_content(text)

    previous = get_latest_snapshot(db, source.id)
    if previous is not None and previous.content_hash == content_hash:
        logger.info("No change: %s", source.url)
        return WebCheckResult(status=STATUS_UNCHANGED)

    if previous is None:
        diff_summary = BASELINE_SUMMARY
        logger.info("Initial snapshot: %s", source.url)
    else:
        diff_summary = await summarize_changes(provider, previous.extracted_text, text, source.url)
        logger.info("Change detected: %s", source.url)

    try:
        snapshot = WebSnapshot(
            source_id=source.id,
            content_hash=content_hash,
            extracted_text=text,
            diff_summary=diff_summary,
        )
        db.add(snapshot)
        db.flush()

        signal = None
        if previous is not None:
            name = source.name or source.url
            signal = insert_signal(
                db,
                SignalCreate(
                    source_id=source.id,
                    title=f"Web change: {name}",
                    # One signal per change; the page URL alone would collide after the first
                    link=change_link(source.url, snapshot.id),
                    pub_date=datetime.now(timezone.utc),
                    snippet=diff_summary,
                    quadrant=infer_quadrant(source),
                    relevance=DEFAULT_RELEVANCE,
                    label=diff_summary[:LABEL_MAX_LENGTH],
                    source_name=name,
                    source_type="web_monitor",
                    source_key=source.competitor_key,
                ),
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    status = STATUS_BASELINE if previous is None else STATUS_CHANGED
    return WebCheckResult(status=status, diff_summary=diff_summary, snapshot=snapshot, signal=signal)
