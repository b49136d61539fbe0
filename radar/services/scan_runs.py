"""ScanRun telemetry: append-only records of poll executions."""

from __future__ import annotations

from sqlalchemy.orm import Session

from radar.models.scan_run import ScanRun

RUN_TYPE_RSS_POLL = "rss_poll"
RUN_TYPE_WEB_MONITOR = "web_monitor"


def record_scan_run(
    db: Session,
    run_type: str,
    *,
    items_found: int = 0,
    items_classified: int = 0,
    errors: str | None = None,
    duration_ms: int | None = None,
) -> ScanRun:
    """Insert and commit one ScanRun row."""
    run = ScanRun(
        run_type=run_type,
        items_found=items_found,
        items_classified=items_classified,
        errors=errors,
        duration_ms=duration_ms,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def get_recent_scan_runs(db: Session, limit: int = 10) -> list[ScanRun]:
    """Most recent runs first."""
    return (
        db.query(ScanRun)
        .order_by(ScanRun.created_at.desc(), ScanRun.id.desc())
        .limit(limit)
        .all()
    )
