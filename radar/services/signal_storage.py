"""Idempotent signal persistence and querying.

A Signal is unique per non-null ``link``. Inserts use
``INSERT ... ON CONFLICT (link) DO NOTHING`` so concurrent writers can race
freely: the database keeps the first row and the loser's insert is a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from radar.models.signal import Signal
from radar.schemas.signal import SignalCreate, SignalPage, SignalQuery, SignalRead

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_signal(db: Session, data: SignalCreate) -> Signal | None:
    """Insert one row inside the current transaction; None on link collision."""
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Conflict-skipping insert not supported for dialect {dialect!r}")
    stmt = (
        insert(Signal)
        .values(**data.model_dump())
        .on_conflict_do_nothing(index_elements=["link"])
        .returning(Signal)
    )
    row = db.scalars(stmt).first()
    if row is None:
        logger.debug("Duplicate signal skipped: link=%s", data.link)
    return row


def create_signal(db: Session, data: SignalCreate) -> Signal | None:
    """Insert one signal and commit.

    Returns
    -------
    Signal | None
        The new row, or ``None`` when a signal with the same link exists.
    """
    try:
        row = insert_signal(db, data)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return row


def create_signals_batch(db: Session, signals: Sequence[SignalCreate]) -> list[Signal]:
    """Insert many signals in one transaction.

    Link collisions are skipped, not errors. Any other failure rolls back
    the whole batch and re-raises.

    Returns
    -------
    list[Signal]
        Only the newly inserted rows.
    """
    if not signals:
        return []
    inserted: list[Signal] = []
    try:
        for data in signals:
            row = insert_signal(db, data)
            if row is not None:
                inserted.append(row)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Signal batch of %d rolled back", len(signals))
        raise
    logger.info("Signal batch: %d submitted, %d new", len(signals), len(inserted))
    return inserted


def query_signals(db: Session, query: SignalQuery) -> SignalPage:
    """Filtered, sorted, paginated signals plus the total matching count."""
    filters = []
    if query.quadrant:
        filters.append(Signal.quadrant == query.quadrant)
    if query.source_key:
        filters.append(Signal.source_key == query.source_key)
    if query.source_type:
        filters.append(Signal.source_type == query.source_type)
    if query.min_relevance is not None:
        filters.append(Signal.relevance >= query.min_relevance)
    if query.max_relevance is not None:
        filters.append(Signal.relevance <= query.max_relevance)
    if query.from_date is not None:
        filters.append(Signal.pub_date >= query.from_date)
    if query.to_date is not None:
        filters.append(Signal.pub_date <= query.to_date)
    if query.search:
        filters.append(
            or_(
                Signal.title.icontains(query.search, autoescape=True),
                Signal.label.icontains(query.search, autoescape=True),
            )
        )

    base = db.query(Signal).filter(*filters)
    total = base.count()

    column = Signal.relevance if query.sort_by == "relevance" else Signal.pub_date
    ordered = column.asc() if query.sort_dir == "asc" else column.desc()
    tiebreak = Signal.id.asc() if query.sort_dir == "asc" else Signal.id.desc()
    rows = (
        base.order_by(ordered.nulls_last(), tiebreak)
        .limit(query.limit)
        .offset(query.offset)
        .all()
    )
    return SignalPage(
        items=[SignalRead.model_validate(row) for row in rows],
        total=total,
        limit=query.limit,
        offset=query.offset,
    )


def get_recent_signals(db: Session, hours: int = 24) -> list[Signal]:
    """Signals created within the last *hours*, newest publication first."""
    cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
    return (
        db.query(Signal)
        .filter(Signal.created_at > cutoff)
        .order_by(Signal.pub_date.desc().nulls_last(), Signal.id.desc())
        .all()
    )


def signal_exists(db: Session, link: str | None) -> bool:
    """True if a signal with this link is already stored."""
    if not link:
        return False
    return db.query(Signal.id).filter(Signal.link == link).first() is not None
