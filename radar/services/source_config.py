"""Source configuration: the feed groups the pipeline polls.

Every function here that changes feed URLs or groups accepts the shared
:class:`FeedCache` and invalidates it, so the next read refetches with the
new configuration instead of serving results for the old one.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from radar.models.competitor import Competitor
from radar.models.source import SOURCE_CATEGORIES, SOURCE_TYPES, Source
from radar.schemas.sources import CompetitorFeeds, SeedFile, SourceConfig
from radar.services.feed_cache import FeedCache

logger = logging.getLogger(__name__)

# Columns whose change alters what the aggregator fetches
_FEED_SHAPING_FIELDS = frozenset({"type", "url", "competitor_key", "category", "enabled", "name"})
_UPDATABLE_FIELDS = _FEED_SHAPING_FIELDS | {"poll_interval_minutes"}


def load_source_config(db: Session) -> SourceConfig:
    """Build ``{competitors: {key: {name, feeds}}, industry: [url]}`` from enabled RSS sources.

    Every registered competitor gets a group, even with no feeds; industry
    feeds are enabled RSS sources in the ``industry`` category.
    """
    sources = (
        db.query(Source)
        .filter(Source.enabled.is_(True), Source.type == "rss")
        .order_by(Source.id)
        .all()
    )
    competitors = db.query(Competitor).order_by(Competitor.key).all()

    groups: dict[str, CompetitorFeeds] = {}
    for comp in competitors:
        feeds = [s.url for s in sources if s.competitor_key == comp.key]
        groups[comp.key] = CompetitorFeeds(name=comp.name, feeds=feeds)

    industry = [s.url for s in sources if s.category == "industry"]
    return SourceConfig(competitors=groups, industry=industry)


def get_sources_by_type(db: Session, source_type: str) -> list[Source]:
    """Enabled sources of one type, in id order."""
    return (
        db.query(Source)
        .filter(Source.type == source_type, Source.enabled.is_(True))
        .order_by(Source.id)
        .all()
    )


def mark_polled(db: Session, source_id: int) -> None:
    source = db.get(Source, source_id)
    if source is not None:
        source.last_polled_at = datetime.now(timezone.utc)
        db.commit()


def _validate(source_type: str, category: str) -> None:
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type!r}")
    if category not in SOURCE_CATEGORIES:
        raise ValueError(f"Unknown source category: {category!r}")


def _changed(cache: FeedCache | None) -> None:
    if cache is not None:
        cache.invalidate()


def upsert_competitor(
    db: Session, key: str, name: str, *, cache: FeedCache | None = None
) -> Competitor:
    """Create the competitor *key* or rename it."""
    competitor = db.query(Competitor).filter(Competitor.key == key).first()
    if competitor is None:
        competitor = Competitor(key=key, name=name)
        db.add(competitor)
    else:
        competitor.name = name
    db.commit()
    db.refresh(competitor)
    _changed(cache)
    return competitor


def create_source(
    db: Session,
    *,
    url: str,
    name: str,
    source_type: str = "rss",
    category: str = "industry",
    competitor_key: str | None = None,
    poll_interval_minutes: int = 30,
    cache: FeedCache | None = None,
) -> Source:
    _validate(source_type, category)
    source = Source(
        type=source_type,
        url=url,
        name=name,
        category=category,
        competitor_key=competitor_key,
        poll_interval_minutes=poll_interval_minutes,
    )
    db.add(source)
    db.commit()
    db.refresh(source)
    _changed(cache)
    return source


def update_source(
    db: Session,
    source_id: int,
    changes: dict[str, Any],
    *,
    cache: FeedCache | None = None,
) -> Source | None:
    """Apply *changes* to a source; returns None if it does not exist.

    Raises:
        ValueError: On unknown fields or invalid type/category values.
    """
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update source fields: {sorted(unknown)}")
    source = db.get(Source, source_id)
    if source is None:
        return None
    _validate(changes.get("type", source.type), changes.get("category", source.category))
    for field, value in changes.items():
        setattr(source, field, value)
    db.commit()
    db.refresh(source)
    if _FEED_SHAPING_FIELDS & set(changes):
        _changed(cache)
    return source


def delete_source(db: Session, source_id: int, *, cache: FeedCache | None = None) -> bool:
    source = db.get(Source, source_id)
    if source is None:
        return False
    db.delete(source)
    db.commit()
    _changed(cache)
    return True


def seed_sources_from_file(
    db: Session, path: str | Path, *, cache: FeedCache | None = None
) -> int:
    """Seed competitors and RSS sources from a ``sources.json`` file.

    The file has the shape of :class:`SourceConfig` plus an optional
    ``web_monitors`` list of pages. Skipped when the
    sources table already has rows or the file does not exist.

    Returns
    -------
    int
        Number of sources created.
    """
    if db.query(Source.id).first() is not None:
        logger.info("Database already has sources, skipping seed")
        return 0
    path = Path(path)
    if not path.is_file():
        logger.info("No sources file at %s, skipping seed", path)
        return 0

    config = SeedFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
    logger.info("Seeding database from %s...", path)

    existing = {c.key for c in db.query(Competitor).all()}
    created = 0
    for key, group in config.competitors.items():
        name = group.name or key
        if key not in existing:
            db.add(Competitor(key=key, name=name))
        for url in group.feeds:
            db.add(Source(type="rss", url=url, name=name, competitor_key=key, category="competitor"))
            created += 1
    for url in config.industry:
        db.add(Source(type="rss", url=url, name="Industry", category="industry"))
        created += 1
    for page in config.web_monitors:
        db.add(
            Source(
                type="web_monitor",
                url=page.url,
                name=page.name,
                competitor_key=page.competitor_key,
                category=page.category,
            )
        )
        created += 1
    db.commit()
    _changed(cache)
    logger.info("Seeding complete: %d competitors, %d sources", len(config.competitors), created)
    return created
