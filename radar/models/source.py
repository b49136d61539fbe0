"""Source model: a monitored RSS feed or web page."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from radar.db.session import Base

SOURCE_TYPES = frozenset({"rss", "web_monitor"})
SOURCE_CATEGORIES = frozenset({"competitor", "industry"})


class Source(Base):
    """Feed or page polled by the radar.

    ``competitor_key`` links RSS sources to a competitor group; industry
    sources leave it empty.
    """

    __tablename__ = "sources"

    __table_args__ = (
        Index("ix_sources_type_enabled", "type", "enabled"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), default="rss", nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    competitor_key: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    category: Mapped[str] = mapped_column(String(32), default="industry", nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    poll_interval_minutes: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    last_polled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    snapshots: Mapped[list["WebSnapshot"]] = relationship(
        "WebSnapshot", back_populates="source", cascade="all, delete-orphan"
    )
