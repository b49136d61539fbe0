"""Signal model: the persisted, classified unit of intelligence."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from radar.db.session import Base


class Signal(Base):
    """Classified feed item or detected web change.

    At most one row per non-null ``link``; colliding inserts are skipped,
    never turned into updates. Rows are never mutated after creation.
    """

    __tablename__ = "signals"

    __table_args__ = (
        Index("ix_signals_quadrant_pub_date", "quadrant", "pub_date"),
        Index("ix_signals_source_key", "source_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("sources.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    link: Mapped[str | None] = mapped_column(String(2048), unique=True, nullable=True)
    pub_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    snippet: Mapped[str | None] = mapped_column(Text, nullable=True)
    quadrant: Mapped[str] = mapped_column(String(32), nullable=False)
    relevance: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    label: Mapped[str | None] = mapped_column(String(60), nullable=True)
    source_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
