"""In-memory feed item schemas (one fetch cycle lifetime)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SNIPPET_MAX_LENGTH = 300

SourceTypeHint = Literal["competitor", "industry"]


class FeedItem(BaseModel):
    """Normalized RSS/Atom entry.

    ``pub_date`` keeps the feed's own date string; ``published_at`` is the
    best-effort parsed form used for sorting and persistence.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    link: str = ""
    pub_date: str = ""
    published_at: Optional[datetime] = None
    source: str = ""
    snippet: str = Field("", max_length=SNIPPET_MAX_LENGTH)


class TaggedFeedItem(FeedItem):
    """Feed item tagged with the group it was aggregated under."""

    source_type: SourceTypeHint
    source_key: Optional[str] = None
    source_name: Optional[str] = None


class CompetitorGroup(BaseModel):
    """Aggregated items for one competitor."""

    name: str
    items: list[FeedItem] = Field(default_factory=list)
