"""Signal schemas for persistence and querying."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from radar.schemas.classification import LABEL_MAX_LENGTH, Quadrant

DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 200
LINK_MAX_LENGTH = 2048


class SignalCreate(BaseModel):
    """Fields for inserting one Signal."""

    model_config = ConfigDict(use_enum_values=True)

    source_id: Optional[int] = None
    title: str = ""
    link: Optional[str] = Field(None, max_length=LINK_MAX_LENGTH)
    pub_date: Optional[datetime] = None
    snippet: Optional[str] = None
    quadrant: Quadrant
    relevance: int = Field(5, ge=1, le=10)
    label: Optional[str] = Field(None, max_length=LABEL_MAX_LENGTH)
    source_name: Optional[str] = None
    source_type: Optional[str] = None
    source_key: Optional[str] = None

    @field_validator("link", mode="before")
    @classmethod
    def _blank_link_is_null(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SignalRead(BaseModel):
    """Schema for reading a signal row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source_id: Optional[int] = None
    title: str
    link: Optional[str] = None
    pub_date: Optional[datetime] = None
    snippet: Optional[str] = None
    quadrant: str
    relevance: int
    label: Optional[str] = None
    source_name: Optional[str] = None
    source_type: Optional[str] = None
    source_key: Optional[str] = None
    created_at: datetime


class SignalQuery(BaseModel):
    """Filters, sort and page window for signal queries.

    ``limit`` above 200 is capped rather than rejected; a missing or
    non-positive limit falls back to 50.
    """

    model_config = ConfigDict(use_enum_values=True)

    quadrant: Optional[Quadrant] = None
    source_key: Optional[str] = None
    source_type: Optional[str] = None
    min_relevance: Optional[int] = None
    max_relevance: Optional[int] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: Literal["date", "relevance"] = "date"
    sort_dir: Literal["asc", "desc"] = "desc"
    limit: int = DEFAULT_QUERY_LIMIT
    offset: int = 0

    @field_validator("limit", mode="before")
    @classmethod
    def _cap_limit(cls, v) -> int:
        try:
            limit = int(v)
        except (TypeError, ValueError):
            return DEFAULT_QUERY_LIMIT
        if limit <= 0:
            return DEFAULT_QUERY_LIMIT
        return min(limit, MAX_QUERY_LIMIT)

    @field_validator("offset", mode="before")
    @classmethod
    def _non_negative_offset(cls, v) -> int:
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 0


class SignalPage(BaseModel):
    """One page of query results plus the total matching count."""

    items: list[SignalRead]
    total: int
    limit: int
    offset: int
