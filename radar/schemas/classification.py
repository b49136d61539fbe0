"""Classification result schemas.

The classification backend returns loosely shaped JSON; every record is
validated through :class:`Classification` so downstream code only sees a
known quadrant, an integer relevance in [1, 10] and a bounded label.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

from radar.schemas.feed import TaggedFeedItem

DEFAULT_RELEVANCE = 5
MIN_RELEVANCE = 1
MAX_RELEVANCE = 10
LABEL_MAX_LENGTH = 60
FALLBACK_LABEL_LENGTH = 40


class Quadrant(str, Enum):
    """Fixed classification buckets."""

    COMPETITORS = "competitors"
    INDUSTRY = "industry"
    SNIGEL = "snigel"
    ANOMALIES = "anomalies"


def normalize_quadrant(value: Any) -> Quadrant:
    """Map a raw backend value to a Quadrant; unknown values are anomalies."""
    if isinstance(value, Quadrant):
        return value
    if isinstance(value, str):
        try:
            return Quadrant(value.strip().lower())
        except ValueError:
            pass
    return Quadrant.ANOMALIES


def normalize_relevance(value: Any) -> int:
    """Round half-up and clamp to [1, 10]; anything non-numeric becomes 5."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_RELEVANCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RELEVANCE
    if not math.isfinite(number):
        return DEFAULT_RELEVANCE
    rounded = math.floor(number + 0.5)
    return max(MIN_RELEVANCE, min(MAX_RELEVANCE, rounded))


class Classification(BaseModel):
    """Validated quadrant/relevance/label triple for one item."""

    quadrant: Quadrant
    relevance: int = DEFAULT_RELEVANCE
    label: str = ""

    @field_validator("quadrant", mode="before")
    @classmethod
    def _quadrant(cls, v: Any) -> Quadrant:
        return normalize_quadrant(v)

    @field_validator("relevance", mode="before")
    @classmethod
    def _relevance(cls, v: Any) -> int:
        return normalize_relevance(v)

    @field_validator("label", mode="before")
    @classmethod
    def _label(cls, v: Any) -> str:
        if not isinstance(v, str):
            return ""
        return v.strip()[:LABEL_MAX_LENGTH]


class ClassifiedItem(BaseModel):
    """A feed item together with its classification."""

    item: TaggedFeedItem
    quadrant: Quadrant
    relevance: int
    label: str
