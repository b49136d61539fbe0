"""Source configuration schemas."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class CompetitorFeeds(BaseModel):
    """Feed URLs for one competitor group."""

    name: str
    feeds: list[str] = Field(default_factory=list)


class SourceConfig(BaseModel):
    """Per-cycle view of configured feeds: competitor groups plus industry feeds."""

    competitors: dict[str, CompetitorFeeds] = Field(default_factory=dict)
    industry: list[str] = Field(default_factory=list)


class WebMonitorSeed(BaseModel):
    """A monitored page declared in the seed file."""

    url: str
    name: str
    competitor_key: Optional[str] = None
    category: Literal["competitor", "industry"] = "industry"


class SeedFile(SourceConfig):
    """Contents of ``sources.json``: feed groups plus optional monitored pages."""

    web_monitors: list[WebMonitorSeed] = Field(default_factory=list)
