"""Pydantic schemas."""

from radar.schemas.classification import Classification, ClassifiedItem, Quadrant
from radar.schemas.feed import CompetitorGroup, FeedItem, TaggedFeedItem
from radar.schemas.signal import SignalCreate, SignalPage, SignalQuery, SignalRead
from radar.schemas.sources import CompetitorFeeds, SeedFile, SourceConfig, WebMonitorSeed

__all__ = [
    "Classification",
    "ClassifiedItem",
    "CompetitorFeeds",
    "CompetitorGroup",
    "FeedItem",
    "Quadrant",
    "SignalCreate",
    "SignalPage",
    "SignalQuery",
    "SignalRead",
    "SeedFile",
    "SourceConfig",
    "TaggedFeedItem",
    "WebMonitorSeed",
]
