"""SQLAlchemy models."""

from radar.models.competitor import Competitor
from radar.models.scan_run import ScanRun
from radar.models.signal import Signal
from radar.models.source import Source
from radar.models.web_snapshot import WebSnapshot

__all__ = [
    "Competitor",
    "ScanRun",
    "Signal",
    "Source",
    "WebSnapshot",
]
