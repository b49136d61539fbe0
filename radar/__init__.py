"""Signal Radar: competitor and industry signal ingestion."""

__version__ = "0.1.0"
