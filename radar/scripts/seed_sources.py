"""Seed competitors and sources from a JSON file.

Usage:
    python -m radar.scripts.seed_sources [--file data/sources.json]
"""

from __future__ import annotations

import argparse
import sys

from radar.config import get_settings
from radar.db.session import SessionLocal, init_db
from radar.services.source_config import seed_sources_from_file


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed Signal Radar sources")
    parser.add_argument(
        "--file",
        default=None,
        help="Path to sources.json (default: SOURCES_FILE setting)",
    )
    args = parser.parse_args()
    path = args.file or get_settings().sources_file

    init_db()
    db = SessionLocal()
    try:
        created = seed_sources_from_file(db, path)
    except ValueError as e:
        print(f"Error: invalid sources file {path}: {e}")
        sys.exit(1)
    finally:
        db.close()

    if created:
        print(f"Seeded {created} sources from {path}.")
    else:
        print("Nothing seeded (sources already present or file missing).")


if __name__ == "__main__":
    main()
