#!/usr/bin/env python3
"""Run one feed poll and one web monitor sweep, then exit.

Usage:
    python scripts/run_poll.py [--feeds-only | --web-only]

Exits 0 when every run recorded without a run-level error, 1 otherwise.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from radar.db.session import init_db
from radar.scheduler import PollScheduler


async def _run(feeds: bool, web: bool) -> int:
    scheduler = PollScheduler.from_settings()
    runs = []
    if feeds:
        runs.append(await scheduler.poll_feeds())
    if web:
        runs.append(await scheduler.poll_web_monitors())
    status = 0
    for run in runs:
        if run is None:
            print("ERROR: run could not be recorded", file=sys.stderr)
            status = 1
            continue
        print(
            f"run_type={run.run_type} items_found={run.items_found} "
            f"items_classified={run.items_classified} duration_ms={run.duration_ms} "
            f"errors={run.errors or '-'}"
        )
        if run.errors and run.run_type == "rss_poll":
            status = 1
    return status


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one Signal Radar poll")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--feeds-only", action="store_true", help="Skip the web monitor sweep")
    group.add_argument("--web-only", action="store_true", help="Skip the feed poll")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        init_db()
        return asyncio.run(_run(feeds=not args.web_only, web=not args.feeds_only))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
