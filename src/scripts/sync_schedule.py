#!/usr/bin/env python3
"""
Materialize and synchronize upcoming livestreams from the period registry.

Meant to run daily. For each channel it creates any missing livestreams for
the next SYNC_LOOKAHEAD_DAYS days, then re-syncs the whole window so edited
periods reach livestreams that already existed.

Usage:
    uv run python src/scripts/sync_schedule.py
    uv run python src/scripts/sync_schedule.py --channel 2 --start 2025-11-01 --days 30
"""

import argparse
import sys
import traceback
from datetime import date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, LOCAL_TIMEZONE, SYNC_LOOKAHEAD_DAYS
from core.database import get_connection
from core.directory import list_channel_ids
from services.synchronizer import materialize_range, synchronize


def sync_channel(conn, channel_id: int, start: date, end: date) -> tuple[int, int]:
    """Returns (created, updated) for one channel."""
    created = materialize_range(conn, start, end, channel_id)
    result = synchronize(conn, start, end, channel_id)
    return len(created), result["updated_count"]


def main(channel_id: int | None = None, start: date | None = None, days: int = SYNC_LOOKAHEAD_DAYS):
    """Main entry point for the schedule sync job."""
    start = start or datetime.now(ZoneInfo(LOCAL_TIMEZONE)).date()
    end = start + timedelta(days=days - 1)
    print(f"Syncing schedule for {start} to {end}")

    conn = get_connection(DB_PATH)
    try:
        channel_ids = [channel_id] if channel_id is not None else list_channel_ids(conn)
        if not channel_ids:
            print("No channels found!")
            return

        for cid in channel_ids:
            created, updated = sync_channel(conn, cid, start, end)
            print(f"  Channel {cid}: {created} created, {updated} updated")

        print("\nDone!")
    finally:
        conn.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Materialize and sync upcoming livestreams")
    parser.add_argument("--channel", type=int, help="Only sync this channel id")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        help="First date (YYYY-MM-DD). Defaults to today in LOCAL_TIMEZONE.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=SYNC_LOOKAHEAD_DAYS,
        help=f"Number of days to cover (default {SYNC_LOOKAHEAD_DAYS})",
    )
    args = parser.parse_args()

    try:
        main(args.channel, args.start, args.days)
    except Exception as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        sys.exit(1)
