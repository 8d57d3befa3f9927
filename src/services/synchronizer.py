"""
Schedule synchronizer: keeps each day's snapshot list in step with the
period registry for one channel.

Materializing creates a livestream for a date from the current periods.
Synchronizing rebuilds an existing livestream's snapshot list from the
current periods while keeping every recorded number on snapshots whose
period still exists. A pass with no period changes writes nothing.
"""

import calendar
import logging
import sqlite3
from dataclasses import replace
from datetime import date, timedelta

from core.config import KPI_ROUNDING
from core.database import (
    fetch_livestream_by_date,
    fetch_livestreams,
    fetch_periods,
    insert_livestream,
    save_livestream,
)
from core.directory import get_month_goal, require_channel
from core.errors import ConflictError, FrozenStateError, ValidationError
from core.parsing import round_to_step
from core.validation import ensure_mutable
from models.schedule import Livestream, Period, PeriodCopy, Snapshot

logger = logging.getLogger(__name__)


def iter_dates(start: date, end: date):
    """Yield every date from start to end inclusive."""
    if end < start:
        raise ValidationError(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def compute_kpis(
    conn: sqlite3.Connection, channel_id: int, day: date, period_count: int
) -> tuple[int, int]:
    """
    Spread the channel's monthly goal over the month, then over the day's periods.

    Returns (date_kpi, snapshot_kpi), both rounded to the nearest KPI_ROUNDING.
    """
    goal = get_month_goal(conn, channel_id, day.year, day.month)
    if not goal:
        return 0, 0
    _, days_in_month = calendar.monthrange(day.year, day.month)
    date_kpi = round_to_step(goal / days_in_month, KPI_ROUNDING)
    snapshot_kpi = round_to_step(date_kpi / period_count, KPI_ROUNDING) if period_count else 0
    return date_kpi, snapshot_kpi


def _build_livestream(conn: sqlite3.Connection, day: date, channel_id: int) -> Livestream:
    periods = fetch_periods(conn, channel_id)
    date_kpi, snapshot_kpi = compute_kpis(conn, channel_id, day, len(periods))
    snapshots = [Snapshot.new(PeriodCopy.of(p), snapshot_kpi=snapshot_kpi) for p in periods]
    return Livestream(
        id=None,
        date=day,
        channel_id=channel_id,
        snapshots=snapshots,
        date_kpi=date_kpi,
    )


def materialize(conn: sqlite3.Connection, day: date, channel_id: int) -> Livestream:
    """Create the livestream for (day, channel) from the channel's current periods."""
    require_channel(conn, channel_id)
    if fetch_livestream_by_date(conn, day, channel_id) is not None:
        raise ConflictError(f"Livestream already exists for {day.isoformat()} on channel {channel_id}")

    livestream = _build_livestream(conn, day, channel_id)
    with conn:
        insert_livestream(conn, livestream)
    logger.info(
        "Materialized livestream %d for %s on channel %d with %d snapshot(s)",
        livestream.id, day.isoformat(), channel_id, len(livestream.snapshots),
    )
    return livestream


def materialize_range(
    conn: sqlite3.Connection, start: date, end: date, channel_id: int
) -> list[Livestream]:
    """Materialize every date in the range, skipping dates that already have one."""
    require_channel(conn, channel_id)
    created = []
    for day in iter_dates(start, end):
        if fetch_livestream_by_date(conn, day, channel_id) is not None:
            logger.debug("Livestream for %s on channel %d exists, skipping", day, channel_id)
            continue
        created.append(materialize(conn, day, channel_id))
    return created


def _signature(snapshots: list[Snapshot]) -> list[tuple]:
    return [
        (s.id, s.period.period_id, s.role, s.period.start_minutes, s.period.end_minutes)
        for s in snapshots
    ]


def rebuild_snapshots(
    livestream: Livestream, periods: list[Period], snapshot_kpi: int
) -> list[Snapshot]:
    """
    Snapshot list the livestream should have for the given periods.

    Snapshots from other channels pass through untouched and come first.
    Snapshots whose period still exists keep their data and get a fresh copy
    of the period; new periods get zero-valued snapshots; the rest are dropped.
    """
    passthrough = [s for s in livestream.snapshots if s.channel_id != livestream.channel_id]
    existing: dict[int, Snapshot] = {}
    for snapshot in livestream.snapshots:
        if snapshot.channel_id == livestream.channel_id:
            existing.setdefault(snapshot.period.period_id, snapshot)

    rebuilt = []
    for period in periods:
        copy = PeriodCopy.of(period)
        current = existing.get(period.id)
        if current is not None:
            rebuilt.append(replace(current, period=copy, snapshot_kpi=snapshot_kpi))
        else:
            rebuilt.append(Snapshot.new(copy, snapshot_kpi=snapshot_kpi))
    return passthrough + rebuilt


def synchronize_livestream(
    conn: sqlite3.Connection, livestream: Livestream, periods: list[Period]
) -> bool:
    """Bring one livestream in line with periods. Returns True if it was written."""
    ensure_mutable(livestream, "synchronize")

    date_kpi, snapshot_kpi = compute_kpis(conn, livestream.channel_id, livestream.date, len(periods))
    snapshots = rebuild_snapshots(livestream, periods, snapshot_kpi)
    if _signature(snapshots) == _signature(livestream.snapshots):
        return False

    livestream.snapshots = snapshots
    livestream.date_kpi = date_kpi
    livestream.recompute_total_income()
    with conn:
        save_livestream(conn, livestream)
    return True


def synchronize(
    conn: sqlite3.Connection, start: date, end: date, channel_id: int
) -> dict:
    """
    Re-sync every non-fixed livestream of the channel between start and end.

    Returns {"updated_count", "skipped_fixed"}.
    """
    require_channel(conn, channel_id)
    if end < start:
        raise ValidationError(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")

    periods = fetch_periods(conn, channel_id)
    updated = 0
    skipped_fixed = 0
    for livestream in fetch_livestreams(conn, start, end, channel_id):
        try:
            changed = synchronize_livestream(conn, livestream, periods)
        except FrozenStateError:
            skipped_fixed += 1
            logger.debug("Livestream %d (%s) is fixed, not synchronized", livestream.id, livestream.date)
            continue
        if changed:
            updated += 1
            logger.info("Synchronized livestream %d (%s)", livestream.id, livestream.date)

    logger.info(
        "Synchronize channel %d %s..%s: %d updated, %d fixed skipped",
        channel_id, start.isoformat(), end.isoformat(), updated, skipped_fixed,
    )
    return {"updated_count": updated, "skipped_fixed": skipped_fixed}


def fix_livestreams(conn: sqlite3.Connection, start: date, end: date, channel_id: int) -> int:
    """Freeze every non-fixed livestream of the channel in the range; returns how many."""
    require_channel(conn, channel_id)
    if end < start:
        raise ValidationError(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")

    fixed = 0
    with conn:
        for livestream in fetch_livestreams(conn, start, end, channel_id):
            if livestream.fixed:
                continue
            livestream.fixed = True
            save_livestream(conn, livestream)
            fixed += 1
    logger.info("Fixed %d livestream(s) on channel %d", fixed, channel_id)
    return fixed
