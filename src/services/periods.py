"""
Period registry: recurring time slots per (channel, role).

For a fixed channel and role no two period windows may overlap. Windows
that cross midnight are checked segment by segment.
"""

import logging
import sqlite3

from core.database import (
    delete_period_row,
    fetch_period,
    fetch_periods,
    insert_period,
    update_period_row,
)
from core.directory import require_channel
from core.errors import NotFoundError, ValidationError
from core.validation import find_overlap, validate_window
from models.schedule import Period, Role, TimeOfDay

logger = logging.getLogger(__name__)


def _check_no_overlap(conn: sqlite3.Connection, period: Period) -> None:
    siblings = [
        (p.start_time, p.end_time, p)
        for p in fetch_periods(conn, period.channel_id, period.role)
        if p.id != period.id
    ]
    clash = find_overlap(period.start_time, period.end_time, siblings)
    if clash:
        other_start, other_end, other = clash
        raise ValidationError(
            f"{period.role.value.capitalize()} period {period.start_time}-{period.end_time} "
            f"overlaps period {other.id} ({other_start}-{other_end}) on channel {period.channel_id}"
        )


def create_period(
    conn: sqlite3.Connection,
    channel_id: int,
    role: Role | str,
    start_time: TimeOfDay,
    end_time: TimeOfDay,
) -> Period:
    """Create a period after checking its window against same-role siblings."""
    period = Period(
        id=None,
        channel_id=channel_id,
        role=Role.parse(role),
        start_time=TimeOfDay.parse(start_time),
        end_time=TimeOfDay.parse(end_time),
    )
    require_channel(conn, channel_id)
    validate_window(period.start_time, period.end_time)
    _check_no_overlap(conn, period)

    with conn:
        insert_period(conn, period)
    logger.info(
        "Created %s period %d on channel %d (%s-%s)",
        period.role.value, period.id, channel_id, period.start_time, period.end_time,
    )
    return period


def update_period(
    conn: sqlite3.Connection,
    period_id: int,
    role: Role | str | None = None,
    start_time: TimeOfDay | None = None,
    end_time: TimeOfDay | None = None,
) -> Period:
    """Change a period's role and/or window; omitted fields keep their value."""
    period = fetch_period(conn, period_id)
    if period is None:
        raise NotFoundError(f"Period {period_id} not found")

    if role is not None:
        period.role = Role.parse(role)
    if start_time is not None:
        period.start_time = TimeOfDay.parse(start_time)
    if end_time is not None:
        period.end_time = TimeOfDay.parse(end_time)

    validate_window(period.start_time, period.end_time)
    _check_no_overlap(conn, period)

    with conn:
        update_period_row(conn, period)
    logger.info("Updated period %d", period_id)
    return period


def delete_period(conn: sqlite3.Connection, period_id: int) -> None:
    """
    Delete a period. Historical snapshots keep their own copy of it; the next
    synchronize pass drops them from non-fixed livestreams.
    """
    with conn:
        deleted = delete_period_row(conn, period_id)
    if not deleted:
        raise NotFoundError(f"Period {period_id} not found")
    logger.info("Deleted period %d", period_id)


def list_by_channel(conn: sqlite3.Connection, channel_id: int) -> list[Period]:
    return fetch_periods(conn, channel_id)


def get_period(conn: sqlite3.Connection, period_id: int) -> Period:
    period = fetch_period(conn, period_id)
    if period is None:
        raise NotFoundError(f"Period {period_id} not found")
    return period
