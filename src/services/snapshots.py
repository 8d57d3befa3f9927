"""
Livestream and snapshot mutations outside the synchronizer.

Each operation loads the livestream, checks the freeze guard and all input,
then changes the in-memory snapshot list and saves it as one unit. Nothing
is written when a check fails.

Editing a host snapshot's numbers pushes the same delta onto every
assistant snapshot whose window sits inside the host's window.
"""

import logging
import sqlite3
from dataclasses import replace
from datetime import date

from core.config import PROPAGATED_METRICS, REPORTING_METRICS
from core.database import (
    delete_livestream_row,
    fetch_livestream,
    fetch_livestreams,
    fetch_period,
    save_livestream,
)
from core.directory import require_user
from core.errors import ConflictError, NotFoundError, ValidationError
from core.intervals import window_contains, window_overlaps
from core.validation import ensure_mutable, validate_window
from models.schedule import AltAssignee, AltKind, Livestream, PeriodCopy, Role, Snapshot, TimeOfDay

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "period_id",
    "assignee",
    "income",
    "real_income",
    "ads_cost",
    "orders",
    "comments",
    "click_rate",
    "avg_viewing_duration",
    "orders_note",
    "rating",
    "snapshot_kpi",
}

# Editable fields that always hold a number
REQUIRED_FIELDS = {"income", "real_income", "ads_cost", "orders", "comments", "snapshot_kpi"}


# =============================================================================
# LIVESTREAMS
# =============================================================================


def get_livestream(conn: sqlite3.Connection, livestream_id: int) -> Livestream:
    livestream = fetch_livestream(conn, livestream_id)
    if livestream is None:
        raise NotFoundError(f"Livestream {livestream_id} not found")
    return livestream


def list_livestreams(
    conn: sqlite3.Connection,
    start: date,
    end: date,
    channel_id: int | None = None,
    role: Role | str | None = None,
    assignee: int | None = None,
) -> list[Livestream]:
    """Livestreams in the range having at least one snapshot matching role/assignee."""
    if end < start:
        raise ValidationError(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")
    role = Role.parse(role) if role is not None else None
    livestreams = fetch_livestreams(conn, start, end, channel_id)
    if role is None and assignee is None:
        return livestreams

    def matches(snapshot: Snapshot) -> bool:
        if role is not None and snapshot.role != role:
            return False
        if assignee is not None and snapshot.assignee != assignee:
            return False
        return True

    return [ls for ls in livestreams if any(matches(s) for s in ls.snapshots)]


def delete_livestream(conn: sqlite3.Connection, livestream_id: int) -> None:
    with conn:
        deleted = delete_livestream_row(conn, livestream_id)
    if not deleted:
        raise NotFoundError(f"Livestream {livestream_id} not found")
    logger.info("Deleted livestream %d", livestream_id)


def set_livestream_metrics(
    conn: sqlite3.Connection,
    livestream_id: int,
    total_orders: int | None = None,
    ads_cost: float | None = None,
) -> Livestream:
    """Set day-level counters; omitted values stay as they are."""
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "update metrics of")
    if total_orders is not None:
        if total_orders < 0:
            raise ValidationError("total_orders cannot be negative")
        livestream.total_orders = total_orders
    if ads_cost is not None:
        livestream.ads_cost = ads_cost
    with conn:
        save_livestream(conn, livestream)
    return livestream


# =============================================================================
# SHARED CHECKS
# =============================================================================


def _require_snapshot(livestream: Livestream, snapshot_id: str) -> Snapshot:
    snapshot = livestream.find_snapshot(snapshot_id)
    if snapshot is None:
        raise NotFoundError(f"Snapshot {snapshot_id} not found in livestream {livestream.id}")
    return snapshot


def _expected_channel(livestream: Livestream, exclude_id: str | None = None) -> int:
    for snapshot in livestream.snapshots:
        if snapshot.id != exclude_id:
            return snapshot.channel_id
    return livestream.channel_id


def _check_channel(livestream: Livestream, period: PeriodCopy, exclude_id: str | None = None) -> None:
    expected = _expected_channel(livestream, exclude_id)
    if period.channel_id != expected:
        raise ValidationError(
            f"Period {period.period_id} belongs to channel {period.channel_id}, "
            f"but livestream {livestream.id} holds channel {expected}"
        )


def _check_same_role_overlap(snapshots: list[Snapshot]) -> None:
    """Reject any two snapshots of the same role whose windows overlap."""
    for i, a in enumerate(snapshots):
        for b in snapshots[i + 1:]:
            if a.role != b.role:
                continue
            if window_overlaps(
                a.period.start_minutes, a.period.end_minutes,
                b.period.start_minutes, b.period.end_minutes,
            ):
                raise ValidationError(
                    f"{a.role.value.capitalize()} snapshot {a.period.start_time}-{a.period.end_time} "
                    f"overlaps {b.period.start_time}-{b.period.end_time}"
                )


def _check_period_unused(livestream: Livestream, period_id: int, exclude_id: str | None = None) -> None:
    for snapshot in livestream.snapshots:
        if snapshot.id != exclude_id and snapshot.period.period_id == period_id:
            raise ConflictError(
                f"Period {period_id} already has snapshot {snapshot.id} in livestream {livestream.id}"
            )


def _load_period_copy(conn: sqlite3.Connection, period_id: int) -> PeriodCopy:
    period = fetch_period(conn, period_id)
    if period is None:
        raise NotFoundError(f"Period {period_id} not found")
    return PeriodCopy.of(period)


def _commit(conn: sqlite3.Connection, livestream: Livestream) -> Livestream:
    livestream.recompute_total_income()
    with conn:
        save_livestream(conn, livestream)
    return livestream


def propagate_host_deltas(
    livestream: Livestream, host: Snapshot, deltas: dict[str, float]
) -> list[Snapshot]:
    """
    Add each delta to every assistant snapshot inside the host's window.

    Returns the assistants that were touched.
    """
    if not deltas:
        return []
    touched = []
    for snapshot in livestream.snapshots:
        if snapshot.role != Role.ASSISTANT:
            continue
        if not window_contains(
            host.period.start_minutes, host.period.end_minutes,
            snapshot.period.start_minutes, snapshot.period.end_minutes,
        ):
            continue
        for name, delta in deltas.items():
            setattr(snapshot, name, (getattr(snapshot, name) or 0) + delta)
        touched.append(snapshot)
    return touched


def _apply_fields(livestream: Livestream, snapshot: Snapshot, fields: dict) -> None:
    """Write fields onto the snapshot, propagating metric deltas if it is a host."""
    deltas = {}
    if snapshot.role == Role.HOST:
        for name in PROPAGATED_METRICS:
            if name in fields and fields[name] is not None:
                delta = fields[name] - (getattr(snapshot, name) or 0)
                if delta:
                    deltas[name] = delta

    for name, value in fields.items():
        setattr(snapshot, name, value)

    touched = propagate_host_deltas(livestream, snapshot, deltas)
    if touched:
        logger.debug(
            "Propagated %s from host %s to %d assistant(s)", sorted(deltas), snapshot.id, len(touched)
        )


# =============================================================================
# SNAPSHOT OPERATIONS
# =============================================================================


def add_snapshot(
    conn: sqlite3.Connection,
    livestream_id: int,
    period_id: int,
    assignee: int | None = None,
    income: float | None = None,
) -> Livestream:
    """Append a snapshot for a period to a livestream."""
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "add a snapshot to")
    _check_period_unused(livestream, period_id)
    copy = _load_period_copy(conn, period_id)
    validate_window(copy.start_time, copy.end_time)
    _check_channel(livestream, copy)
    if assignee is not None:
        require_user(conn, assignee)

    snapshot = Snapshot.new(copy, assignee=assignee, income=income or 0)
    _check_same_role_overlap(livestream.snapshots + [snapshot])

    livestream.snapshots.append(snapshot)
    _commit(conn, livestream)
    logger.info("Added snapshot %s to livestream %d", snapshot.id, livestream_id)
    return livestream


def update_snapshot(
    conn: sqlite3.Connection, livestream_id: int, snapshot_id: str, fields: dict
) -> Livestream:
    """
    Update the given fields of one snapshot. Keys absent from `fields` are
    left alone; a changed period_id reloads the period copy.
    """
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update snapshot field(s): {', '.join(sorted(unknown))}")
    cleared = sorted(name for name in REQUIRED_FIELDS if name in fields and fields[name] is None)
    if cleared:
        raise ValidationError(f"Snapshot field(s) cannot be null: {', '.join(cleared)}")

    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "update a snapshot in")
    snapshot = _require_snapshot(livestream, snapshot_id)

    values = dict(fields)
    period_id = values.pop("period_id", None)
    new_period = None
    if period_id is not None and period_id != snapshot.period.period_id:
        _check_period_unused(livestream, period_id, exclude_id=snapshot.id)
        new_period = _load_period_copy(conn, period_id)
        validate_window(new_period.start_time, new_period.end_time)
        _check_channel(livestream, new_period, exclude_id=snapshot.id)
        candidate = replace(snapshot, period=new_period)
        others = [s for s in livestream.snapshots if s.id != snapshot.id]
        _check_same_role_overlap(others + [candidate])

    if values.get("assignee") is not None:
        require_user(conn, values["assignee"])

    if new_period is not None:
        snapshot.period = new_period
    _apply_fields(livestream, snapshot, values)
    _commit(conn, livestream)
    logger.info("Updated snapshot %s in livestream %d", snapshot_id, livestream_id)
    return livestream


def report_snapshot(
    conn: sqlite3.Connection,
    livestream_id: int,
    snapshot_id: str,
    income: float,
    ads_cost: float,
    click_rate: float | None,
    avg_viewing_duration: float | None,
    comments: int,
    orders: int,
    orders_note: str | None = None,
    rating: str | None = None,
) -> Livestream:
    """Record the full set of reported numbers for one snapshot."""
    fields = {
        "income": income,
        "ads_cost": ads_cost,
        "click_rate": click_rate,
        "avg_viewing_duration": avg_viewing_duration,
        "comments": comments,
        "orders": orders,
        "orders_note": orders_note,
    }
    if rating is not None:
        fields["rating"] = rating
    return update_snapshot(conn, livestream_id, snapshot_id, fields)


def remove_snapshot(conn: sqlite3.Connection, livestream_id: int, snapshot_id: str) -> None:
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "remove a snapshot from")
    _require_snapshot(livestream, snapshot_id)
    livestream.snapshots = [s for s in livestream.snapshots if s.id != snapshot_id]
    _commit(conn, livestream)
    logger.info("Removed snapshot %s from livestream %d", snapshot_id, livestream_id)


def set_snapshot_alt(
    conn: sqlite3.Connection,
    livestream_id: int,
    snapshot_id: str,
    alt_assignee: int | str | None = None,
    alt_other_name: str | None = None,
    alt_note: str | None = None,
) -> Livestream:
    """
    Reassign a snapshot's credit directly. Passing no alt_assignee clears it.
    """
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "reassign a snapshot in")
    snapshot = _require_snapshot(livestream, snapshot_id)

    target = AltAssignee.from_wire(alt_assignee, alt_other_name)
    if target.is_set:
        if not alt_note or not alt_note.strip():
            raise ValidationError("alt_note is required when setting alt_assignee")
        check_alt_target(conn, snapshot, target)
        snapshot.alt_assignee = target
        snapshot.alt_note = alt_note.strip()
    else:
        snapshot.alt_assignee = AltAssignee.unset()
        snapshot.alt_note = None

    _commit(conn, livestream)
    return livestream


def check_alt_target(conn: sqlite3.Connection, snapshot: Snapshot, target: AltAssignee) -> None:
    """A user target must exist and differ from the snapshot's assignee."""
    if target.kind != AltKind.USER:
        return
    require_user(conn, target.user_id)
    if target.user_id == snapshot.assignee:
        raise ValidationError("alt_assignee must be different from the current assignee")


def _is_unreported(snapshot: Snapshot) -> bool:
    return not any(getattr(snapshot, name) for name in REPORTING_METRICS)


def merge_snapshots(
    conn: sqlite3.Connection, livestream_id: int, first_id: str, second_id: str
) -> Livestream:
    """
    Merge two adjacent, unreported snapshots of the same role.

    The earlier one survives with its end moved to the later one's end.
    """
    if first_id == second_id:
        raise ValidationError("Cannot merge a snapshot with itself")
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "merge snapshots in")
    a = _require_snapshot(livestream, first_id)
    b = _require_snapshot(livestream, second_id)

    if a.role != b.role:
        raise ValidationError("Only snapshots of the same role can be merged")
    for snapshot in (a, b):
        if not _is_unreported(snapshot):
            raise ValidationError(f"Snapshot {snapshot.id} already has reported numbers")

    if a.period.end_minutes == b.period.start_minutes:
        earlier, later = a, b
    elif b.period.end_minutes == a.period.start_minutes:
        earlier, later = b, a
    else:
        raise ValidationError("Snapshots are not adjacent")

    earlier.period = replace(earlier.period, end_time=later.period.end_time)
    livestream.snapshots = [s for s in livestream.snapshots if s.id != later.id]
    _commit(conn, livestream)
    logger.info("Merged snapshot %s into %s", later.id, earlier.id)
    return livestream


def update_snapshot_times(
    conn: sqlite3.Connection,
    livestream_id: int,
    updates: list[tuple[str, TimeOfDay, TimeOfDay]],
) -> Livestream:
    """Retime several snapshots at once; either all changes apply or none."""
    livestream = get_livestream(conn, livestream_id)
    ensure_mutable(livestream, "retime snapshots in")

    new_periods: dict[str, PeriodCopy] = {}
    for snapshot_id, start, end in updates:
        snapshot = _require_snapshot(livestream, snapshot_id)
        start, end = TimeOfDay.parse(start), TimeOfDay.parse(end)
        validate_window(start, end, "snapshot")
        new_periods[snapshot_id] = replace(snapshot.period, start_time=start, end_time=end)

    candidates = [
        replace(s, period=new_periods[s.id]) if s.id in new_periods else s
        for s in livestream.snapshots
    ]
    _check_same_role_overlap(candidates)

    livestream.snapshots = candidates
    _commit(conn, livestream)
    return livestream
