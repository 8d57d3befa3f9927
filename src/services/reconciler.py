"""
Revenue reconciliation.

Matches livestream-originated orders from the source feed to the snapshots
whose window contains the order's local time, and credits each matching
snapshot with the order's ledger income as real_income.

A run starts by zeroing real_income, so replaying the same inputs gives the
same result. Bad rows are skipped and counted; they never abort the run.
"""

import logging
import sqlite3
from collections import defaultdict
from datetime import date

from core.config import CANCELLED_STATUS_MARKERS, LIVESTREAM_CONTENT_MARKERS
from core.database import fetch_livestreams, save_livestream
from core.errors import NotFoundError, ValidationError
from core.intervals import in_window
from core.parsing import normalize_order_id, parse_amount, parse_source_timestamp
from core.validation import ensure_mutable
from models.orders import LedgerRow, SourceRow
from models.schedule import Livestream

logger = logging.getLogger(__name__)


def is_livestream_order(content_type: str | None) -> bool:
    label = (content_type or "").lower()
    return any(marker in label for marker in LIVESTREAM_CONTENT_MARKERS)


def is_cancelled(status: str | None) -> bool:
    label = (status or "").lower()
    return any(marker in label for marker in CANCELLED_STATUS_MARKERS)


def build_ledger(rows: list[LedgerRow], skipped: list[str]) -> tuple[dict[str, float], dict[str, str]]:
    """
    Sum income (subtotal - seller discount) per order id.

    Returns (income by order id with positive totals only, status by order id).
    Rows that fail to parse are appended to `skipped`.
    """
    income: dict[str, float] = defaultdict(float)
    statuses: dict[str, str] = {}
    for index, row in enumerate(rows):
        order_id = normalize_order_id(row.get("order_id"))
        if not order_id:
            skipped.append(f"ledger row {index}: missing order id")
            continue
        try:
            amount = parse_amount(row.get("subtotal")) - parse_amount(row.get("seller_discount"))
        except ValidationError as e:
            skipped.append(f"ledger row {index} ({order_id}): {e.message}")
            logger.debug("Skipping ledger row %d (%s): %s", index, order_id, e.message)
            continue
        income[order_id] += amount
        if row.get("status"):
            statuses[order_id] = row["status"]
    return {k: v for k, v in income.items() if v > 0}, statuses


def find_target_livestream(
    conn: sqlite3.Connection, day: date, channel_id: int | None = None
) -> Livestream:
    livestreams = fetch_livestreams(conn, day, day, channel_id)
    if not livestreams:
        raise NotFoundError(f"No livestream on {day.isoformat()}")
    if len(livestreams) > 1:
        raise ValidationError(
            f"Several livestreams on {day.isoformat()}, a channel_id is required",
            details=[f"channel {ls.channel_id}" for ls in livestreams],
        )
    return livestreams[0]


def reconcile(
    conn: sqlite3.Connection,
    day: date,
    ledger_rows: list[LedgerRow],
    source_rows: list[SourceRow],
    channel_id: int | None = None,
) -> dict:
    """
    Recompute real_income on the day's livestream from the two order feeds.

    Returns {"livestream_id", "processed_orders", "updated_snapshots",
    "skipped_rows", "skipped"}.
    """
    livestream = find_target_livestream(conn, day, channel_id)
    ensure_mutable(livestream, "reconcile")

    skipped: list[str] = []
    income_by_order, status_by_order = build_ledger(ledger_rows, skipped)

    for snapshot in livestream.snapshots:
        snapshot.real_income = 0

    applied: set[str] = set()
    matched_snapshots: set[str] = set()
    for index, row in enumerate(source_rows):
        if not is_livestream_order(row.get("content_type")):
            continue
        try:
            created_at = parse_source_timestamp(row.get("created_at"))
        except ValidationError as e:
            skipped.append(f"source row {index}: {e.message}")
            logger.debug("Skipping source row %d: %s", index, e.message)
            continue
        if created_at.date() != day:
            continue

        order_id = normalize_order_id(row.get("order_id"))
        if order_id in applied:
            continue
        if is_cancelled(status_by_order.get(order_id)):
            logger.debug("Order %s is cancelled", order_id)
            continue
        amount = income_by_order.get(order_id, 0)
        if amount <= 0:
            logger.debug("Order %s has no positive ledger income", order_id)
            continue

        minute = created_at.hour * 60 + created_at.minute
        matched = False
        for snapshot in livestream.snapshots:
            if in_window(minute, snapshot.period.start_minutes, snapshot.period.end_minutes):
                snapshot.real_income = (snapshot.real_income or 0) + amount
                matched_snapshots.add(snapshot.id)
                matched = True
        if matched:
            applied.add(order_id)
        else:
            logger.debug("Order %s at %02d:%02d matched no snapshot", order_id, created_at.hour, created_at.minute)

    with conn:
        save_livestream(conn, livestream)

    logger.info(
        "Reconciled %s: %d order(s) applied to %d snapshot(s), %d row(s) skipped",
        day.isoformat(), len(applied), len(matched_snapshots), len(skipped),
    )
    return {
        "livestream_id": livestream.id,
        "processed_orders": len(applied),
        "updated_snapshots": len(matched_snapshots),
        "skipped_rows": len(skipped),
        "skipped": skipped,
    }
