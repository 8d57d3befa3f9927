"""
Attribution: who gets credit for a snapshot, and revenue rankings built on it.
"""

import calendar
import sqlite3
from collections import defaultdict
from datetime import date

from core.config import OTHER_ASSIGNEE
from core.database import fetch_livestreams
from core.directory import get_user_names
from core.errors import ValidationError
from models.schedule import AltKind, Beneficiary, Role, Snapshot

OTHER_LABEL = "Other"


def resolve_beneficiary(snapshot: Snapshot) -> Beneficiary | None:
    """
    Priority: alt user, then "other" (no individual), then assignee, then nobody.
    """
    alt = snapshot.alt_assignee
    if alt.kind == AltKind.USER:
        return Beneficiary(user_id=alt.user_id)
    if alt.kind == AltKind.OTHER:
        return Beneficiary(is_other=True)
    if snapshot.assignee is not None:
        return Beneficiary(user_id=snapshot.assignee)
    return None


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


def revenue_rankings(
    conn: sqlite3.Connection,
    start: date,
    end: date,
    role: Role | str | None = None,
    include_other: bool = True,
) -> list[dict]:
    """
    Revenue, ads cost and orders per beneficiary, highest revenue first.

    Each livestream's total_orders is split evenly across the distinct parties
    credited in that livestream.
    """
    if end < start:
        raise ValidationError(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")
    role = Role.parse(role) if role is not None else None

    totals = defaultdict(lambda: {"revenue": 0.0, "ads_cost": 0.0, "orders": 0.0})
    for livestream in fetch_livestreams(conn, start, end):
        parties = set()
        for snapshot in livestream.snapshots:
            if role is not None and snapshot.role != role:
                continue
            beneficiary = resolve_beneficiary(snapshot)
            if beneficiary is None or (beneficiary.is_other and not include_other):
                continue
            parties.add(beneficiary.key)
            totals[beneficiary.key]["revenue"] += snapshot.income or 0
            totals[beneficiary.key]["ads_cost"] += snapshot.ads_cost or 0

        if parties and livestream.total_orders:
            share = livestream.total_orders / len(parties)
            for key in parties:
                totals[key]["orders"] += share

    names = get_user_names(conn, [k for k in totals if k != OTHER_ASSIGNEE])
    rankings = [
        {
            "beneficiary": key,
            "name": OTHER_LABEL if key == OTHER_ASSIGNEE else names.get(key, f"User {key}"),
            **values,
        }
        for key, values in totals.items()
    ]
    rankings.sort(key=lambda r: r["revenue"], reverse=True)
    return rankings


def monthly_totals(conn: sqlite3.Connection, year: int, month: int) -> dict:
    start, end = month_bounds(year, month)
    livestreams = fetch_livestreams(conn, start, end)
    return {
        "year": year,
        "month": month,
        "livestream_count": len(livestreams),
        "total_orders": sum(ls.total_orders or 0 for ls in livestreams),
        "total_income": sum(ls.total_income or 0 for ls in livestreams),
        "ads_cost": sum(ls.ads_cost or 0 for ls in livestreams),
    }
