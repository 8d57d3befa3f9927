"""
Compensation: performance tiers, salary configs and payroll.

A snapshot's pay is hourly rate x window length plus a bonus percentage of
its income, using the tier of the beneficiary's salary config whose
[min_income, max_income) range holds that income.
"""

import logging
import sqlite3
from collections import defaultdict
from datetime import date

from core.config import OTHER_ASSIGNEE
from core.database import (
    delete_salary_config_row,
    delete_tier_row,
    fetch_config_ids_for_tier,
    fetch_livestreams,
    fetch_salary_config,
    fetch_salary_config_by_name,
    fetch_salary_config_for_user,
    fetch_salary_configs,
    fetch_tier,
    fetch_tiers,
    find_tier_by_values,
    insert_salary_config,
    insert_tier,
    save_livestream,
    update_salary_config_row,
    update_tier_row,
)
from core.directory import get_channel_names, get_user_names, missing_user_ids
from core.errors import ConflictError, NotFoundError, ValidationError
from core.intervals import duration_minutes
from core.parsing import round_half_up
from core.validation import validate_tier_values, validate_tiers_disjoint
from models.payroll import PerformanceTier, SalaryConfig
from models.schedule import Salary, Snapshot
from services.attribution import month_bounds, resolve_beneficiary

logger = logging.getLogger(__name__)

STATUS_UPDATED = "updated"
STATUS_SKIPPED = "skipped"
STATUS_NO_SALARY_CONFIG = "no_salary_config"
STATUS_NO_PERFORMANCE_FOUND = "no_performance_found"


# =============================================================================
# PERFORMANCE TIERS
# =============================================================================


def _check_duplicate_tier(conn: sqlite3.Connection, tier: PerformanceTier) -> None:
    existing = find_tier_by_values(conn, tier)
    if existing is not None and existing.id != tier.id:
        raise ValidationError(f"An identical performance tier already exists (id {existing.id})")


def create_tier(
    conn: sqlite3.Connection,
    min_income: float,
    max_income: float,
    salary_per_hour: float,
    bonus_percentage: float,
) -> PerformanceTier:
    tier = PerformanceTier(None, min_income, max_income, salary_per_hour, bonus_percentage)
    validate_tier_values(tier)
    _check_duplicate_tier(conn, tier)
    with conn:
        insert_tier(conn, tier)
    logger.info("Created performance tier %d [%s, %s)", tier.id, min_income, max_income)
    return tier


def update_tier(conn: sqlite3.Connection, tier_id: int, **values) -> PerformanceTier:
    """Update tier fields given as keyword arguments; None values are ignored."""
    tier = get_tier(conn, tier_id)
    for name in ("min_income", "max_income", "salary_per_hour", "bonus_percentage"):
        if values.get(name) is not None:
            setattr(tier, name, values[name])
    validate_tier_values(tier)
    _check_duplicate_tier(conn, tier)

    # Configs using this tier must stay free of overlapping ranges
    for config_id in fetch_config_ids_for_tier(conn, tier_id):
        config = fetch_salary_config(conn, config_id)
        others = [t for t in fetch_tiers(conn, config.tier_ids) if t.id != tier_id]
        validate_tiers_disjoint(others + [tier])

    with conn:
        update_tier_row(conn, tier)
    return tier


def delete_tier(conn: sqlite3.Connection, tier_id: int) -> None:
    get_tier(conn, tier_id)
    config_ids = fetch_config_ids_for_tier(conn, tier_id)
    if config_ids:
        raise ConflictError(
            f"Performance tier {tier_id} is used by salary config(s)",
            details=[f"salary config {cid}" for cid in config_ids],
        )
    with conn:
        delete_tier_row(conn, tier_id)
    logger.info("Deleted performance tier %d", tier_id)


def get_tier(conn: sqlite3.Connection, tier_id: int) -> PerformanceTier:
    tier = fetch_tier(conn, tier_id)
    if tier is None:
        raise NotFoundError(f"Performance tier {tier_id} not found")
    return tier


def list_tiers(conn: sqlite3.Connection) -> list[PerformanceTier]:
    return fetch_tiers(conn)


# =============================================================================
# SALARY CONFIGS
# =============================================================================


def _validate_config(conn: sqlite3.Connection, config: SalaryConfig) -> None:
    config.name = (config.name or "").strip()
    if not config.name:
        raise ValidationError("Salary config name is required")
    same_name = fetch_salary_config_by_name(conn, config.name)
    if same_name is not None and same_name.id != config.id:
        raise ValidationError(f"Salary config name '{config.name}' is already used")

    config.tier_ids = sorted(set(config.tier_ids))
    config.employee_ids = sorted(set(config.employee_ids))
    if not config.tier_ids:
        raise ValidationError("Salary config needs at least one performance tier")
    if not config.employee_ids:
        raise ValidationError("Salary config needs at least one employee")

    tiers = fetch_tiers(conn, config.tier_ids)
    missing_tiers = set(config.tier_ids) - {t.id for t in tiers}
    if missing_tiers:
        raise NotFoundError(
            "Performance tier(s) not found",
            details=[f"tier {tid}" for tid in sorted(missing_tiers)],
        )
    validate_tiers_disjoint(tiers)

    missing_users = missing_user_ids(conn, config.employee_ids)
    if missing_users:
        raise NotFoundError("Employee(s) not found", details=[f"user {uid}" for uid in missing_users])

    taken = []
    for user_id in config.employee_ids:
        current = fetch_salary_config_for_user(conn, user_id)
        if current is not None and current.id != config.id:
            taken.append(f"user {user_id} is in salary config '{current.name}'")
    if taken:
        raise ConflictError("Employee(s) already belong to another salary config", details=taken)


def create_salary_config(
    conn: sqlite3.Connection, name: str, tier_ids: list[int], employee_ids: list[int]
) -> SalaryConfig:
    config = SalaryConfig(None, name, list(tier_ids), list(employee_ids))
    _validate_config(conn, config)
    with conn:
        insert_salary_config(conn, config)
    logger.info("Created salary config %d '%s'", config.id, config.name)
    return config


def update_salary_config(
    conn: sqlite3.Connection,
    config_id: int,
    name: str | None = None,
    tier_ids: list[int] | None = None,
    employee_ids: list[int] | None = None,
) -> SalaryConfig:
    config = get_salary_config(conn, config_id)
    if name is not None:
        config.name = name
    if tier_ids is not None:
        config.tier_ids = list(tier_ids)
    if employee_ids is not None:
        config.employee_ids = list(employee_ids)
    _validate_config(conn, config)
    with conn:
        update_salary_config_row(conn, config)
    return config


def delete_salary_config(conn: sqlite3.Connection, config_id: int) -> None:
    with conn:
        deleted = delete_salary_config_row(conn, config_id)
    if not deleted:
        raise NotFoundError(f"Salary config {config_id} not found")
    logger.info("Deleted salary config %d", config_id)


def get_salary_config(conn: sqlite3.Connection, config_id: int) -> SalaryConfig:
    config = fetch_salary_config(conn, config_id)
    if config is None:
        raise NotFoundError(f"Salary config {config_id} not found")
    return config


def list_salary_configs(conn: sqlite3.Connection) -> list[SalaryConfig]:
    return fetch_salary_configs(conn)


def find_salary_config(conn: sqlite3.Connection, user_id: int) -> SalaryConfig | None:
    return fetch_salary_config_for_user(conn, user_id)


# =============================================================================
# PAYROLL
# =============================================================================


def income_value(snapshot: Snapshot, use_real_income: bool = False) -> float:
    """Income the pay is based on: real income when present, else reported income."""
    if use_real_income:
        return snapshot.real_income or 0
    return snapshot.real_income or snapshot.income or 0


def snapshot_hours(snapshot: Snapshot) -> float:
    return duration_minutes(snapshot.period.start_minutes, snapshot.period.end_minutes) / 60


def calculate_salary(snapshot: Snapshot, tier: PerformanceTier, income: float) -> Salary:
    total = round_half_up(
        tier.salary_per_hour * snapshot_hours(snapshot) + income * tier.bonus_percentage / 100
    )
    return Salary(
        salary_per_hour=tier.salary_per_hour,
        bonus_percentage=tier.bonus_percentage,
        total=total,
        income=income,
    )


def _tiers_for_user(conn: sqlite3.Connection, user_id: int, cache: dict) -> list[PerformanceTier] | None:
    if user_id not in cache:
        config = fetch_salary_config_for_user(conn, user_id)
        cache[user_id] = fetch_tiers(conn, config.tier_ids) if config else None
    return cache[user_id]


def calculate_daily(
    conn: sqlite3.Connection, day: date, use_real_income: bool = False
) -> list[dict]:
    """
    Compute and store salary on every snapshot of every livestream on `day`.

    Snapshots that end up without pay have their salary cleared. Returns one
    detail dict per snapshot with its status.
    """
    results = []
    tier_cache: dict = {}
    for livestream in fetch_livestreams(conn, day, day):
        changed = False
        for snapshot in livestream.snapshots:
            value = income_value(snapshot, use_real_income)
            beneficiary = resolve_beneficiary(snapshot)
            salary = None

            if beneficiary is None or beneficiary.is_other or value <= 0:
                status = STATUS_SKIPPED
            else:
                tiers = _tiers_for_user(conn, beneficiary.user_id, tier_cache)
                if tiers is None:
                    status = STATUS_NO_SALARY_CONFIG
                else:
                    tier = next((t for t in tiers if t.matches(value)), None)
                    if tier is None:
                        status = STATUS_NO_PERFORMANCE_FOUND
                    else:
                        salary = calculate_salary(snapshot, tier, value)
                        status = STATUS_UPDATED

            if snapshot.salary != salary:
                snapshot.salary = salary
                changed = True
            results.append({
                "livestream_id": livestream.id,
                "snapshot_id": snapshot.id,
                "channel_id": snapshot.channel_id,
                "role": snapshot.role.value,
                "beneficiary": beneficiary.key if beneficiary else None,
                "income": value,
                "status": status,
                "salary": salary.to_dict() if salary else None,
            })

        if changed:
            with conn:
                save_livestream(conn, livestream)

    updated = sum(1 for r in results if r["status"] == STATUS_UPDATED)
    logger.info("Daily payroll %s: %d of %d snapshot(s) paid", day.isoformat(), updated, len(results))
    return results


def calculate_monthly(
    conn: sqlite3.Connection, year: int, month: int, channel_id: int | None = None
) -> dict:
    """
    Sum stored salaries per beneficiary over the month, highest first.

    Snapshots credited to "other" are not paid out.
    """
    start, end = month_bounds(year, month)
    totals: dict[int, int] = defaultdict(int)
    counts: dict[int, int] = defaultdict(int)
    details = []
    channel_names = get_channel_names(conn)

    for livestream in fetch_livestreams(conn, start, end, channel_id):
        for snapshot in livestream.snapshots:
            if snapshot.salary is None:
                continue
            beneficiary = resolve_beneficiary(snapshot)
            if beneficiary is None or beneficiary.key == OTHER_ASSIGNEE:
                continue
            totals[beneficiary.user_id] += snapshot.salary.total
            counts[beneficiary.user_id] += 1
            details.append({
                "date": livestream.date.isoformat(),
                "channel": channel_names.get(snapshot.channel_id, str(snapshot.channel_id)),
                "role": snapshot.role.value,
                "start": str(snapshot.period.start_time),
                "end": str(snapshot.period.end_time),
                "user_id": beneficiary.user_id,
                "income": snapshot.salary.income,
                "salary_per_hour": snapshot.salary.salary_per_hour,
                "bonus_percentage": snapshot.salary.bonus_percentage,
                "total": snapshot.salary.total,
            })

    names = get_user_names(conn, totals.keys())
    employees = [
        {
            "user_id": user_id,
            "name": names.get(user_id, f"User {user_id}"),
            "snapshot_count": counts[user_id],
            "total_salary": total,
        }
        for user_id, total in totals.items()
    ]
    employees.sort(key=lambda e: e["total_salary"], reverse=True)
    for detail in details:
        detail["name"] = names.get(detail["user_id"], f"User {detail['user_id']}")

    return {
        "year": year,
        "month": month,
        "channel_id": channel_id,
        "employees": employees,
        "total_salary_paid": sum(totals.values()),
        "details": details,
    }
