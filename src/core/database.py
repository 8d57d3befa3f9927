"""
SQLite persistence for the livestream roster.

Functions take an open connection first and never commit; callers own the
transaction (`with conn:`) so a failed operation leaves nothing behind.
"""

import json
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

from core.config import DB_PATH
from core.errors import ConflictError
from models.payroll import PerformanceTier, SalaryConfig
from models.schedule import Livestream, Period, Role, Snapshot, TimeOfDay
from models.workflow import AltRequest, AltRequestStatus

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        roles TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS channels (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS month_goals (
        channel_id INTEGER NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        goal REAL NOT NULL,
        PRIMARY KEY (channel_id, year, month),
        FOREIGN KEY (channel_id) REFERENCES channels(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS periods (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        channel_id INTEGER NOT NULL,
        role TEXT NOT NULL CHECK(role IN ('host', 'assistant')),
        start_hour INTEGER NOT NULL,
        start_minute INTEGER NOT NULL,
        end_hour INTEGER NOT NULL,
        end_minute INTEGER NOT NULL,
        FOREIGN KEY (channel_id) REFERENCES channels(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS livestreams (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT NOT NULL,
        channel_id INTEGER NOT NULL,
        snapshots TEXT NOT NULL DEFAULT '[]',
        total_orders INTEGER NOT NULL DEFAULT 0,
        ads_cost REAL NOT NULL DEFAULT 0,
        total_income REAL NOT NULL DEFAULT 0,
        date_kpi INTEGER NOT NULL DEFAULT 0,
        fixed INTEGER NOT NULL DEFAULT 0,
        version INTEGER NOT NULL DEFAULT 0,
        UNIQUE (date, channel_id),
        FOREIGN KEY (channel_id) REFERENCES channels(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS alt_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        livestream_id INTEGER NOT NULL,
        snapshot_id TEXT NOT NULL,
        created_by INTEGER NOT NULL,
        alt_note TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'accepted', 'rejected')),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (livestream_id) REFERENCES livestreams(id) ON DELETE CASCADE,
        FOREIGN KEY (created_by) REFERENCES users(id)
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_alt_requests_pending
        ON alt_requests(livestream_id, snapshot_id) WHERE status = 'pending'
    """,
    """
    CREATE TABLE IF NOT EXISTS performance_tiers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        min_income REAL NOT NULL,
        max_income REAL NOT NULL,
        salary_per_hour REAL NOT NULL,
        bonus_percentage REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS salary_configs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS salary_config_tiers (
        config_id INTEGER NOT NULL,
        tier_id INTEGER NOT NULL,
        PRIMARY KEY (config_id, tier_id),
        FOREIGN KEY (config_id) REFERENCES salary_configs(id) ON DELETE CASCADE,
        FOREIGN KEY (tier_id) REFERENCES performance_tiers(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS salary_config_employees (
        config_id INTEGER NOT NULL,
        user_id INTEGER UNIQUE NOT NULL,
        FOREIGN KEY (config_id) REFERENCES salary_configs(id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        status_code INTEGER NOT NULL,
        error_code TEXT,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL,
        livestreams_updated INTEGER,
        orders_processed INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'skipped_row', 'warning')),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_livestreams_date ON livestreams(date)",
    "CREATE INDEX IF NOT EXISTS idx_periods_channel ON periods(channel_id, role)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_status ON api_requests(status_code)",
    "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)",
]


def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Open a connection with dict-like rows and foreign keys enforced."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they don't exist."""
    with conn:
        for statement in SCHEMA:
            conn.execute(statement)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# PERIODS
# =============================================================================


def _row_to_period(row: sqlite3.Row) -> Period:
    return Period(
        id=row["id"],
        channel_id=row["channel_id"],
        role=Role(row["role"]),
        start_time=TimeOfDay(row["start_hour"], row["start_minute"]),
        end_time=TimeOfDay(row["end_hour"], row["end_minute"]),
    )


def fetch_period(conn: sqlite3.Connection, period_id: int) -> Period | None:
    row = conn.execute("SELECT * FROM periods WHERE id = ?", (period_id,)).fetchone()
    return _row_to_period(row) if row else None


def fetch_periods(
    conn: sqlite3.Connection, channel_id: int, role: Role | None = None
) -> list[Period]:
    """All periods of a channel (optionally one role), ordered by start time."""
    query = "SELECT * FROM periods WHERE channel_id = ?"
    params: list = [channel_id]
    if role is not None:
        query += " AND role = ?"
        params.append(role.value)
    query += " ORDER BY start_hour, start_minute, role, id"
    return [_row_to_period(row) for row in conn.execute(query, params)]


def insert_period(conn: sqlite3.Connection, period: Period) -> Period:
    cursor = conn.execute(
        """
        INSERT INTO periods (channel_id, role, start_hour, start_minute, end_hour, end_minute)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            period.channel_id,
            period.role.value,
            period.start_time.hour,
            period.start_time.minute,
            period.end_time.hour,
            period.end_time.minute,
        ),
    )
    period.id = cursor.lastrowid
    return period


def update_period_row(conn: sqlite3.Connection, period: Period) -> None:
    conn.execute(
        """
        UPDATE periods
        SET channel_id = ?, role = ?, start_hour = ?, start_minute = ?, end_hour = ?, end_minute = ?
        WHERE id = ?
        """,
        (
            period.channel_id,
            period.role.value,
            period.start_time.hour,
            period.start_time.minute,
            period.end_time.hour,
            period.end_time.minute,
            period.id,
        ),
    )


def delete_period_row(conn: sqlite3.Connection, period_id: int) -> bool:
    cursor = conn.execute("DELETE FROM periods WHERE id = ?", (period_id,))
    return cursor.rowcount > 0


# =============================================================================
# LIVESTREAMS
# =============================================================================


def _row_to_livestream(row: sqlite3.Row) -> Livestream:
    return Livestream(
        id=row["id"],
        date=date.fromisoformat(row["date"]),
        channel_id=row["channel_id"],
        snapshots=[Snapshot.from_dict(s) for s in json.loads(row["snapshots"])],
        total_orders=row["total_orders"],
        ads_cost=row["ads_cost"],
        total_income=row["total_income"],
        date_kpi=row["date_kpi"],
        fixed=bool(row["fixed"]),
        version=row["version"],
    )


def _dump_snapshots(livestream: Livestream) -> str:
    return json.dumps([s.to_dict() for s in livestream.snapshots], ensure_ascii=False)


def fetch_livestream(conn: sqlite3.Connection, livestream_id: int) -> Livestream | None:
    row = conn.execute("SELECT * FROM livestreams WHERE id = ?", (livestream_id,)).fetchone()
    return _row_to_livestream(row) if row else None


def fetch_livestream_by_date(
    conn: sqlite3.Connection, day: date, channel_id: int
) -> Livestream | None:
    row = conn.execute(
        "SELECT * FROM livestreams WHERE date = ? AND channel_id = ?",
        (day.isoformat(), channel_id),
    ).fetchone()
    return _row_to_livestream(row) if row else None


def fetch_livestreams(
    conn: sqlite3.Connection,
    start: date,
    end: date,
    channel_id: int | None = None,
) -> list[Livestream]:
    """Livestreams with start <= date <= end, ordered by date then channel."""
    query = "SELECT * FROM livestreams WHERE date >= ? AND date <= ?"
    params: list = [start.isoformat(), end.isoformat()]
    if channel_id is not None:
        query += " AND channel_id = ?"
        params.append(channel_id)
    query += " ORDER BY date, channel_id"
    return [_row_to_livestream(row) for row in conn.execute(query, params)]


def insert_livestream(conn: sqlite3.Connection, livestream: Livestream) -> Livestream:
    """Insert a new livestream; a duplicate (date, channel) raises ConflictError."""
    try:
        cursor = conn.execute(
            """
            INSERT INTO livestreams (
                date, channel_id, snapshots, total_orders, ads_cost,
                total_income, date_kpi, fixed, version
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0)
            """,
            (
                livestream.date.isoformat(),
                livestream.channel_id,
                _dump_snapshots(livestream),
                livestream.total_orders,
                livestream.ads_cost,
                livestream.total_income,
                livestream.date_kpi,
                int(livestream.fixed),
            ),
        )
    except sqlite3.IntegrityError as e:
        raise ConflictError(
            f"Livestream already exists for {livestream.date.isoformat()} "
            f"on channel {livestream.channel_id}"
        ) from e
    livestream.id = cursor.lastrowid
    livestream.version = 0
    return livestream


def save_livestream(conn: sqlite3.Connection, livestream: Livestream) -> Livestream:
    """
    Write a livestream back as one unit.

    The row is only updated if its version still matches the one that was
    read; otherwise someone else wrote in between and ConflictError is raised.
    """
    cursor = conn.execute(
        """
        UPDATE livestreams
        SET snapshots = ?, total_orders = ?, ads_cost = ?, total_income = ?,
            date_kpi = ?, fixed = ?, version = version + 1
        WHERE id = ? AND version = ?
        """,
        (
            _dump_snapshots(livestream),
            livestream.total_orders,
            livestream.ads_cost,
            livestream.total_income,
            livestream.date_kpi,
            int(livestream.fixed),
            livestream.id,
            livestream.version,
        ),
    )
    if cursor.rowcount == 0:
        raise ConflictError(f"Livestream {livestream.id} was modified concurrently, reload and retry")
    livestream.version += 1
    return livestream


def delete_livestream_row(conn: sqlite3.Connection, livestream_id: int) -> bool:
    cursor = conn.execute("DELETE FROM livestreams WHERE id = ?", (livestream_id,))
    return cursor.rowcount > 0


# =============================================================================
# ALT REQUESTS
# =============================================================================


def _row_to_alt_request(row: sqlite3.Row) -> AltRequest:
    return AltRequest(
        id=row["id"],
        livestream_id=row["livestream_id"],
        snapshot_id=row["snapshot_id"],
        created_by=row["created_by"],
        alt_note=row["alt_note"],
        status=AltRequestStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def fetch_alt_request(conn: sqlite3.Connection, request_id: int) -> AltRequest | None:
    row = conn.execute("SELECT * FROM alt_requests WHERE id = ?", (request_id,)).fetchone()
    return _row_to_alt_request(row) if row else None


def fetch_pending_alt_request(
    conn: sqlite3.Connection, livestream_id: int, snapshot_id: str
) -> AltRequest | None:
    row = conn.execute(
        """
        SELECT * FROM alt_requests
        WHERE livestream_id = ? AND snapshot_id = ? AND status = 'pending'
        """,
        (livestream_id, snapshot_id),
    ).fetchone()
    return _row_to_alt_request(row) if row else None


def fetch_latest_alt_request(
    conn: sqlite3.Connection, livestream_id: int, snapshot_id: str
) -> AltRequest | None:
    row = conn.execute(
        """
        SELECT * FROM alt_requests
        WHERE livestream_id = ? AND snapshot_id = ?
        ORDER BY id DESC LIMIT 1
        """,
        (livestream_id, snapshot_id),
    ).fetchone()
    return _row_to_alt_request(row) if row else None


def insert_alt_request(conn: sqlite3.Connection, request: AltRequest) -> AltRequest:
    now = utc_now()
    try:
        cursor = conn.execute(
            """
            INSERT INTO alt_requests (
                livestream_id, snapshot_id, created_by, alt_note, status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.livestream_id,
                request.snapshot_id,
                request.created_by,
                request.alt_note,
                request.status.value,
                now,
                now,
            ),
        )
    except sqlite3.IntegrityError as e:
        raise ConflictError("A pending alt request already exists for this snapshot") from e
    request.id = cursor.lastrowid
    request.created_at = request.updated_at = now
    return request


def update_alt_request_row(conn: sqlite3.Connection, request: AltRequest) -> None:
    request.updated_at = utc_now()
    conn.execute(
        "UPDATE alt_requests SET alt_note = ?, status = ?, updated_at = ? WHERE id = ?",
        (request.alt_note, request.status.value, request.updated_at, request.id),
    )


def delete_alt_request_row(conn: sqlite3.Connection, request_id: int) -> bool:
    cursor = conn.execute("DELETE FROM alt_requests WHERE id = ?", (request_id,))
    return cursor.rowcount > 0


# =============================================================================
# PERFORMANCE TIERS
# =============================================================================


def _row_to_tier(row: sqlite3.Row) -> PerformanceTier:
    return PerformanceTier(
        id=row["id"],
        min_income=row["min_income"],
        max_income=row["max_income"],
        salary_per_hour=row["salary_per_hour"],
        bonus_percentage=row["bonus_percentage"],
    )


def fetch_tier(conn: sqlite3.Connection, tier_id: int) -> PerformanceTier | None:
    row = conn.execute("SELECT * FROM performance_tiers WHERE id = ?", (tier_id,)).fetchone()
    return _row_to_tier(row) if row else None


def fetch_tiers(conn: sqlite3.Connection, tier_ids: list[int] | None = None) -> list[PerformanceTier]:
    """All tiers, or only the given ids, ordered by min_income."""
    if tier_ids is None:
        rows = conn.execute("SELECT * FROM performance_tiers ORDER BY min_income, id")
    else:
        placeholders = ", ".join("?" for _ in tier_ids)
        rows = conn.execute(
            f"SELECT * FROM performance_tiers WHERE id IN ({placeholders}) ORDER BY min_income, id",
            list(tier_ids),
        )
    return [_row_to_tier(row) for row in rows]


def find_tier_by_values(
    conn: sqlite3.Connection, tier: PerformanceTier
) -> PerformanceTier | None:
    row = conn.execute(
        """
        SELECT * FROM performance_tiers
        WHERE min_income = ? AND max_income = ? AND salary_per_hour = ? AND bonus_percentage = ?
        """,
        tier.quadruple,
    ).fetchone()
    return _row_to_tier(row) if row else None


def insert_tier(conn: sqlite3.Connection, tier: PerformanceTier) -> PerformanceTier:
    cursor = conn.execute(
        """
        INSERT INTO performance_tiers (min_income, max_income, salary_per_hour, bonus_percentage)
        VALUES (?, ?, ?, ?)
        """,
        tier.quadruple,
    )
    tier.id = cursor.lastrowid
    return tier


def update_tier_row(conn: sqlite3.Connection, tier: PerformanceTier) -> None:
    conn.execute(
        """
        UPDATE performance_tiers
        SET min_income = ?, max_income = ?, salary_per_hour = ?, bonus_percentage = ?
        WHERE id = ?
        """,
        (*tier.quadruple, tier.id),
    )


def delete_tier_row(conn: sqlite3.Connection, tier_id: int) -> bool:
    cursor = conn.execute("DELETE FROM performance_tiers WHERE id = ?", (tier_id,))
    return cursor.rowcount > 0


# =============================================================================
# SALARY CONFIGS
# =============================================================================


def _load_salary_config(conn: sqlite3.Connection, row: sqlite3.Row) -> SalaryConfig:
    tier_ids = [
        r["tier_id"]
        for r in conn.execute(
            "SELECT tier_id FROM salary_config_tiers WHERE config_id = ? ORDER BY tier_id",
            (row["id"],),
        )
    ]
    employee_ids = [
        r["user_id"]
        for r in conn.execute(
            "SELECT user_id FROM salary_config_employees WHERE config_id = ? ORDER BY user_id",
            (row["id"],),
        )
    ]
    return SalaryConfig(id=row["id"], name=row["name"], tier_ids=tier_ids, employee_ids=employee_ids)


def fetch_salary_config(conn: sqlite3.Connection, config_id: int) -> SalaryConfig | None:
    row = conn.execute("SELECT * FROM salary_configs WHERE id = ?", (config_id,)).fetchone()
    return _load_salary_config(conn, row) if row else None


def fetch_salary_configs(conn: sqlite3.Connection) -> list[SalaryConfig]:
    rows = conn.execute("SELECT * FROM salary_configs ORDER BY name").fetchall()
    return [_load_salary_config(conn, row) for row in rows]


def fetch_salary_config_by_name(conn: sqlite3.Connection, name: str) -> SalaryConfig | None:
    row = conn.execute("SELECT * FROM salary_configs WHERE name = ?", (name,)).fetchone()
    return _load_salary_config(conn, row) if row else None


def fetch_salary_config_for_user(conn: sqlite3.Connection, user_id: int) -> SalaryConfig | None:
    row = conn.execute(
        """
        SELECT c.* FROM salary_configs c
        JOIN salary_config_employees e ON e.config_id = c.id
        WHERE e.user_id = ?
        """,
        (user_id,),
    ).fetchone()
    return _load_salary_config(conn, row) if row else None


def fetch_config_ids_for_tier(conn: sqlite3.Connection, tier_id: int) -> list[int]:
    return [
        r["config_id"]
        for r in conn.execute(
            "SELECT config_id FROM salary_config_tiers WHERE tier_id = ? ORDER BY config_id",
            (tier_id,),
        )
    ]


def _write_config_members(conn: sqlite3.Connection, config: SalaryConfig) -> None:
    conn.execute("DELETE FROM salary_config_tiers WHERE config_id = ?", (config.id,))
    conn.execute("DELETE FROM salary_config_employees WHERE config_id = ?", (config.id,))
    conn.executemany(
        "INSERT INTO salary_config_tiers (config_id, tier_id) VALUES (?, ?)",
        [(config.id, tier_id) for tier_id in config.tier_ids],
    )
    try:
        conn.executemany(
            "INSERT INTO salary_config_employees (config_id, user_id) VALUES (?, ?)",
            [(config.id, user_id) for user_id in config.employee_ids],
        )
    except sqlite3.IntegrityError as e:
        raise ConflictError("Employee already belongs to another salary config") from e


def insert_salary_config(conn: sqlite3.Connection, config: SalaryConfig) -> SalaryConfig:
    try:
        cursor = conn.execute("INSERT INTO salary_configs (name) VALUES (?)", (config.name,))
    except sqlite3.IntegrityError as e:
        raise ConflictError(f"Salary config '{config.name}' already exists") from e
    config.id = cursor.lastrowid
    _write_config_members(conn, config)
    return config


def update_salary_config_row(conn: sqlite3.Connection, config: SalaryConfig) -> None:
    try:
        conn.execute("UPDATE salary_configs SET name = ? WHERE id = ?", (config.name, config.id))
    except sqlite3.IntegrityError as e:
        raise ConflictError(f"Salary config '{config.name}' already exists") from e
    _write_config_members(conn, config)


def delete_salary_config_row(conn: sqlite3.Connection, config_id: int) -> bool:
    cursor = conn.execute("DELETE FROM salary_configs WHERE id = ?", (config_id,))
    return cursor.rowcount > 0
