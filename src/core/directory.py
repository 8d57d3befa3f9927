"""
Read-only lookups against collaborator data: users, channels, monthly goals.

These tables are owned by other systems; the roster only reads them.
"""

import sqlite3

from core.errors import NotFoundError


def get_user(conn: sqlite3.Connection, user_id: int) -> dict | None:
    """Return {"id", "name", "roles"} for a user, or None."""
    row = conn.execute("SELECT id, name, roles FROM users WHERE id = ?", (user_id,)).fetchone()
    if not row:
        return None
    roles = [r.strip() for r in (row["roles"] or "").split(",") if r.strip()]
    return {"id": row["id"], "name": row["name"], "roles": roles}


def require_user(conn: sqlite3.Connection, user_id: int) -> dict:
    user = get_user(conn, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def missing_user_ids(conn: sqlite3.Connection, user_ids: list[int]) -> list[int]:
    """Ids from the list that do not resolve to a user."""
    if not user_ids:
        return []
    placeholders = ", ".join("?" for _ in user_ids)
    found = {
        row["id"]
        for row in conn.execute(f"SELECT id FROM users WHERE id IN ({placeholders})", list(user_ids))
    }
    return [uid for uid in user_ids if uid not in found]


def get_user_names(conn: sqlite3.Connection, user_ids) -> dict[int, str]:
    ids = [uid for uid in set(user_ids) if uid is not None]
    if not ids:
        return {}
    placeholders = ", ".join("?" for _ in ids)
    rows = conn.execute(f"SELECT id, name FROM users WHERE id IN ({placeholders})", ids)
    return {row["id"]: row["name"] for row in rows}


def channel_exists(conn: sqlite3.Connection, channel_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM channels WHERE id = ?", (channel_id,)).fetchone()
    return row is not None


def require_channel(conn: sqlite3.Connection, channel_id: int) -> None:
    if not channel_exists(conn, channel_id):
        raise NotFoundError(f"Channel {channel_id} not found")


def list_channel_ids(conn: sqlite3.Connection) -> list[int]:
    return [row["id"] for row in conn.execute("SELECT id FROM channels ORDER BY id")]


def get_channel_names(conn: sqlite3.Connection) -> dict[int, str]:
    return {row["id"]: row["name"] for row in conn.execute("SELECT id, name FROM channels")}


def get_month_goal(conn: sqlite3.Connection, channel_id: int, year: int, month: int) -> float | None:
    """Monthly revenue goal for a channel, or None when none is on file."""
    row = conn.execute(
        "SELECT goal FROM month_goals WHERE channel_id = ? AND year = ? AND month = ?",
        (channel_id, year, month),
    ).fetchone()
    return row["goal"] if row else None
