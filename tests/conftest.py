"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import get_connection, init_schema  # noqa: E402
from models.schedule import TimeOfDay  # noqa: E402
from services import periods  # noqa: E402

ALICE, BOB, CAROL, DAN = 1, 2, 3, 4
MAIN_CHANNEL, OUTLET_CHANNEL = 1, 2


def t(text: str) -> TimeOfDay:
    """Shorthand for TimeOfDay.parse("HH:MM")."""
    return TimeOfDay.parse(text)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "roster.db"


@pytest.fixture
def conn(db_path):
    """Fresh database with seeded users and channels."""
    connection = get_connection(db_path)
    init_schema(connection)
    with connection:
        connection.executemany(
            "INSERT INTO users (id, name, roles) VALUES (?, ?, ?)",
            [
                (ALICE, "Alice", "host"),
                (BOB, "Bob", "assistant"),
                (CAROL, "Carol", "host"),
                (DAN, "Dan", "assistant"),
            ],
        )
        connection.executemany(
            "INSERT INTO channels (id, name) VALUES (?, ?)",
            [(MAIN_CHANNEL, "Main"), (OUTLET_CHANNEL, "Outlet")],
        )
    yield connection
    connection.close()


@pytest.fixture
def add_period(conn):
    """Create a period: add_period("host", "09:00", "11:00", channel_id=1)."""

    def _add(role: str, start: str, end: str, channel_id: int = MAIN_CHANNEL):
        return periods.create_period(conn, channel_id, role, t(start), t(end))

    return _add


@pytest.fixture
def set_goal(conn):
    def _set(channel_id: int, year: int, month: int, goal: float):
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO month_goals (channel_id, year, month, goal) VALUES (?, ?, ?, ?)",
                (channel_id, year, month, goal),
            )

    return _set
