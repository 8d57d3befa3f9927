"""FastAPI dependencies for shared resources."""

import sqlite3
from collections.abc import Iterator

from fastapi import Request

from core.database import get_connection


def get_db(request: Request) -> Iterator[sqlite3.Connection]:
    """
    Open a connection to the app's database for the duration of one request.

    The path comes from app.state.db_path so tests can point it elsewhere.
    """
    conn = get_connection(request.app.state.db_path)
    try:
        yield conn
    finally:
        conn.close()
