"""SQLite request logging for API."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Request

from core.database import get_connection

logger = logging.getLogger(__name__)


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    livestreams_updated: int | None = None
    orders_processed: int | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def current_log(request: Request) -> RequestLog | None:
    """The RequestLog the middleware attached to this request, if any."""
    return getattr(request.state, "request_log", None)


def record_counters(request: Request, **counters) -> None:
    """Attach per-operation counters (livestreams_updated, orders_processed)."""
    request_log = current_log(request)
    if request_log is None:
        return
    for name, value in counters.items():
        setattr(request_log, name, value)


REQUEST_COLUMNS = (
    "request_id", "timestamp", "endpoint", "method", "client_ip",
    "status_code", "error_code", "error_message", "processing_time_ms",
    "livestreams_updated", "orders_processed",
)


def log_request(log: RequestLog, db_path: Path | str) -> None:
    """Write one request and its detail rows to SQLite in a single transaction."""
    placeholders = ", ".join("?" for _ in REQUEST_COLUMNS)
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute(
                f"INSERT INTO api_requests ({', '.join(REQUEST_COLUMNS)}) VALUES ({placeholders})",
                tuple(getattr(log, column) for column in REQUEST_COLUMNS),
            )
            conn.executemany(
                "INSERT INTO api_request_details (request_id, detail_type, message) VALUES (?, ?, ?)",
                [(log.request_id, detail_type, message) for detail_type, message in log.details],
            )
        if log.details:
            logger.debug("Logged request %s with %d detail(s)", log.request_id, len(log.details))
    finally:
        conn.close()
