"""
Reassignment requests.

    pending --accept--> accepted
    pending --reject--> rejected

Terminal states never change. Only the creator may edit or delete a
request, and only while it is pending. At most one pending request exists
per (livestream, snapshot).
"""

import logging
import sqlite3

from core.database import (
    delete_alt_request_row,
    fetch_alt_request,
    fetch_latest_alt_request,
    fetch_livestream,
    fetch_pending_alt_request,
    insert_alt_request,
    save_livestream,
    update_alt_request_row,
)
from core.directory import require_user
from core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.validation import ensure_mutable
from models.schedule import AltAssignee
from models.workflow import AltRequest, AltRequestStatus
from services.snapshots import check_alt_target

logger = logging.getLogger(__name__)


def _require_note(note: str | None) -> str:
    if not note or not note.strip():
        raise ValidationError("alt_note is required")
    return note.strip()


def _require_request(conn: sqlite3.Connection, request_id: int) -> AltRequest:
    request = fetch_alt_request(conn, request_id)
    if request is None:
        raise NotFoundError(f"Alt request {request_id} not found")
    return request


def _require_pending(request: AltRequest) -> None:
    if not request.is_pending:
        raise ConflictError(f"Alt request {request.id} is already {request.status.value}")


def _require_creator(request: AltRequest, user_id: int) -> None:
    if request.created_by != user_id:
        raise ForbiddenError("Only the creator can change this alt request")


def create_request(
    conn: sqlite3.Connection,
    created_by: int,
    livestream_id: int,
    snapshot_id: str,
    alt_note: str,
) -> AltRequest:
    require_user(conn, created_by)
    livestream = fetch_livestream(conn, livestream_id)
    if livestream is None:
        raise NotFoundError(f"Livestream {livestream_id} not found")
    if livestream.find_snapshot(snapshot_id) is None:
        raise NotFoundError(f"Snapshot {snapshot_id} not found in livestream {livestream_id}")
    note = _require_note(alt_note)

    if fetch_pending_alt_request(conn, livestream_id, snapshot_id) is not None:
        raise ConflictError("A pending alt request already exists for this snapshot")

    request = AltRequest(
        id=None,
        livestream_id=livestream_id,
        snapshot_id=snapshot_id,
        created_by=created_by,
        alt_note=note,
    )
    with conn:
        insert_alt_request(conn, request)
    logger.info("User %d opened alt request %d for snapshot %s", created_by, request.id, snapshot_id)
    return request


def update_request_note(
    conn: sqlite3.Connection, request_id: int, user_id: int, alt_note: str
) -> AltRequest:
    request = _require_request(conn, request_id)
    _require_creator(request, user_id)
    _require_pending(request)
    request.alt_note = _require_note(alt_note)
    with conn:
        update_alt_request_row(conn, request)
    return request


def delete_request(conn: sqlite3.Connection, request_id: int, user_id: int) -> None:
    request = _require_request(conn, request_id)
    _require_creator(request, user_id)
    _require_pending(request)
    with conn:
        delete_alt_request_row(conn, request_id)
    logger.info("Deleted alt request %d", request_id)


def accept_request(
    conn: sqlite3.Connection,
    request_id: int,
    alt_assignee: int | str,
    alt_other_name: str | None = None,
    alt_note: str | None = None,
) -> AltRequest:
    """
    Approve a request: write the target onto the snapshot and close it.

    The snapshot change and the status change commit together.
    """
    request = _require_request(conn, request_id)
    _require_pending(request)

    target = AltAssignee.from_wire(alt_assignee, alt_other_name)
    if not target.is_set:
        raise ValidationError("alt_assignee is required to accept a request")

    livestream = fetch_livestream(conn, request.livestream_id)
    if livestream is None:
        raise NotFoundError(f"Livestream {request.livestream_id} not found")
    ensure_mutable(livestream, "reassign a snapshot in")
    snapshot = livestream.find_snapshot(request.snapshot_id)
    if snapshot is None:
        raise NotFoundError(f"Snapshot {request.snapshot_id} no longer exists")
    check_alt_target(conn, snapshot, target)

    note = alt_note.strip() if alt_note and alt_note.strip() else request.alt_note
    snapshot.alt_assignee = target
    snapshot.alt_note = note
    request.status = AltRequestStatus.ACCEPTED
    with conn:
        save_livestream(conn, livestream)
        update_alt_request_row(conn, request)
    logger.info("Accepted alt request %d", request_id)
    return request


def reject_request(conn: sqlite3.Connection, request_id: int) -> AltRequest:
    request = _require_request(conn, request_id)
    _require_pending(request)
    request.status = AltRequestStatus.REJECTED
    with conn:
        update_alt_request_row(conn, request)
    logger.info("Rejected alt request %d", request_id)
    return request


def get_request(conn: sqlite3.Connection, request_id: int) -> AltRequest:
    return _require_request(conn, request_id)


def get_request_for_snapshot(
    conn: sqlite3.Connection, livestream_id: int, snapshot_id: str
) -> AltRequest | None:
    """Most recent request for a snapshot, whatever its status."""
    return fetch_latest_alt_request(conn, livestream_id, snapshot_id)
