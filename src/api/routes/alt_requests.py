"""Reassignment request endpoints."""

import sqlite3

from fastapi import APIRouter, Depends, status

from api.dependencies import get_db
from api.models.requests import AltRequestAccept, AltRequestCreate, AltRequestUpdate
from api.models.responses import AltRequestResponse
from services import alt_requests

router = APIRouter(prefix="/v1/alt-requests", tags=["alt-requests"])


@router.post("", response_model=AltRequestResponse, status_code=status.HTTP_201_CREATED)
def create_request(body: AltRequestCreate, conn: sqlite3.Connection = Depends(get_db)):
    request = alt_requests.create_request(
        conn, body.user_id, body.livestream_id, body.snapshot_id, body.alt_note
    )
    return request.to_dict()


@router.get("/{request_id}", response_model=AltRequestResponse)
def get_request(request_id: int, conn: sqlite3.Connection = Depends(get_db)):
    return alt_requests.get_request(conn, request_id).to_dict()


@router.patch("/{request_id}", response_model=AltRequestResponse)
def update_request(request_id: int, body: AltRequestUpdate, conn: sqlite3.Connection = Depends(get_db)):
    request = alt_requests.update_request_note(conn, request_id, body.user_id, body.alt_note)
    return request.to_dict()


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(request_id: int, user_id: int, conn: sqlite3.Connection = Depends(get_db)):
    alt_requests.delete_request(conn, request_id, user_id)


@router.post("/{request_id}/accept", response_model=AltRequestResponse)
def accept_request(request_id: int, body: AltRequestAccept, conn: sqlite3.Connection = Depends(get_db)):
    request = alt_requests.accept_request(
        conn, request_id, body.alt_assignee, body.alt_other_name, body.alt_note
    )
    return request.to_dict()


@router.post("/{request_id}/reject", response_model=AltRequestResponse)
def reject_request(request_id: int, conn: sqlite3.Connection = Depends(get_db)):
    return alt_requests.reject_request(conn, request_id).to_dict()
