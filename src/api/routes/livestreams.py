"""Livestream and snapshot endpoints."""

import sqlite3
from datetime import date

from fastapi import APIRouter, Depends, Request, status

from api.dependencies import get_db
from api.logging import record_counters
from api.models.requests import (
    DateRangeRequest,
    LivestreamCreate,
    LivestreamMetricsUpdate,
    SnapshotAltUpdate,
    SnapshotCreate,
    SnapshotMerge,
    SnapshotReport,
    SnapshotTimesUpdate,
    SnapshotUpdate,
)
from api.models.responses import CountResponse, LivestreamResponse, SyncResponse
from models.schedule import TimeOfDay
from services import snapshots, synchronizer

router = APIRouter(prefix="/v1/livestreams", tags=["livestreams"])


@router.post("", response_model=LivestreamResponse, status_code=status.HTTP_201_CREATED)
def materialize_livestream(body: LivestreamCreate, conn: sqlite3.Connection = Depends(get_db)):
    return synchronizer.materialize(conn, body.date, body.channel_id).to_dict()


@router.post("/range", response_model=list[LivestreamResponse], status_code=status.HTTP_201_CREATED)
def materialize_range(
    request: Request, body: DateRangeRequest, conn: sqlite3.Connection = Depends(get_db)
):
    created = synchronizer.materialize_range(conn, body.start_date, body.end_date, body.channel_id)
    record_counters(request, livestreams_updated=len(created))
    return [ls.to_dict() for ls in created]


@router.post("/sync", response_model=SyncResponse)
def synchronize(request: Request, body: DateRangeRequest, conn: sqlite3.Connection = Depends(get_db)):
    result = synchronizer.synchronize(conn, body.start_date, body.end_date, body.channel_id)
    record_counters(request, livestreams_updated=result["updated_count"])
    return result


@router.post("/fix", response_model=CountResponse)
def fix_livestreams(request: Request, body: DateRangeRequest, conn: sqlite3.Connection = Depends(get_db)):
    count = synchronizer.fix_livestreams(conn, body.start_date, body.end_date, body.channel_id)
    record_counters(request, livestreams_updated=count)
    return {"count": count}


@router.get("", response_model=list[LivestreamResponse])
def list_livestreams(
    start_date: date,
    end_date: date,
    channel_id: int | None = None,
    role: str | None = None,
    assignee: int | None = None,
    conn: sqlite3.Connection = Depends(get_db),
):
    livestreams = snapshots.list_livestreams(conn, start_date, end_date, channel_id, role, assignee)
    return [ls.to_dict() for ls in livestreams]


@router.get("/{livestream_id}", response_model=LivestreamResponse)
def get_livestream(livestream_id: int, conn: sqlite3.Connection = Depends(get_db)):
    return snapshots.get_livestream(conn, livestream_id).to_dict()


@router.delete("/{livestream_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_livestream(livestream_id: int, conn: sqlite3.Connection = Depends(get_db)):
    snapshots.delete_livestream(conn, livestream_id)


@router.patch("/{livestream_id}/metrics", response_model=LivestreamResponse)
def update_metrics(
    livestream_id: int, body: LivestreamMetricsUpdate, conn: sqlite3.Connection = Depends(get_db)
):
    livestream = snapshots.set_livestream_metrics(
        conn, livestream_id, body.total_orders, body.ads_cost
    )
    return livestream.to_dict()


@router.post(
    "/{livestream_id}/snapshots",
    response_model=LivestreamResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_snapshot(livestream_id: int, body: SnapshotCreate, conn: sqlite3.Connection = Depends(get_db)):
    livestream = snapshots.add_snapshot(
        conn, livestream_id, body.period_id, body.assignee, body.income
    )
    return livestream.to_dict()


@router.post("/{livestream_id}/snapshots/merge", response_model=LivestreamResponse)
def merge_snapshots(livestream_id: int, body: SnapshotMerge, conn: sqlite3.Connection = Depends(get_db)):
    livestream = snapshots.merge_snapshots(
        conn, livestream_id, body.first_snapshot_id, body.second_snapshot_id
    )
    return livestream.to_dict()


@router.patch("/{livestream_id}/snapshots/{snapshot_id}", response_model=LivestreamResponse)
def update_snapshot(
    livestream_id: int,
    snapshot_id: str,
    body: SnapshotUpdate,
    conn: sqlite3.Connection = Depends(get_db),
):
    fields = body.model_dump(exclude_unset=True)
    return snapshots.update_snapshot(conn, livestream_id, snapshot_id, fields).to_dict()


@router.delete("/{livestream_id}/snapshots/{snapshot_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_snapshot(livestream_id: int, snapshot_id: str, conn: sqlite3.Connection = Depends(get_db)):
    snapshots.remove_snapshot(conn, livestream_id, snapshot_id)


@router.put("/{livestream_id}/snapshots/{snapshot_id}/report", response_model=LivestreamResponse)
def report_snapshot(
    livestream_id: int,
    snapshot_id: str,
    body: SnapshotReport,
    conn: sqlite3.Connection = Depends(get_db),
):
    livestream = snapshots.report_snapshot(
        conn,
        livestream_id,
        snapshot_id,
        income=body.income,
        ads_cost=body.ads_cost,
        click_rate=body.click_rate,
        avg_viewing_duration=body.avg_viewing_duration,
        comments=body.comments,
        orders=body.orders,
        orders_note=body.orders_note,
        rating=body.rating,
    )
    return livestream.to_dict()


@router.patch("/{livestream_id}/snapshots/{snapshot_id}/alt", response_model=LivestreamResponse)
def set_snapshot_alt(
    livestream_id: int,
    snapshot_id: str,
    body: SnapshotAltUpdate,
    conn: sqlite3.Connection = Depends(get_db),
):
    livestream = snapshots.set_snapshot_alt(
        conn, livestream_id, snapshot_id, body.alt_assignee, body.alt_other_name, body.alt_note
    )
    return livestream.to_dict()


@router.patch("/{livestream_id}/snapshot-times", response_model=LivestreamResponse)
def update_snapshot_times(
    livestream_id: int, body: SnapshotTimesUpdate, conn: sqlite3.Connection = Depends(get_db)
):
    updates = [
        (
            item.snapshot_id,
            TimeOfDay(item.start_time.hour, item.start_time.minute),
            TimeOfDay(item.end_time.hour, item.end_time.minute),
        )
        for item in body.updates
    ]
    return snapshots.update_snapshot_times(conn, livestream_id, updates).to_dict()
