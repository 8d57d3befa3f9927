"""Period registry endpoints."""

import sqlite3

from fastapi import APIRouter, Depends, status

from api.dependencies import get_db
from api.models.requests import PeriodCreate, PeriodUpdate
from api.models.responses import PeriodResponse
from core.directory import require_channel
from models.schedule import TimeOfDay
from services import periods

router = APIRouter(prefix="/v1", tags=["periods"])


def _time(value) -> TimeOfDay | None:
    return TimeOfDay(value.hour, value.minute) if value is not None else None


@router.post("/periods", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
def create_period(body: PeriodCreate, conn: sqlite3.Connection = Depends(get_db)):
    period = periods.create_period(
        conn, body.channel_id, body.role, _time(body.start_time), _time(body.end_time)
    )
    return period.to_dict()


@router.patch("/periods/{period_id}", response_model=PeriodResponse)
def update_period(period_id: int, body: PeriodUpdate, conn: sqlite3.Connection = Depends(get_db)):
    period = periods.update_period(
        conn, period_id, body.role, _time(body.start_time), _time(body.end_time)
    )
    return period.to_dict()


@router.delete("/periods/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_period(period_id: int, conn: sqlite3.Connection = Depends(get_db)):
    periods.delete_period(conn, period_id)


@router.get("/channels/{channel_id}/periods", response_model=list[PeriodResponse])
def list_channel_periods(channel_id: int, conn: sqlite3.Connection = Depends(get_db)):
    require_channel(conn, channel_id)
    return [p.to_dict() for p in periods.list_by_channel(conn, channel_id)]
