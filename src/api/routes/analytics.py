"""Revenue analytics endpoints."""

import sqlite3
from datetime import date

from fastapi import APIRouter, Depends

from api.dependencies import get_db
from api.models.responses import MonthlyTotalsResponse, RankingEntry
from services.attribution import monthly_totals, revenue_rankings

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get("/rankings", response_model=list[RankingEntry])
def rankings(
    start_date: date,
    end_date: date,
    role: str | None = None,
    include_other: bool = True,
    conn: sqlite3.Connection = Depends(get_db),
):
    return revenue_rankings(conn, start_date, end_date, role, include_other)


@router.get("/monthly-totals", response_model=MonthlyTotalsResponse)
def totals(year: int, month: int, conn: sqlite3.Connection = Depends(get_db)):
    return monthly_totals(conn, year, month)
