"""Pydantic request bodies for API endpoints."""

import datetime
from typing import Literal

from pydantic import BaseModel, Field


class TimeOfDayIn(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class PeriodCreate(BaseModel):
    channel_id: int
    role: Literal["host", "assistant"]
    start_time: TimeOfDayIn
    end_time: TimeOfDayIn


class PeriodUpdate(BaseModel):
    role: Literal["host", "assistant"] | None = None
    start_time: TimeOfDayIn | None = None
    end_time: TimeOfDayIn | None = None


class LivestreamCreate(BaseModel):
    date: datetime.date
    channel_id: int


class DateRangeRequest(BaseModel):
    start_date: datetime.date
    end_date: datetime.date
    channel_id: int


class LivestreamMetricsUpdate(BaseModel):
    total_orders: int | None = None
    ads_cost: float | None = None


class SnapshotCreate(BaseModel):
    period_id: int
    assignee: int | None = None
    income: float | None = None


class SnapshotUpdate(BaseModel):
    """Only fields present in the body are changed."""

    period_id: int | None = None
    assignee: int | None = None
    income: float | None = None
    real_income: float | None = None
    ads_cost: float | None = None
    orders: int | None = None
    comments: int | None = None
    click_rate: float | None = None
    avg_viewing_duration: float | None = None
    orders_note: str | None = None
    rating: str | None = None
    snapshot_kpi: int | None = None


class SnapshotReport(BaseModel):
    income: float
    ads_cost: float = 0
    click_rate: float | None = None
    avg_viewing_duration: float | None = None
    comments: int = 0
    orders: int = 0
    orders_note: str | None = None
    rating: str | None = None


class SnapshotAltUpdate(BaseModel):
    alt_assignee: int | str | None = None  # user id or "other"; omit to clear
    alt_other_name: str | None = None
    alt_note: str | None = None


class SnapshotMerge(BaseModel):
    first_snapshot_id: str
    second_snapshot_id: str


class SnapshotTime(BaseModel):
    snapshot_id: str
    start_time: TimeOfDayIn
    end_time: TimeOfDayIn


class SnapshotTimesUpdate(BaseModel):
    updates: list[SnapshotTime]


class AltRequestCreate(BaseModel):
    user_id: int  # acting user, becomes the creator
    livestream_id: int
    snapshot_id: str
    alt_note: str


class AltRequestUpdate(BaseModel):
    user_id: int
    alt_note: str


class AltRequestAccept(BaseModel):
    alt_assignee: int | str
    alt_other_name: str | None = None
    alt_note: str | None = None


class LedgerRowIn(BaseModel):
    order_id: str
    status: str = ""
    subtotal: float | str = 0
    seller_discount: float | str = 0


class SourceRowIn(BaseModel):
    order_id: str
    content_type: str = ""
    created_at: str


class ReconcileRequest(BaseModel):
    date: datetime.date
    channel_id: int | None = None
    ledger_rows: list[LedgerRowIn]
    source_rows: list[SourceRowIn]


class TierCreate(BaseModel):
    min_income: float
    max_income: float
    salary_per_hour: float
    bonus_percentage: float


class TierUpdate(BaseModel):
    min_income: float | None = None
    max_income: float | None = None
    salary_per_hour: float | None = None
    bonus_percentage: float | None = None


class SalaryConfigCreate(BaseModel):
    name: str
    tier_ids: list[int]
    employee_ids: list[int]


class SalaryConfigUpdate(BaseModel):
    name: str | None = None
    tier_ids: list[int] | None = None
    employee_ids: list[int] | None = None


class DailyPayrollRequest(BaseModel):
    date: datetime.date
    use_real_income: bool = False
