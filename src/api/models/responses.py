"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    FORBIDDEN = "FORBIDDEN"
    LIVESTREAM_FIXED = "LIVESTREAM_FIXED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TimeOfDayModel(BaseModel):
    hour: int
    minute: int = 0


class PeriodResponse(BaseModel):
    id: int
    channel_id: int
    role: str
    start_time: TimeOfDayModel
    end_time: TimeOfDayModel


class PeriodCopyModel(BaseModel):
    period_id: int | None
    channel_id: int
    role: str
    start_time: TimeOfDayModel
    end_time: TimeOfDayModel


class SalaryModel(BaseModel):
    salary_per_hour: float
    bonus_percentage: float
    total: int
    income: float = 0


class SnapshotResponse(BaseModel):
    id: str
    period: PeriodCopyModel
    assignee: int | None = None
    alt_assignee: dict | None = None  # {"kind": "user", "user_id"} or {"kind": "other", "name"}
    alt_note: str | None = None
    income: float = 0
    real_income: float = 0
    ads_cost: float = 0
    orders: int = 0
    comments: int = 0
    click_rate: float | None = None
    avg_viewing_duration: float | None = None
    orders_note: str | None = None
    rating: str | None = None
    snapshot_kpi: int = 0
    salary: SalaryModel | None = None


class LivestreamResponse(BaseModel):
    id: int
    date: str
    channel_id: int
    snapshots: list[SnapshotResponse]
    total_orders: int
    ads_cost: float
    total_income: float
    date_kpi: int
    fixed: bool
    version: int


class SyncResponse(BaseModel):
    updated_count: int
    skipped_fixed: int


class CountResponse(BaseModel):
    count: int


class AltRequestResponse(BaseModel):
    id: int
    livestream_id: int
    snapshot_id: str
    created_by: int
    alt_note: str
    status: str
    created_at: str | None = None
    updated_at: str | None = None


class ReconcileResponse(BaseModel):
    livestream_id: int
    processed_orders: int
    updated_snapshots: int
    skipped_rows: int
    skipped: list[str] = []


class TierResponse(BaseModel):
    id: int
    min_income: float
    max_income: float
    salary_per_hour: float
    bonus_percentage: float


class SalaryConfigResponse(BaseModel):
    id: int
    name: str
    tier_ids: list[int]
    employee_ids: list[int]


class DailyPayrollLine(BaseModel):
    livestream_id: int
    snapshot_id: str
    channel_id: int
    role: str
    beneficiary: int | str | None
    income: float
    status: str  # updated, skipped, no_salary_config, no_performance_found
    salary: SalaryModel | None = None


class EmployeePayroll(BaseModel):
    user_id: int
    name: str
    snapshot_count: int
    total_salary: int


class MonthlyPayrollResponse(BaseModel):
    year: int
    month: int
    channel_id: int | None = None
    employees: list[EmployeePayroll]
    total_salary_paid: int


class RankingEntry(BaseModel):
    beneficiary: int | str
    name: str
    revenue: float
    ads_cost: float
    orders: float


class MonthlyTotalsResponse(BaseModel):
    year: int
    month: int
    livestream_count: int
    total_orders: int
    total_income: float
    ads_cost: float
