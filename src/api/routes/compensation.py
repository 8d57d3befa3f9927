"""Performance tier, salary config and payroll endpoints."""

import asyncio
import sqlite3

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from api.dependencies import get_db
from api.logging import record_counters
from api.models.requests import (
    DailyPayrollRequest,
    SalaryConfigCreate,
    SalaryConfigUpdate,
    TierCreate,
    TierUpdate,
)
from api.models.responses import (
    DailyPayrollLine,
    MonthlyPayrollResponse,
    SalaryConfigResponse,
    TierResponse,
)
from core.database import get_connection
from services import compensation
from services.reports import payroll_report_to_bytes

router = APIRouter(prefix="/v1", tags=["compensation"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =============================================================================
# PERFORMANCE TIERS
# =============================================================================


@router.get("/performance-tiers", response_model=list[TierResponse])
def list_tiers(conn: sqlite3.Connection = Depends(get_db)):
    return [t.to_dict() for t in compensation.list_tiers(conn)]


@router.post("/performance-tiers", response_model=TierResponse, status_code=status.HTTP_201_CREATED)
def create_tier(body: TierCreate, conn: sqlite3.Connection = Depends(get_db)):
    tier = compensation.create_tier(
        conn, body.min_income, body.max_income, body.salary_per_hour, body.bonus_percentage
    )
    return tier.to_dict()


@router.get("/performance-tiers/{tier_id}", response_model=TierResponse)
def get_tier(tier_id: int, conn: sqlite3.Connection = Depends(get_db)):
    return compensation.get_tier(conn, tier_id).to_dict()


@router.patch("/performance-tiers/{tier_id}", response_model=TierResponse)
def update_tier(tier_id: int, body: TierUpdate, conn: sqlite3.Connection = Depends(get_db)):
    return compensation.update_tier(conn, tier_id, **body.model_dump()).to_dict()


@router.delete("/performance-tiers/{tier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tier(tier_id: int, conn: sqlite3.Connection = Depends(get_db)):
    compensation.delete_tier(conn, tier_id)


# =============================================================================
# SALARY CONFIGS
# =============================================================================


@router.get("/salary-configs", response_model=list[SalaryConfigResponse])
def list_salary_configs(conn: sqlite3.Connection = Depends(get_db)):
    return [c.to_dict() for c in compensation.list_salary_configs(conn)]


@router.post("/salary-configs", response_model=SalaryConfigResponse, status_code=status.HTTP_201_CREATED)
def create_salary_config(body: SalaryConfigCreate, conn: sqlite3.Connection = Depends(get_db)):
    config = compensation.create_salary_config(conn, body.name, body.tier_ids, body.employee_ids)
    return config.to_dict()


@router.get("/salary-configs/{config_id}", response_model=SalaryConfigResponse)
def get_salary_config(config_id: int, conn: sqlite3.Connection = Depends(get_db)):
    return compensation.get_salary_config(conn, config_id).to_dict()


@router.patch("/salary-configs/{config_id}", response_model=SalaryConfigResponse)
def update_salary_config(
    config_id: int, body: SalaryConfigUpdate, conn: sqlite3.Connection = Depends(get_db)
):
    config = compensation.update_salary_config(
        conn, config_id, body.name, body.tier_ids, body.employee_ids
    )
    return config.to_dict()


@router.delete("/salary-configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_salary_config(config_id: int, conn: sqlite3.Connection = Depends(get_db)):
    compensation.delete_salary_config(conn, config_id)


# =============================================================================
# PAYROLL
# =============================================================================


@router.post("/payroll/daily", response_model=list[DailyPayrollLine])
def calculate_daily(request: Request, body: DailyPayrollRequest, conn: sqlite3.Connection = Depends(get_db)):
    results = compensation.calculate_daily(conn, body.date, body.use_real_income)
    record_counters(request, livestreams_updated=len({r["livestream_id"] for r in results}))
    return results


@router.get("/payroll/monthly", response_model=MonthlyPayrollResponse)
def calculate_monthly(
    year: int, month: int, channel_id: int | None = None, conn: sqlite3.Connection = Depends(get_db)
):
    return compensation.calculate_monthly(conn, year, month, channel_id)


def _export_in_thread(db_path, year: int, month: int, channel_id: int | None) -> tuple[bytes, str]:
    """Compute the month's payroll and render it to xlsx bytes."""
    conn = get_connection(db_path)
    try:
        payroll = compensation.calculate_monthly(conn, year, month, channel_id)
    finally:
        conn.close()
    return payroll_report_to_bytes(payroll)


@router.get("/payroll/monthly/export")
async def export_monthly(request: Request, year: int, month: int, channel_id: int | None = None):
    """Download the month's payroll as an Excel workbook."""
    excel_bytes, filename = await asyncio.to_thread(
        _export_in_thread, request.app.state.db_path, year, month, channel_id
    )
    return Response(
        content=excel_bytes,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
