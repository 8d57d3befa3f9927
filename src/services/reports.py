"""
Excel payroll report generation.
"""

from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from core.config import OUTPUT_DIR, PAYROLL_DETAIL_HEADERS, PAYROLL_SUMMARY_HEADERS

SUMMARY_SHEET = "Payroll Summary"
DETAIL_SHEET = "Snapshot Detail"


def write_summary_sheet(ws, payroll: dict):
    """
    Write the per-employee summary.

    Row 1 holds headers, one row per employee follows (already sorted by
    total salary), and the last row sums snapshot counts and salaries.
    """
    for col_idx, header in enumerate(PAYROLL_SUMMARY_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    employees = payroll["employees"]
    for row_idx, employee in enumerate(employees, start=2):
        ws.cell(row=row_idx, column=1, value=employee["name"])
        ws.cell(row=row_idx, column=2, value=employee["snapshot_count"])
        ws.cell(row=row_idx, column=3, value=employee["total_salary"])

    total_row = len(employees) + 2
    label = ws.cell(row=total_row, column=1, value="Total")
    label.font = Font(bold=True)
    for col_idx in (2, 3):
        col = get_column_letter(col_idx)
        formula = f"=SUM({col}2:{col}{total_row - 1})" if employees else 0
        cell = ws.cell(row=total_row, column=col_idx, value=formula)
        cell.font = Font(bold=True)

    ws.column_dimensions["A"].width = 28
    ws.column_dimensions["C"].width = 16


def write_detail_sheet(ws, payroll: dict):
    """Write one row per paid snapshot."""
    for col_idx, header in enumerate(PAYROLL_DETAIL_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    for row_idx, detail in enumerate(payroll["details"], start=2):
        row_data = [
            detail["date"],
            detail["channel"],
            detail["role"],
            detail["start"],
            detail["end"],
            detail["name"],
            detail["income"],
            detail["salary_per_hour"],
            detail["bonus_percentage"],
            detail["total"],
        ]
        for col_idx, value in enumerate(row_data, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)


def create_payroll_workbook(payroll: dict) -> Workbook:
    """Build the two-sheet payroll workbook from a calculate_monthly result."""
    wb = Workbook()
    ws_summary = wb.active
    ws_summary.title = SUMMARY_SHEET
    write_summary_sheet(ws_summary, payroll)

    ws_detail = wb.create_sheet(title=DETAIL_SHEET)
    write_detail_sheet(ws_detail, payroll)
    return wb


def payroll_filename(payroll: dict, suffix: str = "a") -> str:
    return f"payroll_{payroll['year']}_{payroll['month']:02d}_{suffix}.xlsx"


def next_report_path(payroll: dict, output_dir: Path | None = None) -> Path:
    """
    First unused versioned path in the output directory.

    Example: payroll_2025_11_a.xlsx, then payroll_2025_11_b.xlsx
    """
    output_dir = output_dir or OUTPUT_DIR / "reports" / "payroll"
    suffix = "a"
    while (output_dir / payroll_filename(payroll, suffix)).exists():
        suffix = chr(ord(suffix) + 1)
    return output_dir / payroll_filename(payroll, suffix)


def create_payroll_report(payroll: dict, output_path: Path) -> Path:
    wb = create_payroll_workbook(payroll)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(output_path))
    print(f"Saved payroll report to: {output_path}")
    return output_path


def payroll_report_to_bytes(payroll: dict) -> tuple[bytes, str]:
    """Render the workbook in memory (for API usage). Returns (bytes, filename)."""
    wb = create_payroll_workbook(payroll)
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer.getvalue(), payroll_filename(payroll)
