#!/usr/bin/env python3
"""
Create the monthly payroll workbook.

Generates an Excel report with two sheets:
- Payroll Summary: total salary per employee with a SUM row
- Snapshot Detail: one row per paid snapshot

Usage:
    uv run python src/scripts/create_payroll_report.py --month 2025-11
    uv run python src/scripts/create_payroll_report.py --month 2025-11 --channel 2 --recalculate
"""

import argparse
import sys
import traceback
from datetime import date
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import get_connection
from services.attribution import month_bounds
from services.compensation import STATUS_UPDATED, calculate_daily, calculate_monthly
from services.reports import create_payroll_report, next_report_path
from services.synchronizer import iter_dates


def parse_month(month_str: str | None) -> tuple[int, int]:
    """Parse YYYY-MM, defaulting to the previous month."""
    if month_str:
        year, month = map(int, month_str.split("-"))
        return year, month
    today = date.today()
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def main(month_str: str | None = None, channel_id: int | None = None, recalculate: bool = False):
    """Main entry point for the payroll report."""
    year, month = parse_month(month_str)
    print(f"Generating payroll report for {year}-{month:02d}")

    conn = get_connection(DB_PATH)
    try:
        # 1. Optionally recompute every day's salaries first
        if recalculate:
            start, end = month_bounds(year, month)
            print("\nRecalculating daily salaries...")
            for day in iter_dates(start, end):
                results = calculate_daily(conn, day)
                paid = sum(1 for r in results if r["status"] == STATUS_UPDATED)
                if results:
                    print(f"  {day}: {paid}/{len(results)} snapshot(s) paid")

        # 2. Aggregate the month
        payroll = calculate_monthly(conn, year, month, channel_id)
    finally:
        conn.close()

    print(f"\nEmployees paid: {len(payroll['employees'])}")
    print(f"Total salary: {payroll['total_salary_paid']:,}")

    # 3. Write the workbook under a versioned name
    output_path = next_report_path(payroll)
    create_payroll_report(payroll, output_path)
    print("\nDone!")
    return output_path


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate monthly payroll report")
    parser.add_argument(
        "--month",
        help="Target month (YYYY-MM). Defaults to previous month.",
    )
    parser.add_argument("--channel", type=int, help="Only include this channel id")
    parser.add_argument(
        "--recalculate",
        action="store_true",
        help="Recompute daily salaries before aggregating",
    )
    args = parser.parse_args()

    try:
        main(args.month, args.channel, args.recalculate)
    except Exception as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        sys.exit(1)
