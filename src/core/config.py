"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("ROSTER_DB_PATH", PROJECT_ROOT / "data" / "db" / "livestream-roster.db"))
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# TIME CONFIGURATION
# =============================================================================

LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", "Asia/Ho_Chi_Minh")
MINUTES_PER_DAY = 24 * 60

# =============================================================================
# SCHEDULING
# =============================================================================

KPI_ROUNDING = 1000  # date_kpi and snapshot_kpi are rounded to the nearest thousand
SYNC_LOOKAHEAD_DAYS = int(os.environ.get("SYNC_LOOKAHEAD_DAYS", "7"))

# Wire value for "credit explicitly disclaimed" on a snapshot's alt_assignee
OTHER_ASSIGNEE = "other"

# Snapshot metrics that a host edit pushes down to contained assistant snapshots
PROPAGATED_METRICS = ("income", "real_income", "ads_cost", "orders", "comments")

# Metrics that must all be empty before two snapshots can be merged
REPORTING_METRICS = (
    "income",
    "real_income",
    "ads_cost",
    "click_rate",
    "avg_viewing_duration",
    "comments",
    "orders",
)

# =============================================================================
# RECONCILIATION
# =============================================================================

# Content-type labels (lowercase substrings) marking a livestream-originated order
LIVESTREAM_CONTENT_MARKERS = ("livestream", "live stream", "phát trực tiếp")

# Order status substrings (lowercase) meaning the order was cancelled
CANCELLED_STATUS_MARKERS = ("cancelled", "canceled", "đã hủy")

SOURCE_TIMESTAMP_FORMATS = ("%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M")

# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

PAYROLL_SUMMARY_HEADERS = ["Employee", "Snapshots", "Total Salary"]
PAYROLL_DETAIL_HEADERS = [
    "Date", "Channel", "Role", "Start", "End", "Beneficiary",
    "Income", "Salary / Hour", "Bonus %", "Total",
]

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.0.0"
