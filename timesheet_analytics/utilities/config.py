"""Configuration constants and settings for timesheet analytics."""
import os
from typing import FrozenSet, List

from timesheet_analytics.utilities.models import DateRangePolicy

# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

DB_URL = os.getenv("TIMESHEET_DB_URL", "sqlite:///timesheet_snapshots.db")

SNAPSHOT_TABLE = "snapshots"

DEFAULT_SNAPSHOT_TITLE = "TimeTracker Snapshot"

# ============================================================================
# SHARING / FETCH CONFIGURATION
# ============================================================================

SHARE_BASE_URL = os.getenv("TIMESHEET_SHARE_BASE_URL", "http://localhost:8080")

FETCH_TIMEOUT_SECONDS = float(os.getenv("TIMESHEET_FETCH_TIMEOUT", "30"))

# Content types accepted from a remote CSV URL (checked by prefix)
TEXT_CONTENT_TYPES = ("text/", "application/csv")

# ============================================================================
# BILLING DEFAULTS
# ============================================================================

DEFAULT_HOURLY_RATE = float(os.getenv("TIMESHEET_DEFAULT_RATE", "25"))
DEFAULT_ROUNDING_INTERVAL = int(os.getenv("TIMESHEET_DEFAULT_INTERVAL", "60"))

VALID_ROUNDING_INTERVALS: FrozenSet[int] = frozenset({15, 30, 60})

DEFAULT_DATE_RANGE_POLICY = DateRangePolicy.INDEPENDENT

DEFAULT_INVOICE_NUMBER = "INV-001"

# ============================================================================
# COLUMN DEFINITIONS
# ============================================================================

COL_PROJECT = "Project"
COL_CLIENT = "Client"
COL_DESCRIPTION = "Description"
COL_TASK = "Task"
COL_USER = "User"
COL_GROUP = "Group"
COL_EMAIL = "Email"
COL_TAGS = "Tags"
COL_BILLABLE = "Billable"
COL_START_DATE = "Start Date"
COL_START_TIME = "Start Time"
COL_END_DATE = "End Date"
COL_END_TIME = "End Time"
COL_DURATION_HOURS = "Duration (h)"
COL_DURATION_DECIMAL = "Duration (decimal)"
COL_BILLABLE_RATE = "Billable Rate (USD)"
COL_BILLABLE_AMOUNT = "Billable Amount (USD)"

REQUIRED_COLUMNS: List[str] = [
    COL_PROJECT,
    COL_CLIENT,
    COL_DESCRIPTION,
    COL_START_DATE,
    COL_START_TIME,
    COL_END_DATE,
    COL_END_TIME,
    COL_DURATION_HOURS,
    COL_DURATION_DECIMAL,
]

# Full column layout written by the CSV exporter, re-importable as-is
EXPORT_COLUMNS: List[str] = [
    COL_PROJECT,
    COL_CLIENT,
    COL_DESCRIPTION,
    COL_TASK,
    COL_USER,
    COL_GROUP,
    COL_EMAIL,
    COL_TAGS,
    COL_BILLABLE,
    COL_START_DATE,
    COL_START_TIME,
    COL_END_DATE,
    COL_END_TIME,
    COL_DURATION_HOURS,
    COL_DURATION_DECIMAL,
    COL_BILLABLE_RATE,
    COL_BILLABLE_AMOUNT,
]

DEFAULT_DURATION_TEXT = "0:00:00"

INVALID_TIMESTAMP_TEXT = "NaN"

# ============================================================================
# BUSINESS RULES
# ============================================================================

BILLABLE_TRUE_VALUE = "yes"

