"""
Pytest Configuration File

This module provides fixtures shared by the timesheet analytics tests.
"""

from datetime import datetime

import pytest

from timesheet_analytics.utilities.models import ImportSettings, TimeEntry

CSV_HEADER = (
    "Project,Client,Description,Task,User,Group,Email,Tags,Billable,"
    "Start Date,Start Time,End Date,End Time,Duration (h),Duration (decimal),"
    "Billable Rate (USD),Billable Amount (USD)"
)

CSV_ROWS = [
    "Website,Acme,Landing page,Design,Alice,Team A,alice@example.com,web,Yes,"
    "2025-01-06,09:00:00,2025-01-06,10:06:00,01:06:00,1.10,50,55",
    "Website,Acme,Bug fixes,Dev,Bob,,bob@example.com,,No,"
    "2025-01-07,13:00:00,2025-01-07,15:00:00,02:00:00,2.00,0,0",
    "Mobile App,Globex,API work,,Alice,,,,yes,"
    "2025-01-10,08:00:00,2025-01-10,08:01:00,00:01:00,0.0167,,",
    "Internal,Initech,Zero row,,,,,,No,"
    "2025-01-11,08:00:00,2025-01-11,08:00:00,00:00:00,0,,",
]


@pytest.fixture
def sample_csv_text():
    """Four data rows; the last has a zero duration and is dropped on import"""
    return "\n".join([CSV_HEADER] + CSV_ROWS) + "\n"


@pytest.fixture
def csv_header():
    return CSV_HEADER


@pytest.fixture
def settings():
    """Rate 100, rounding to 30 minutes"""
    return ImportSettings(hourly_rate=100.0, rounding_interval_minutes=30)


@pytest.fixture
def make_entry():
    """Factory for entries with sensible defaults"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "id": f"entry-{counter['n']}",
            "project": "A",
            "client": "Client",
            "description": "",
            "start_date": datetime(2025, 1, 15, 9, 30),
            "time_decimal": 1.0,
            "amount": 0.0,
        }
        values.update(overrides)
        return TimeEntry(**values)

    return _make
