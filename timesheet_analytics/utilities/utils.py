"""Utility functions for timesheet analytics."""
import calendar
import math
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from timesheet_analytics.utilities import config
from timesheet_analytics.utilities.errors import InvalidSettingsError
from timesheet_analytics.utilities.models import ImportSettings


def validate_interval(interval_minutes: Any) -> int:
    """
    Validate a rounding interval.

    Args:
        interval_minutes: Candidate interval in minutes

    Returns:
        The interval as an int

    Raises:
        InvalidSettingsError: If the interval is not 15, 30 or 60
    """
    try:
        interval = int(interval_minutes)
    except (TypeError, ValueError):
        raise InvalidSettingsError(f"Invalid rounding interval: {interval_minutes!r}")
    if interval not in config.VALID_ROUNDING_INTERVALS or float(interval_minutes) != interval:
        allowed = ", ".join(str(v) for v in sorted(config.VALID_ROUNDING_INTERVALS))
        raise InvalidSettingsError(
            f"Invalid rounding interval: {interval_minutes}. Use one of {allowed}"
        )
    return interval


def validate_rate(hourly_rate: Any) -> float:
    """Validate an hourly rate and return it as a float."""
    try:
        rate = float(hourly_rate)
    except (TypeError, ValueError):
        raise InvalidSettingsError(f"Invalid hourly rate: {hourly_rate!r}")
    if math.isnan(rate) or math.isinf(rate) or rate < 0:
        raise InvalidSettingsError(f"Invalid hourly rate: {hourly_rate!r}")
    return rate


def create_settings(
    hourly_rate: Optional[float] = None,
    rounding_interval_minutes: Optional[int] = None,
) -> ImportSettings:
    """
    Create validated import settings, falling back to config defaults.

    Args:
        hourly_rate: Rate applied to every entry
        rounding_interval_minutes: Rounding granularity (15, 30 or 60)

    Returns:
        ImportSettings instance
    """
    rate = config.DEFAULT_HOURLY_RATE if hourly_rate is None else hourly_rate
    interval = (
        config.DEFAULT_ROUNDING_INTERVAL
        if rounding_interval_minutes is None
        else rounding_interval_minutes
    )
    return ImportSettings(
        hourly_rate=validate_rate(rate),
        rounding_interval_minutes=validate_interval(interval),
    )


def to_float(value: Any) -> float:
    """Parse a numeric cell, returning 0.0 for blanks and garbage."""
    if value is None:
        return 0.0
    try:
        number = float(str(value).strip())
    except ValueError:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a date cell. Unparseable values yield None instead of raising.

    Dates outside the pandas Timestamp range (1677-2262) are treated as
    unparseable on every pandas version.
    """
    if value is None or str(value).strip() == "":
        return None
    parsed = pd.to_datetime(str(value).strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    if parsed < pd.Timestamp.min or parsed > pd.Timestamp.max:
        return None
    return parsed.to_pydatetime()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date or datetime string into a date, None if invalid."""
    parsed = to_datetime(value)
    if parsed is None:
        return None
    return parsed.date()


def epoch_millis(value: Optional[datetime]) -> str:
    """Epoch milliseconds of a naive (UTC) timestamp, 'NaN' if missing."""
    if value is None:
        return config.INVALID_TIMESTAMP_TEXT
    return str(calendar.timegm(value.timetuple()) * 1000 + value.microsecond // 1000)
