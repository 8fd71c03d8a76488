"""Time rounding and amount recalculation for imported entries."""
import logging
import math
from dataclasses import replace
from typing import List, Sequence

from timesheet_analytics.utilities import utils
from timesheet_analytics.utilities.models import RoundingPreview, TimeEntry

logger = logging.getLogger(__name__)


def round_time(hours: float, interval_minutes: int) -> float:
    """
    Round a duration up to the next multiple of the interval.

    This is a ceiling policy: a 1-minute entry bills a full interval.

    Args:
        hours: Duration in fractional hours (must be >= 0)
        interval_minutes: Rounding interval (15, 30 or 60)

    Returns:
        Rounded duration in fractional hours
    """
    interval = utils.validate_interval(interval_minutes)
    if hours < 0:
        raise ValueError(f"Cannot round a negative duration: {hours}")
    fraction = interval / 60
    return math.ceil(hours / fraction) * fraction


def apply_rounding(
    entries: Sequence[TimeEntry],
    interval_minutes: int,
    hourly_rate: float,
) -> List[TimeEntry]:
    """
    Round every entry's duration and recompute its amount.

    Args:
        entries: Entries to round (left untouched)
        interval_minutes: Rounding interval (15, 30 or 60)
        hourly_rate: Rate used for the new amounts

    Returns:
        New list of rounded entries
    """
    rate = utils.validate_rate(hourly_rate)
    rounded: List[TimeEntry] = []
    for entry in entries:
        hours = round_time(entry.time_decimal, interval_minutes)
        rounded.append(replace(entry, time_decimal=hours, amount=hours * rate))

    logger.debug(
        "Rounded %d entries to %d-minute interval at rate %.2f",
        len(rounded),
        interval_minutes,
        rate,
    )
    return rounded


def recalculate_amounts(entries: Sequence[TimeEntry], hourly_rate: float) -> List[TimeEntry]:
    """Recompute amount = time_decimal * hourly_rate, durations unchanged."""
    rate = utils.validate_rate(hourly_rate)
    return [replace(entry, amount=entry.time_decimal * rate) for entry in entries]


def preview_rounding(entries: Sequence[TimeEntry], interval_minutes: int) -> RoundingPreview:
    """Total hours before and after rounding, without touching the entries."""
    original = sum(entry.time_decimal for entry in entries)
    rounded = sum(round_time(entry.time_decimal, interval_minutes) for entry in entries)
    return RoundingPreview(
        original_hours=original,
        rounded_hours=rounded,
        difference=rounded - original,
    )
