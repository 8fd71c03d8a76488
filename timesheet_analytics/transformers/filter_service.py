"""Filtering of time entries by search term, project, client and date range."""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from timesheet_analytics.utilities import config
from timesheet_analytics.utilities.models import (
    DateRange,
    DateRangePolicy,
    FilterOptions,
    TimeEntry,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[TimeEntry], bool]


def _search_predicate(term: str) -> Predicate:
    needle = term.lower()

    def matches(entry: TimeEntry) -> bool:
        fields = (entry.project, entry.client, entry.description, entry.user)
        return any(needle in value.lower() for value in fields if value)

    return matches


def _as_day(value: Optional[date]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _date_predicate(
    date_range: Optional[DateRange],
    policy: DateRangePolicy,
) -> Optional[Predicate]:
    """
    Build the date-range predicate, or None when no date filter applies.

    Comparison happens at day granularity, both bounds inclusive. Under the
    STRICT policy a range missing either bound is ignored entirely; under
    INDEPENDENT each present bound constrains its own side.
    """
    if date_range is None:
        return None

    start = _as_day(date_range.start)
    end = _as_day(date_range.end)
    if start is None and end is None:
        return None
    if policy == DateRangePolicy.STRICT and (start is None or end is None):
        return None

    def matches(entry: TimeEntry) -> bool:
        day = entry.day
        if day is None:
            return False
        if start is not None and day < start:
            return False
        if end is not None and day > end:
            return False
        return True

    return matches


def build_predicates(
    filters: FilterOptions,
    date_policy: DateRangePolicy = config.DEFAULT_DATE_RANGE_POLICY,
) -> List[Predicate]:
    """Active predicates for a filter specification (empty list = no filter)."""
    predicates: List[Predicate] = []

    if filters.search_term:
        predicates.append(_search_predicate(filters.search_term))

    if filters.projects:
        projects = set(filters.projects)
        predicates.append(lambda entry: entry.project in projects)

    if filters.clients:
        clients = set(filters.clients)
        predicates.append(lambda entry: entry.client in clients)

    date_predicate = _date_predicate(filters.date_range, date_policy)
    if date_predicate is not None:
        predicates.append(date_predicate)

    return predicates


def filter_entries(
    entries: Sequence[TimeEntry],
    filters: Optional[FilterOptions] = None,
    date_policy: DateRangePolicy = config.DEFAULT_DATE_RANGE_POLICY,
) -> List[TimeEntry]:
    """
    Select the entries matching every active filter.

    The result is a new list holding the same entry objects in their original
    relative order. The input is never modified.

    Args:
        entries: Entries to filter
        filters: Filter specification (None or empty = keep everything)
        date_policy: How single-bound date ranges are applied

    Returns:
        Matching entries
    """
    predicates = build_predicates(filters or FilterOptions(), date_policy)
    if not predicates:
        return list(entries)

    result = [entry for entry in entries if all(check(entry) for check in predicates)]
    logger.debug("Filter kept %d of %d entries", len(result), len(entries))
    return result


def available_projects(entries: Sequence[TimeEntry]) -> List[str]:
    """Sorted distinct project names."""
    return sorted({entry.project for entry in entries})


def available_clients(entries: Sequence[TimeEntry]) -> List[str]:
    """Sorted distinct client names."""
    return sorted({entry.client for entry in entries})


def entries_for_client(entries: Sequence[TimeEntry], client: str) -> List[TimeEntry]:
    return [entry for entry in entries if entry.client == client]
