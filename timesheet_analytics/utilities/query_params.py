"""Translation between URL query strings and filter/settings records."""
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlencode

from timesheet_analytics.utilities import utils
from timesheet_analytics.utilities.models import DateRange, FilterOptions, ImportSettings


def _first(params: Dict[str, List[str]], key: str) -> Optional[str]:
    values = params.get(key)
    if not values or not values[0]:
        return None
    return values[0]


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item for item in value.split(",") if item]


def parse_filter_params(query: str) -> FilterOptions:
    """
    Parse 'search', 'projects', 'clients', 'startDate' and 'endDate'.

    Lists are comma-separated. Unparseable dates are dropped.
    """
    params = parse_qs(query.lstrip("?"))
    filters = FilterOptions(
        search_term=_first(params, "search"),
        projects=_split_list(_first(params, "projects")),
        clients=_split_list(_first(params, "clients")),
    )

    start = utils.parse_iso_date(_first(params, "startDate"))
    end = utils.parse_iso_date(_first(params, "endDate"))
    if start is not None or end is not None:
        filters.date_range = DateRange(start=start, end=end)

    return filters


def create_filter_query(filters: FilterOptions) -> str:
    """Serialize filters back to a query string (empty fields omitted)."""
    params: Dict[str, str] = {}
    if filters.search_term:
        params["search"] = filters.search_term
    if filters.projects:
        params["projects"] = ",".join(filters.projects)
    if filters.clients:
        params["clients"] = ",".join(filters.clients)
    if filters.date_range is not None:
        if filters.date_range.start is not None:
            params["startDate"] = filters.date_range.start.isoformat()
        if filters.date_range.end is not None:
            params["endDate"] = filters.date_range.end.isoformat()
    return urlencode(params)


def parse_settings_params(query: str, defaults: ImportSettings) -> ImportSettings:
    """
    Override default settings with 'rate' and 'interval' from the query.

    Raises:
        InvalidSettingsError: If a provided value is out of range
    """
    params = parse_qs(query.lstrip("?"))
    raw_rate = _first(params, "rate")
    raw_interval = _first(params, "interval")
    return ImportSettings(
        hourly_rate=defaults.hourly_rate if raw_rate is None else utils.validate_rate(raw_rate),
        rounding_interval_minutes=(
            defaults.rounding_interval_minutes
            if raw_interval is None
            else utils.validate_interval(raw_interval)
        ),
    )


def parse_csv_url_param(query: str) -> Optional[str]:
    """Remote CSV location passed as 'url', if any."""
    return _first(parse_qs(query.lstrip("?")), "url")
