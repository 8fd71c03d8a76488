"""CSV reading and validation for time-tracking exports."""
import csv
import io
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd
import requests

from timesheet_analytics.utilities import config, utils
from timesheet_analytics.utilities.errors import (
    EmptyDatasetError,
    FetchError,
    MalformedFileError,
    MissingColumnsError,
)
from timesheet_analytics.utilities.models import ImportSettings, ImportStats, TimeEntry
from timesheet_analytics.transformers import rounding_service

logger = logging.getLogger(__name__)


def _text(row: Mapping[str, Any], column: str, default: str = "") -> str:
    value = row.get(column)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    text = str(value)
    return text if text else default


def parse_row(raw_row: Mapping[str, Any]) -> TimeEntry:
    """
    Convert one raw CSV record into a TimeEntry.

    Missing optional fields default to empty string, zero or False.
    Unparseable dates become None rather than raising.

    Args:
        raw_row: Mapping of column header to cell text

    Returns:
        TimeEntry with amount left at 0 (priced later by the dataset parser)
    """
    project = _text(raw_row, config.COL_PROJECT)
    start_time = _text(raw_row, config.COL_START_TIME)
    start_date = utils.to_datetime(raw_row.get(config.COL_START_DATE))

    return TimeEntry(
        id=f"{project}-{utils.epoch_millis(start_date)}-{start_time}",
        project=project,
        client=_text(raw_row, config.COL_CLIENT),
        description=_text(raw_row, config.COL_DESCRIPTION),
        task=_text(raw_row, config.COL_TASK),
        user=_text(raw_row, config.COL_USER),
        group=_text(raw_row, config.COL_GROUP),
        email=_text(raw_row, config.COL_EMAIL),
        tags=_text(raw_row, config.COL_TAGS),
        billable=_text(raw_row, config.COL_BILLABLE).strip().lower() == config.BILLABLE_TRUE_VALUE,
        start_date=start_date,
        start_time=start_time,
        end_date=utils.to_datetime(raw_row.get(config.COL_END_DATE)),
        end_time=_text(raw_row, config.COL_END_TIME),
        time_hours=_text(raw_row, config.COL_DURATION_HOURS, config.DEFAULT_DURATION_TEXT),
        time_decimal=utils.to_float(raw_row.get(config.COL_DURATION_DECIMAL)),
        billable_rate=utils.to_float(raw_row.get(config.COL_BILLABLE_RATE)),
        billable_amount=utils.to_float(raw_row.get(config.COL_BILLABLE_AMOUNT)),
        amount=0.0,
    )


def read_csv_frame(raw_text: str) -> Tuple[pd.DataFrame, int]:
    """
    Read CSV text into a frame of strings with stripped headers.

    Rows with more fields than the header cannot be mapped to columns and are
    skipped. Short rows are padded with empty cells.

    Returns:
        Tuple of (frame, number of skipped rows)

    Raises:
        MalformedFileError: If the text cannot be parsed as CSV
    """
    if raw_text is None or "\x00" in raw_text:
        raise MalformedFileError("File is not a readable CSV document")

    text = raw_text.lstrip("\ufeff")
    if not text.strip():
        raise MalformedFileError("CSV file is empty")

    try:
        rows = [row for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error as exc:
        raise MalformedFileError(f"File could not be parsed as CSV: {exc}") from exc

    header = [column.strip() for column in rows[0]]
    width = len(header)
    records: List[List[str]] = []
    skipped = 0
    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) > width:
            skipped += 1
            logger.warning("Skipping row %d: expected %d fields, saw %d", line_number, width, len(row))
            continue
        records.append(row + [""] * (width - len(row)))

    return pd.DataFrame(records, columns=header, dtype=str), skipped


def check_required_columns(columns: List[str]) -> None:
    """Raise MissingColumnsError naming every required column not present."""
    present = set(columns)
    missing = [column for column in config.REQUIRED_COLUMNS if column not in present]
    if missing:
        raise MissingColumnsError(missing)


def parse_dataset_with_stats(
    raw_text: str,
    settings: ImportSettings,
) -> Tuple[List[TimeEntry], ImportStats]:
    """
    Parse a full CSV document into priced, rounded entries.

    Rows with an absent or non-positive decimal duration are dropped silently.
    Later rows whose id repeats an earlier one get a '#n' occurrence suffix.

    Args:
        raw_text: CSV document text
        settings: Hourly rate and rounding interval

    Returns:
        Tuple of (entries in input order, import statistics)
    """
    rate = utils.validate_rate(settings.hourly_rate)
    interval = utils.validate_interval(settings.rounding_interval_minutes)

    frame, skipped = read_csv_frame(raw_text)
    check_required_columns(list(frame.columns))

    stats = ImportStats(rows_read=len(frame) + skipped, rows_dropped=skipped)
    entries: List[TimeEntry] = []
    seen_ids: Dict[str, int] = {}

    for index, row in enumerate(frame.to_dict(orient="records")):
        if utils.to_float(row.get(config.COL_DURATION_DECIMAL)) <= 0:
            stats.rows_dropped += 1
            logger.debug("Dropping record %d: no positive decimal duration", index + 1)
            continue

        entry = parse_row(row)
        hours = rounding_service.round_time(entry.time_decimal, interval)

        occurrence = seen_ids.get(entry.id, 0) + 1
        seen_ids[entry.id] = occurrence
        entry_id = entry.id
        if occurrence > 1:
            entry_id = f"{entry.id}#{occurrence}"
            stats.duplicate_ids += 1

        entries.append(replace(entry, id=entry_id, time_decimal=hours, amount=hours * rate))

    stats.entries_imported = len(entries)
    if not entries:
        raise EmptyDatasetError()

    if stats.duplicate_ids:
        logger.warning("%d rows shared an id with an earlier row and were suffixed", stats.duplicate_ids)
    logger.info(
        "Parsed %d entries from %d rows (%d dropped)",
        stats.entries_imported,
        stats.rows_read,
        stats.rows_dropped,
    )
    return entries, stats


def parse_dataset(raw_text: str, settings: ImportSettings) -> List[TimeEntry]:
    """Parse a CSV document into entries. See parse_dataset_with_stats."""
    entries, _ = parse_dataset_with_stats(raw_text, settings)
    return entries


def read_csv_file(file_path: str | Path) -> str:
    """
    Read a local CSV file as text.

    Raises:
        MalformedFileError: Wrong extension, unreadable or undecodable file
    """
    path = Path(file_path)
    if path.suffix.lower() != ".csv":
        raise MalformedFileError(f"Please upload a CSV file (got {path.name})")

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise MalformedFileError(f"File {path} could not be opened: {exc}") from exc

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedFileError(f"File {path} is not a text CSV file: {exc}") from exc


def load_csv_file(
    file_path: str | Path,
    settings: ImportSettings,
) -> Tuple[List[TimeEntry], ImportStats]:
    """Read and parse a local CSV export."""
    logger.info("Loading time entries from file %s", file_path)
    return parse_dataset_with_stats(read_csv_file(file_path), settings)


def fetch_csv_text(url: str, timeout: Optional[float] = None) -> str:
    """
    Fetch a remote CSV document.

    Args:
        url: Remote CSV location
        timeout: Request timeout in seconds (config default if not provided)

    Returns:
        Response body as text

    Raises:
        FetchError: Network failure, non-2xx status or non-text response
    """
    try:
        response = requests.get(url, timeout=timeout or config.FETCH_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc

    content_type = response.headers.get("Content-Type", "").lower()
    if content_type and not content_type.startswith(config.TEXT_CONTENT_TYPES):
        raise FetchError(f"URL {url} did not return CSV text (Content-Type: {content_type})")

    return response.text


def load_csv_url(
    url: str,
    settings: ImportSettings,
    timeout: Optional[float] = None,
) -> Tuple[List[TimeEntry], ImportStats]:
    """Fetch and parse a remote CSV export."""
    logger.info("Fetching time entries from %s", url)
    return parse_dataset_with_stats(fetch_csv_text(url, timeout), settings)
