"""Export of time entries, summaries and invoices to files."""
import json
import logging
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from timesheet_analytics.utilities import config, utils
from timesheet_analytics.utilities.models import Invoice, TimeEntry
from timesheet_analytics.transformers import aggregator, filter_service

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("start_date", "end_date")


def entries_to_records(entries: Sequence[TimeEntry]) -> List[Dict[str, Any]]:
    """Flat records (project, client, description, hours, amount, date, tags)."""
    return [entry.to_record() for entry in entries]


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    if value.hour == value.minute == value.second == 0 and value.microsecond == 0:
        return value.strftime("%Y-%m-%d")
    return value.strftime("%Y-%m-%d %H:%M:%S")


def entries_to_frame(entries: Sequence[TimeEntry]) -> pd.DataFrame:
    """
    Build a frame in the import column layout.

    Args:
        entries: Entries to export

    Returns:
        DataFrame with config.EXPORT_COLUMNS, one row per entry
    """
    rows = [
        {
            config.COL_PROJECT: entry.project,
            config.COL_CLIENT: entry.client,
            config.COL_DESCRIPTION: entry.description,
            config.COL_TASK: entry.task,
            config.COL_USER: entry.user,
            config.COL_GROUP: entry.group,
            config.COL_EMAIL: entry.email,
            config.COL_TAGS: entry.tags,
            config.COL_BILLABLE: "Yes" if entry.billable else "No",
            config.COL_START_DATE: _format_timestamp(entry.start_date),
            config.COL_START_TIME: entry.start_time,
            config.COL_END_DATE: _format_timestamp(entry.end_date),
            config.COL_END_TIME: entry.end_time,
            config.COL_DURATION_HOURS: entry.time_hours,
            config.COL_DURATION_DECIMAL: entry.time_decimal,
            config.COL_BILLABLE_RATE: entry.billable_rate,
            config.COL_BILLABLE_AMOUNT: entry.billable_amount,
        }
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=config.EXPORT_COLUMNS)


def export_entries_csv(entries: Sequence[TimeEntry], path: str | Path) -> Path:
    """Write entries as a CSV that the dataset parser can import again."""
    target = Path(path)
    entries_to_frame(entries).to_csv(target, index=False, encoding="utf-8")
    logger.info("Exported %d entries to %s", len(entries), target)
    return target


def entry_to_payload(entry: TimeEntry) -> Dict[str, Any]:
    """JSON-safe dict of every entry field (ISO timestamps, None if invalid)."""
    payload = asdict(entry)
    for name in _DATETIME_FIELDS:
        value = payload[name]
        payload[name] = value.isoformat() if value is not None else None
    return payload


def entry_from_payload(payload: Dict[str, Any]) -> TimeEntry:
    """Rebuild an entry from entry_to_payload output. Unknown keys are ignored."""
    known = {f.name for f in fields(TimeEntry)}
    data = {key: value for key, value in payload.items() if key in known}
    for name in _DATETIME_FIELDS:
        data[name] = utils.to_datetime(data.get(name))
    return TimeEntry(**data)


def export_entries_json(entries: Sequence[TimeEntry], path: str | Path) -> Path:
    target = Path(path)
    with target.open("w", encoding="utf-8") as handle:
        json.dump([entry_to_payload(entry) for entry in entries], handle, indent=2)
    logger.info("Exported %d entries as JSON to %s", len(entries), target)
    return target


def build_summary_document(entries: Sequence[TimeEntry]) -> Dict[str, Any]:
    """Summary export: counts, totals, distinct names and breakdowns."""
    summary = aggregator.summarize(entries)
    return {
        "exportDate": datetime.now().isoformat(timespec="seconds"),
        "totalEntries": summary.entry_count,
        "totalHours": summary.total_hours,
        "totalAmount": summary.total_amount,
        "billableHours": summary.billable_hours,
        "projects": filter_service.available_projects(entries),
        "clients": filter_service.available_clients(entries),
        "projectBreakdown": {
            name: asdict(item) for name, item in summary.project_breakdown.items()
        },
        "clientBreakdown": {
            name: asdict(item) for name, item in summary.client_breakdown.items()
        },
    }


def export_summary_json(entries: Sequence[TimeEntry], path: str | Path) -> Path:
    target = Path(path)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(build_summary_document(entries), handle, indent=2)
    logger.info("Exported summary of %d entries to %s", len(entries), target)
    return target


def export_invoice_text(invoice: Invoice, path: str | Path) -> Path:
    target = Path(path)
    target.write_text(aggregator.render_invoice_text(invoice), encoding="utf-8")
    logger.info("Wrote invoice %s to %s", invoice.invoice_number, target)
    return target
