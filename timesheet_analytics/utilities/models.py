"""Data models for timesheet analytics."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class DateRangePolicy(str, Enum):
    """How a date range with a single bound is applied."""
    INDEPENDENT = "independent"
    STRICT = "strict"


@dataclass(frozen=True)
class TimeEntry:
    """One row of tracked time. Never mutated; transforms build new entries."""
    id: str
    project: str = ""
    client: str = ""
    description: str = ""
    task: str = ""
    user: str = ""
    group: str = ""
    email: str = ""
    tags: str = ""
    billable: bool = False
    start_date: Optional[datetime] = None
    start_time: str = ""
    end_date: Optional[datetime] = None
    end_time: str = ""
    time_hours: str = "0:00:00"
    time_decimal: float = 0.0
    billable_rate: float = 0.0
    billable_amount: float = 0.0
    amount: float = 0.0

    @property
    def day(self) -> Optional[date]:
        """Start date at day granularity, None when the date was invalid."""
        if self.start_date is None:
            return None
        return self.start_date.date()

    def to_record(self) -> Dict[str, Any]:
        """Flat record consumed directly by CSV/JSON serializers."""
        return {
            "project": self.project,
            "client": self.client,
            "description": self.description,
            "hours": self.time_decimal,
            "amount": self.amount,
            "date": self.day.isoformat() if self.day else "",
            "tags": self.tags,
        }


@dataclass
class DateRange:
    """Inclusive day range; a missing bound is unconstrained."""
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass
class FilterOptions:
    """Filter specification. Absent fields impose no constraint."""
    search_term: Optional[str] = None
    projects: List[str] = field(default_factory=list)
    clients: List[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None

    def is_empty(self) -> bool:
        has_dates = self.date_range is not None and (
            self.date_range.start is not None or self.date_range.end is not None
        )
        return not (self.search_term or self.projects or self.clients or has_dates)


@dataclass
class ImportSettings:
    """Billing settings applied at import and recalculation time."""
    hourly_rate: float
    rounding_interval_minutes: int


@dataclass
class BreakdownItem:
    hours: float = 0.0
    amount: float = 0.0
    entry_count: int = 0


@dataclass
class Summary:
    """Aggregate statistics over a set of entries."""
    total_hours: float = 0.0
    total_amount: float = 0.0
    billable_hours: float = 0.0
    unique_projects: int = 0
    unique_clients: int = 0
    entry_count: int = 0
    avg_hourly_rate: float = 0.0
    project_breakdown: Dict[str, BreakdownItem] = field(default_factory=dict)
    client_breakdown: Dict[str, BreakdownItem] = field(default_factory=dict)


@dataclass
class InvoiceGroup:
    """Entries of one project on an invoice, priced at the invoice rate."""
    project: str
    entries: List[TimeEntry] = field(default_factory=list)
    total_hours: float = 0.0
    total_amount: float = 0.0


@dataclass
class Invoice:
    client: str
    invoice_number: str
    hourly_rate: float
    issued_on: date
    groups: List[InvoiceGroup] = field(default_factory=list)
    total_hours: float = 0.0
    total_amount: float = 0.0


@dataclass
class RoundingPreview:
    """Effect of a rounding interval before it is applied."""
    original_hours: float = 0.0
    rounded_hours: float = 0.0
    difference: float = 0.0


@dataclass
class ImportStats:
    """Statistics from a dataset import."""
    rows_read: int = 0
    rows_dropped: int = 0
    entries_imported: int = 0
    duplicate_ids: int = 0


@dataclass
class Snapshot:
    """Serializable bundle of entries, settings and view state."""
    time_entries: List[TimeEntry]
    default_hourly_rate: float
    default_rounding_interval: int
    title: str = ""
    description: str = ""
    current_filters: Optional[FilterOptions] = None
    active_view: str = "dashboard"
    invoice_state: Optional[Dict[str, Any]] = None
    ui_state: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""
    entries: List[TimeEntry] = field(default_factory=list)
    filtered: List[TimeEntry] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    import_stats: Optional[ImportStats] = None
    invoice: Optional[Invoice] = None
    snapshot_id: Optional[str] = None
    share_url: Optional[str] = None
    exported_files: List[str] = field(default_factory=list)
