"""Snapshot persistence for link-sharing of entries, settings and filters."""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence
from urllib.parse import parse_qs, urlencode

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from timesheet_analytics.utilities import config, utils
from timesheet_analytics.utilities.errors import SnapshotNotFoundError, SnapshotStoreError
from timesheet_analytics.utilities.models import (
    DateRange,
    FilterOptions,
    ImportSettings,
    Snapshot,
    TimeEntry,
)
from timesheet_analytics.loaders import exporter

logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    if "@" in url and "://" in url:
        scheme, rest = url.split("://", 1)
        if "@" in rest:
            return f"{scheme}://***:***@{rest.split('@', 1)[1]}"
    return url


def create_db_engine(db_url: Optional[str] = None) -> Engine:
    """
    Create and return a database engine for the snapshot store.

    Args:
        db_url: Database URL (uses config default if not provided)

    Returns:
        SQLAlchemy Engine instance

    Raises:
        SnapshotStoreError: If connection fails
    """
    url = db_url or config.DB_URL
    masked_url = _mask_url(url)

    try:
        logger.debug("Creating database engine: %s", masked_url)
        engine = create_engine(url, pool_pre_ping=True, future=True)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        logger.debug("✓ Database connection test successful")
        return engine
    except SQLAlchemyError as exc:
        logger.error("✗ Database connection failed to %s", masked_url)
        raise SnapshotStoreError(
            f"Failed to connect to snapshot database: {type(exc).__name__} - {exc}"
        ) from exc


def ensure_snapshot_table(engine: Engine, table_name: str = config.SNAPSHOT_TABLE) -> None:
    """Create the snapshot table if it does not exist yet."""
    ddl = text(
        f"""
        CREATE TABLE IF NOT EXISTS {table_name} (
            id VARCHAR(64) PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            description TEXT,
            data TEXT NOT NULL,
            created_at VARCHAR(40) NOT NULL
        )
        """
    )
    try:
        with engine.begin() as conn:
            conn.execute(ddl)
    except SQLAlchemyError as exc:
        raise SnapshotStoreError(f"Could not create table {table_name}: {exc}") from exc


# ============================================================================
# SERIALIZATION
# ============================================================================


def filters_to_payload(filters: Optional[FilterOptions]) -> Optional[Dict[str, Any]]:
    if filters is None:
        return None
    payload: Dict[str, Any] = {
        "searchTerm": filters.search_term,
        "projects": list(filters.projects),
        "clients": list(filters.clients),
        "dateRange": None,
    }
    if filters.date_range is not None:
        start, end = filters.date_range.start, filters.date_range.end
        payload["dateRange"] = {
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
        }
    return payload


def filters_from_payload(payload: Optional[Dict[str, Any]]) -> Optional[FilterOptions]:
    if payload is None:
        return None
    date_range = None
    raw_range = payload.get("dateRange")
    if raw_range:
        date_range = DateRange(
            start=utils.parse_iso_date(raw_range.get("start")),
            end=utils.parse_iso_date(raw_range.get("end")),
        )
    return FilterOptions(
        search_term=payload.get("searchTerm") or None,
        projects=list(payload.get("projects") or []),
        clients=list(payload.get("clients") or []),
        date_range=date_range,
    )


def snapshot_to_payload(snapshot: Snapshot) -> Dict[str, Any]:
    """JSON-safe representation of the shareable part of a snapshot."""
    return {
        "title": snapshot.title,
        "description": snapshot.description,
        "timeEntries": [exporter.entry_to_payload(entry) for entry in snapshot.time_entries],
        "defaultHourlyRate": snapshot.default_hourly_rate,
        "defaultRoundingInterval": snapshot.default_rounding_interval,
        "currentFilters": filters_to_payload(snapshot.current_filters),
        "activeView": snapshot.active_view,
        "invoiceState": snapshot.invoice_state,
        "uiState": dict(snapshot.ui_state),
    }


def snapshot_from_payload(
    payload: Dict[str, Any],
    snapshot_id: Optional[str] = None,
    created_at: Optional[str] = None,
) -> Snapshot:
    return Snapshot(
        time_entries=[exporter.entry_from_payload(item) for item in payload.get("timeEntries", [])],
        default_hourly_rate=utils.validate_rate(payload.get("defaultHourlyRate", config.DEFAULT_HOURLY_RATE)),
        default_rounding_interval=utils.validate_interval(
            payload.get("defaultRoundingInterval", config.DEFAULT_ROUNDING_INTERVAL)
        ),
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        current_filters=filters_from_payload(payload.get("currentFilters")),
        active_view=payload.get("activeView") or "dashboard",
        invoice_state=payload.get("invoiceState"),
        ui_state=dict(payload.get("uiState") or {}),
        id=snapshot_id,
        created_at=created_at,
    )


# ============================================================================
# SNAPSHOT OPERATIONS
# ============================================================================


def create_snapshot(
    entries: Sequence[TimeEntry],
    settings: ImportSettings,
    filters: Optional[FilterOptions] = None,
    title: Optional[str] = None,
    description: str = "",
    active_view: str = "dashboard",
    invoice_state: Optional[Dict[str, Any]] = None,
    ui_state: Optional[Dict[str, Any]] = None,
) -> Snapshot:
    """
    Bundle the current state into an unsaved snapshot.

    Args:
        entries: Working entry set
        settings: Default hourly rate and rounding interval
        filters: Active filters, if any
        title: Snapshot title (dated default if not provided)
        description: Free-text description
        active_view: View to reopen ('dashboard', 'analytics' or 'invoice')
        invoice_state: Invoice form values (client, rate, number, company)
        ui_state: Presentation preferences such as dark mode

    Returns:
        Snapshot without id
    """
    return Snapshot(
        time_entries=list(entries),
        default_hourly_rate=settings.hourly_rate,
        default_rounding_interval=settings.rounding_interval_minutes,
        title=title or f"Snapshot {datetime.now().strftime('%Y-%m-%d')}",
        description=description,
        current_filters=filters,
        active_view=active_view,
        invoice_state=invoice_state,
        ui_state=dict(ui_state or {}),
    )


def save_snapshot(
    engine: Engine,
    snapshot: Snapshot,
    table_name: str = config.SNAPSHOT_TABLE,
) -> str:
    """
    Persist a snapshot and return its new id.

    Raises:
        SnapshotStoreError: If the snapshot could not be written
    """
    snapshot_id = uuid.uuid4().hex
    created_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    insert_stmt = text(
        f"""
        INSERT INTO {table_name} (id, title, description, data, created_at)
        VALUES (:id, :title, :description, :data, :created_at)
        """
    )
    params = {
        "id": snapshot_id,
        "title": snapshot.title or config.DEFAULT_SNAPSHOT_TITLE,
        "description": snapshot.description or "",
        "data": json.dumps(snapshot_to_payload(snapshot)),
        "created_at": created_at,
    }

    try:
        with engine.begin() as conn:
            conn.execute(insert_stmt, params)
    except SQLAlchemyError as exc:
        logger.error("Error saving snapshot: %s", exc)
        raise SnapshotStoreError(f"Failed to save snapshot: {exc}") from exc

    logger.info("Saved snapshot %s with %d entries", snapshot_id, len(snapshot.time_entries))
    return snapshot_id


def load_snapshot(
    engine: Engine,
    snapshot_id: str,
    table_name: str = config.SNAPSHOT_TABLE,
) -> Snapshot:
    """
    Load a snapshot by id.

    Raises:
        SnapshotNotFoundError: If no snapshot has this id
        SnapshotStoreError: If the store could not be read or the data is corrupt
    """
    query = text(f"SELECT id, data, created_at FROM {table_name} WHERE id = :id")
    try:
        with engine.connect() as conn:
            row = conn.execute(query, {"id": snapshot_id}).mappings().first()
    except SQLAlchemyError as exc:
        logger.error("Error loading snapshot %s: %s", snapshot_id, exc)
        raise SnapshotStoreError(f"Failed to load snapshot: {exc}") from exc

    if row is None:
        raise SnapshotNotFoundError(snapshot_id)

    try:
        payload = json.loads(row["data"])
    except ValueError as exc:
        raise SnapshotStoreError(f"Snapshot {snapshot_id} holds unreadable data") from exc

    return snapshot_from_payload(payload, snapshot_id=row["id"], created_at=row["created_at"])


def shareable_url(snapshot_id: str, base_url: Optional[str] = None) -> str:
    base = (base_url or config.SHARE_BASE_URL).rstrip("/")
    return f"{base}/?{urlencode({'snapshot': snapshot_id})}"


def snapshot_id_from_query(query: str) -> Optional[str]:
    """Snapshot id from a URL query string, None if absent."""
    values = parse_qs(query.lstrip("?")).get("snapshot")
    return values[0] if values else None
