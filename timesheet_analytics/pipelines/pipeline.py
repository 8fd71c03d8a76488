"""Main orchestration pipeline for timesheet analytics."""
import logging
import re
import time
from pathlib import Path
from typing import List, Optional, Tuple

from timesheet_analytics.utilities import config, utils
from timesheet_analytics.utilities.models import (
    DateRangePolicy,
    FilterOptions,
    ImportSettings,
    ImportStats,
    PipelineResult,
    Summary,
    TimeEntry,
)
from timesheet_analytics.extractors import csv_reader
from timesheet_analytics.loaders import exporter, snapshot_store
from timesheet_analytics.transformers import aggregator, filter_service, rounding_service

logger = logging.getLogger(__name__)


def import_entries(
    settings: ImportSettings,
    file_path: Optional[str | Path] = None,
    url: Optional[str] = None,
) -> Tuple[List[TimeEntry], ImportStats]:
    """
    Import entries from a local file or a remote URL.

    A new import replaces the working set entirely.

    Args:
        settings: Hourly rate and rounding interval applied at import
        file_path: Local CSV export
        url: Remote CSV export (used when no file is given)

    Returns:
        Tuple of (entries, import statistics)
    """
    if file_path is not None:
        return csv_reader.load_csv_file(file_path, settings)
    if url:
        return csv_reader.load_csv_url(url, settings)
    raise ValueError("Either a file path or a URL is required to import entries")


def log_summary(summary: Summary) -> None:
    logger.info(
        "Summary - Entries: %d | Hours: %.2f (billable %.2f) | Amount: %.2f | "
        "Projects: %d | Clients: %d | Avg rate: %.2f",
        summary.entry_count,
        summary.total_hours,
        summary.billable_hours,
        summary.total_amount,
        summary.unique_projects,
        summary.unique_clients,
        summary.avg_hourly_rate,
    )
    for project, item in summary.project_breakdown.items():
        logger.info(
            "  %-30s %8.2f h %10.2f (%d entries)",
            project or "(no project)",
            item.hours,
            item.amount,
            item.entry_count,
        )


def _file_token(text: str, fallback: str) -> str:
    """Reduce free text to a single safe file-name component."""
    token = re.sub(r"[^A-Za-z0-9._-]+", "-", text).strip("-.")
    return token or fallback


def export_results(
    result: PipelineResult,
    output_dir: str | Path,
    export_formats: List[str],
) -> None:
    """Write the filtered entries in each requested format ('csv', 'json', 'summary')."""
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = time.strftime("%Y-%m-%d")

    for fmt in export_formats:
        if fmt == "csv":
            path = exporter.export_entries_csv(result.filtered, target_dir / f"timesheet-export-{stamp}.csv")
        elif fmt == "json":
            path = exporter.export_entries_json(result.filtered, target_dir / f"timesheet-export-{stamp}.json")
        elif fmt == "summary":
            path = exporter.export_summary_json(result.filtered, target_dir / f"timesheet-summary-{stamp}.json")
        else:
            raise ValueError(f"Unknown export format: {fmt}")
        result.exported_files.append(str(path))

    if result.invoice is not None:
        invoice = result.invoice
        number = _file_token(invoice.invoice_number, "invoice")
        client = _file_token(invoice.client, "client")
        path = exporter.export_invoice_text(invoice, target_dir / f"invoice-{number}-{client}.txt")
        result.exported_files.append(str(path))


def run_full_pipeline(
    file_path: Optional[str | Path] = None,
    url: Optional[str] = None,
    snapshot_id: Optional[str] = None,
    hourly_rate: Optional[float] = None,
    rounding_interval: Optional[int] = None,
    recalculate_rate: Optional[float] = None,
    reround_interval: Optional[int] = None,
    filters: Optional[FilterOptions] = None,
    date_policy: DateRangePolicy = config.DEFAULT_DATE_RANGE_POLICY,
    invoice_client: Optional[str] = None,
    invoice_rate: Optional[float] = None,
    invoice_number: str = config.DEFAULT_INVOICE_NUMBER,
    output_dir: Optional[str | Path] = None,
    export_formats: Optional[List[str]] = None,
    save_snapshot: bool = False,
    snapshot_title: Optional[str] = None,
    db_url: Optional[str] = None,
) -> PipelineResult:
    """
    Run the complete import -> adjust -> filter -> aggregate pipeline.

    Args:
        file_path: Local CSV export to import
        url: Remote CSV export to import
        snapshot_id: Load this saved snapshot instead of importing
        hourly_rate: Import rate (config default if not provided)
        rounding_interval: Import rounding interval (config default if not provided)
        recalculate_rate: If set, recompute amounts at this rate after import
        reround_interval: If set, round entries again to this interval
        filters: Filters applied before aggregation (snapshot filters if omitted)
        date_policy: How single-bound date ranges are applied
        invoice_client: Build an invoice for this client from the filtered entries
        invoice_rate: Invoice rate (import rate if not provided)
        invoice_number: Invoice identifier
        output_dir: Directory for exported files
        export_formats: Any of 'csv', 'json', 'summary'
        save_snapshot: If True, persist the resulting state for sharing
        snapshot_title: Title of the saved snapshot
        db_url: Snapshot database URL (config default if not provided)

    Returns:
        PipelineResult with entries, filtered view, summary and artifacts
    """
    logger.info("=" * 70)
    logger.info("STARTING TIMESHEET ANALYTICS PIPELINE")
    logger.info("=" * 70)
    start_time = time.time()

    result = PipelineResult()
    engine = None

    if snapshot_id:
        engine = snapshot_store.create_db_engine(db_url)
        snapshot_store.ensure_snapshot_table(engine)
        snapshot = snapshot_store.load_snapshot(engine, snapshot_id)
        settings = utils.create_settings(
            snapshot.default_hourly_rate if hourly_rate is None else hourly_rate,
            snapshot.default_rounding_interval if rounding_interval is None else rounding_interval,
        )
        entries = snapshot.time_entries
        if filters is None:
            filters = snapshot.current_filters
        logger.info("✓ Loaded snapshot %s (%s) with %d entries", snapshot_id, snapshot.title, len(entries))
    else:
        settings = utils.create_settings(hourly_rate, rounding_interval)
        logger.info(
            "Import settings: rate %.2f, rounding %d minutes",
            settings.hourly_rate,
            settings.rounding_interval_minutes,
        )
        entries, result.import_stats = import_entries(settings, file_path=file_path, url=url)
        logger.info("✓ Imported %d time entries", len(entries))

    if reround_interval is not None:
        preview = rounding_service.preview_rounding(entries, reround_interval)
        logger.info(
            "Rounding to %d minutes adds %+.2f h (%.2f -> %.2f)",
            reround_interval,
            preview.difference,
            preview.original_hours,
            preview.rounded_hours,
        )
        entries = rounding_service.apply_rounding(entries, reround_interval, settings.hourly_rate)
        settings = ImportSettings(
            hourly_rate=settings.hourly_rate,
            rounding_interval_minutes=utils.validate_interval(reround_interval),
        )

    if recalculate_rate is not None:
        entries = rounding_service.recalculate_amounts(entries, recalculate_rate)
        settings = ImportSettings(
            hourly_rate=utils.validate_rate(recalculate_rate),
            rounding_interval_minutes=settings.rounding_interval_minutes,
        )
        logger.info("Recalculated amounts at rate %.2f", settings.hourly_rate)

    result.entries = entries
    result.filtered = filter_service.filter_entries(entries, filters, date_policy)
    logger.info("%d entries loaded • %d shown after filters", len(entries), len(result.filtered))

    result.summary = aggregator.summarize(result.filtered)
    log_summary(result.summary)

    if invoice_client is not None:
        result.invoice = aggregator.build_invoice(
            result.filtered,
            invoice_client,
            settings.hourly_rate if invoice_rate is None else invoice_rate,
            invoice_number=invoice_number,
        )

    if output_dir is not None:
        export_results(result, output_dir, export_formats or [])
        logger.info("✓ Wrote %d file(s) to %s", len(result.exported_files), output_dir)

    if save_snapshot:
        if engine is None:
            engine = snapshot_store.create_db_engine(db_url)
            snapshot_store.ensure_snapshot_table(engine)
        snapshot = snapshot_store.create_snapshot(
            entries,
            settings,
            filters=filters,
            title=snapshot_title,
            active_view="invoice" if result.invoice is not None else "dashboard",
        )
        result.snapshot_id = snapshot_store.save_snapshot(engine, snapshot)
        result.share_url = snapshot_store.shareable_url(result.snapshot_id)
        logger.info("✓ Snapshot saved: %s", result.share_url)

    elapsed_time = time.time() - start_time
    logger.info("=" * 70)
    logger.info("PIPELINE COMPLETE - Total time: %.2f seconds", elapsed_time)
    logger.info("=" * 70)
    return result
