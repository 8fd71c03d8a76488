"""Main entry point for timesheet analytics."""
import argparse
import logging
from typing import List, Optional
from urllib.parse import urlsplit

from timesheet_analytics.loaders import snapshot_store
from timesheet_analytics.pipelines import pipeline
from timesheet_analytics.utilities import config, query_params, utils
from timesheet_analytics.utilities.errors import TimesheetError
from timesheet_analytics.utilities.models import (
    DateRange,
    DateRangePolicy,
    FilterOptions,
    ImportSettings,
)

logger = logging.getLogger(__name__)


def parse_date(date_str: str):
    """Parse date string in YYYY-MM-DD format."""
    parsed = utils.parse_iso_date(date_str)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD")
    return parsed


def parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def build_filters(args: argparse.Namespace) -> Optional[FilterOptions]:
    filters = FilterOptions(
        search_term=args.search or None,
        projects=args.projects or [],
        clients=args.clients or [],
    )
    if args.start_date or args.end_date:
        filters.date_range = DateRange(start=args.start_date, end=args.end_date)
    if filters.is_empty() and args.query:
        filters = query_params.parse_filter_params(query_string(args.query))
    return None if filters.is_empty() else filters


def query_string(value: str) -> str:
    """Accept a bare query string or a full share link."""
    return urlsplit(value).query if "?" in value else value


def source_from_query(args: argparse.Namespace) -> None:
    """Take the snapshot id or CSV url from --query when no source flag was given."""
    if args.file or args.url or args.snapshot or not args.query:
        return
    query = query_string(args.query)
    args.snapshot = snapshot_store.snapshot_id_from_query(query)
    if args.snapshot is None:
        args.url = query_params.parse_csv_url_param(query)


def settings_from_query(args: argparse.Namespace) -> None:
    """
    Fill --rate and --interval from --query where they were not given.

    Raises:
        InvalidSettingsError: If the query carries an out-of-range value
    """
    if not args.query:
        return
    unset = ImportSettings(hourly_rate=None, rounding_interval_minutes=None)
    settings = query_params.parse_settings_params(query_string(args.query), unset)
    if args.rate is None:
        args.rate = settings.hourly_rate
    if args.interval is None:
        args.interval = settings.rounding_interval_minutes


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Analyze time-tracking CSV exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import a CSV export at 75/hour, rounded up to 15 minutes
  python main.py --file export.csv --rate 75 --interval 15

  # Filter to one client in January and build an invoice
  python main.py --file export.csv --clients "Acme" --start-date 2025-01-01 \\
      --end-date 2025-01-31 --invoice-client "Acme" --output-dir out

  # Import from a URL, export CSV and summary, and save a shareable snapshot
  python main.py --url https://example.com/export.csv --export csv summary \\
      --output-dir out --save-snapshot

  # Reopen a saved snapshot
  python main.py --snapshot 3f2c9d0e...

  # Rebuild the view from a share link
  python main.py --query "http://localhost:8080/?url=https://example.com/export.csv&rate=75&clients=Acme"
        """,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="Local CSV export to import")
    source.add_argument("--url", help="Remote CSV export to fetch and import")
    source.add_argument("--snapshot", help="Id of a saved snapshot to load")
    parser.add_argument(
        "--query",
        help="Share link or query string (snapshot, url, rate, interval and filters); "
             "explicit options take precedence",
    )

    parser.add_argument(
        "--rate",
        type=float,
        help=f"Hourly rate applied at import (default: {config.DEFAULT_HOURLY_RATE:g})",
    )
    parser.add_argument(
        "--interval",
        type=int,
        choices=sorted(config.VALID_ROUNDING_INTERVALS),
        help=f"Rounding interval in minutes (default: {config.DEFAULT_ROUNDING_INTERVAL})",
    )
    parser.add_argument("--recalculate-rate", type=float, help="Recompute amounts at this rate")
    parser.add_argument(
        "--reround",
        type=int,
        choices=sorted(config.VALID_ROUNDING_INTERVALS),
        help="Round entries again to this interval after import",
    )

    parser.add_argument("--search", help="Case-insensitive search term")
    parser.add_argument("--projects", type=parse_list, help="Comma-separated projects")
    parser.add_argument("--clients", type=parse_list, help="Comma-separated clients")
    parser.add_argument("--start-date", type=parse_date, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end-date", type=parse_date, help="Last day (YYYY-MM-DD)")
    parser.add_argument(
        "--date-policy",
        choices=[policy.value for policy in DateRangePolicy],
        default=config.DEFAULT_DATE_RANGE_POLICY.value,
        help="'strict' ignores a date range unless both bounds are given",
    )

    parser.add_argument("--invoice-client", help="Build an invoice for this client")
    parser.add_argument("--invoice-rate", type=float, help="Invoice hourly rate")
    parser.add_argument(
        "--invoice-number",
        default=config.DEFAULT_INVOICE_NUMBER,
        help=f"Invoice number (default: {config.DEFAULT_INVOICE_NUMBER})",
    )

    parser.add_argument("--output-dir", help="Directory for exported files")
    parser.add_argument(
        "--export",
        nargs="+",
        choices=["csv", "json", "summary"],
        default=[],
        help="Export formats written to --output-dir",
    )

    parser.add_argument("--save-snapshot", action="store_true", help="Save a shareable snapshot")
    parser.add_argument("--snapshot-title", help="Title of the saved snapshot")
    parser.add_argument("--db-url", help="Snapshot database URL (default from TIMESHEET_DB_URL)")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )

    args = parser.parse_args()

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if args.export and not args.output_dir:
        parser.error("--export requires --output-dir")

    source_from_query(args)
    if not (args.file or args.url or args.snapshot):
        parser.error("one of --file, --url, --snapshot or a --query with a source is required")

    try:
        settings_from_query(args)
        result = pipeline.run_full_pipeline(
            file_path=args.file,
            url=args.url,
            snapshot_id=args.snapshot,
            hourly_rate=args.rate,
            rounding_interval=args.interval,
            recalculate_rate=args.recalculate_rate,
            reround_interval=args.reround,
            filters=build_filters(args),
            date_policy=DateRangePolicy(args.date_policy),
            invoice_client=args.invoice_client,
            invoice_rate=args.invoice_rate,
            invoice_number=args.invoice_number,
            output_dir=args.output_dir,
            export_formats=args.export,
            save_snapshot=args.save_snapshot,
            snapshot_title=args.snapshot_title,
            db_url=args.db_url,
        )
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return 130
    except TimesheetError as exc:
        logger.error("✗ %s", exc)
        return 1
    except Exception as exc:
        logger.error("=" * 70)
        logger.error("PIPELINE EXECUTION FAILED")
        logger.error("=" * 70)
        logger.exception("Fatal error: %s", exc)
        return 1

    if result.share_url:
        print(result.share_url)
    return 0


if __name__ == "__main__":
    exit(main())
