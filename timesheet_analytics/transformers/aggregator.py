"""Summary statistics and invoice grouping over time entries."""
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from timesheet_analytics.utilities import config, utils
from timesheet_analytics.utilities.models import (
    BreakdownItem,
    Invoice,
    InvoiceGroup,
    Summary,
    TimeEntry,
)
from timesheet_analytics.transformers import filter_service

logger = logging.getLogger(__name__)


def _add_to_breakdown(breakdown: Dict[str, BreakdownItem], key: str, entry: TimeEntry) -> None:
    item = breakdown.get(key)
    if item is None:
        item = breakdown[key] = BreakdownItem()
    item.hours += entry.time_decimal
    item.amount += entry.amount
    item.entry_count += 1


def summarize(entries: Sequence[TimeEntry]) -> Summary:
    """
    Reduce entries to summary statistics in a single pass.

    Totals are plain float sums. Breakdowns keep first-seen key order and
    distinct counts use exact, case-sensitive string equality.

    Args:
        entries: Entries to summarize

    Returns:
        Summary instance
    """
    summary = Summary()

    for entry in entries:
        summary.total_hours += entry.time_decimal
        summary.total_amount += entry.amount
        if entry.billable:
            summary.billable_hours += entry.time_decimal
        _add_to_breakdown(summary.project_breakdown, entry.project, entry)
        _add_to_breakdown(summary.client_breakdown, entry.client, entry)
        summary.entry_count += 1

    summary.unique_projects = len(summary.project_breakdown)
    summary.unique_clients = len(summary.client_breakdown)
    if summary.total_hours > 0:
        summary.avg_hourly_rate = summary.total_amount / summary.total_hours

    return summary


def group_for_invoice(entries: Sequence[TimeEntry], hourly_rate: float) -> List[InvoiceGroup]:
    """
    Group entries by project for an invoice.

    The invoice rate is authoritative: stored entry amounts are ignored and
    every group's total_amount is total_hours * hourly_rate.

    Args:
        entries: Entries already narrowed to a single client
        hourly_rate: Invoice rate

    Returns:
        Groups in first-seen project order
    """
    rate = utils.validate_rate(hourly_rate)
    groups: Dict[str, InvoiceGroup] = {}

    for entry in entries:
        group = groups.get(entry.project)
        if group is None:
            group = groups[entry.project] = InvoiceGroup(project=entry.project)
        group.entries.append(entry)
        group.total_hours += entry.time_decimal

    for group in groups.values():
        group.total_amount = group.total_hours * rate

    return list(groups.values())


def build_invoice(
    entries: Sequence[TimeEntry],
    client: str,
    hourly_rate: float,
    invoice_number: str = config.DEFAULT_INVOICE_NUMBER,
    issued_on: Optional[date] = None,
) -> Invoice:
    """
    Build an invoice for one client from a (possibly mixed) entry set.

    Args:
        entries: Entries to invoice from
        client: Client to invoice
        hourly_rate: Invoice rate
        invoice_number: Invoice identifier printed on the document
        issued_on: Issue date (today if not provided)

    Returns:
        Invoice instance
    """
    client_entries = filter_service.entries_for_client(entries, client)
    groups = group_for_invoice(client_entries, hourly_rate)

    invoice = Invoice(
        client=client,
        invoice_number=invoice_number,
        hourly_rate=utils.validate_rate(hourly_rate),
        issued_on=issued_on or date.today(),
        groups=groups,
        total_hours=sum(group.total_hours for group in groups),
        total_amount=sum(group.total_amount for group in groups),
    )

    if not client_entries:
        logger.warning("No entries found for client %s; invoice is empty", client)
    else:
        logger.info(
            "Invoice %s for %s: %d projects, %.2f hours, %.2f total",
            invoice_number,
            client,
            len(groups),
            invoice.total_hours,
            invoice.total_amount,
        )
    return invoice


def render_invoice_text(invoice: Invoice) -> str:
    """Render the plain-text invoice document."""
    lines = [
        "INVOICE",
        "",
        f"Invoice #: {invoice.invoice_number}",
        f"Date: {invoice.issued_on.isoformat()}",
        f"Client: {invoice.client}",
        "",
        "---",
    ]

    for group in invoice.groups:
        lines.extend([
            "",
            f"Project: {group.project}",
            f"Hours: {group.total_hours:.2f}",
            f"Rate: ${invoice.hourly_rate:.2f}/hour",
            f"Amount: ${group.total_amount:.2f}",
        ])

    lines.extend([
        "",
        "---",
        "",
        f"Total Hours: {invoice.total_hours:.2f}",
        f"Total Amount: ${invoice.total_amount:.2f}",
    ])
    return "\n".join(lines) + "\n"
