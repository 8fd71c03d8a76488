"""
Test Exporter Module

Covers flat records, CSV/JSON export and re-import of exported files.
"""

import json
from datetime import datetime

import pytest

from timesheet_analytics.extractors import csv_reader
from timesheet_analytics.loaders import exporter


def test_entries_to_records(make_entry):
    entry = make_entry(project="Web", client="Acme", description="Fix", time_decimal=1.5,
                       amount=75.0, tags="urgent", start_date=datetime(2025, 3, 4, 9, 0))

    assert exporter.entries_to_records([entry]) == [{
        "project": "Web",
        "client": "Acme",
        "description": "Fix",
        "hours": 1.5,
        "amount": 75.0,
        "date": "2025-03-04",
        "tags": "urgent",
    }]


def test_record_for_invalid_date_has_empty_date(make_entry):
    assert exporter.entries_to_records([make_entry(start_date=None)])[0]["date"] == ""


def test_csv_export_reimports(tmp_path, sample_csv_text, settings):
    """Exported CSV parses back to the same projects, clients and hours"""
    original = csv_reader.parse_dataset(sample_csv_text, settings)
    path = exporter.export_entries_csv(original, tmp_path / "export.csv")

    reparsed, _ = csv_reader.load_csv_file(path, settings)

    assert [e.project for e in reparsed] == [e.project for e in original]
    assert [e.client for e in reparsed] == [e.client for e in original]
    assert [e.time_decimal for e in reparsed] == pytest.approx([e.time_decimal for e in original])
    assert [e.id for e in reparsed] == [e.id for e in original]
    assert [e.billable for e in reparsed] == [e.billable for e in original]


def test_entries_to_frame_layout(make_entry):
    frame = exporter.entries_to_frame([make_entry(start_date=datetime(2025, 1, 2, 8, 30))])

    assert list(frame.columns)[:3] == ["Project", "Client", "Description"]
    assert frame.loc[0, "Start Date"] == "2025-01-02 08:30:00"
    assert frame.loc[0, "Billable"] == "No"


def test_payload_round_trip(make_entry):
    entries = [make_entry(billable=True, end_date=datetime(2025, 1, 15, 11, 0)), make_entry(start_date=None)]

    rebuilt = [exporter.entry_from_payload(exporter.entry_to_payload(e)) for e in entries]

    assert rebuilt == entries


def test_export_entries_json(tmp_path, make_entry):
    path = exporter.export_entries_json([make_entry(project="Web")], tmp_path / "entries.json")

    data = json.loads(path.read_text(encoding="utf-8"))

    assert data[0]["project"] == "Web"
    assert data[0]["start_date"] == "2025-01-15T09:30:00"


def test_export_summary_json(tmp_path, make_entry):
    entries = [
        make_entry(project="B", client="Acme", time_decimal=1.0, amount=50.0),
        make_entry(project="A", client="Acme", time_decimal=2.0, amount=100.0),
    ]

    path = exporter.export_summary_json(entries, tmp_path / "summary.json")
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["totalEntries"] == 2
    assert data["totalHours"] == pytest.approx(3.0)
    assert data["totalAmount"] == pytest.approx(150.0)
    assert data["projects"] == ["A", "B"]
    assert data["clients"] == ["Acme"]
    assert data["projectBreakdown"]["A"] == {"hours": 2.0, "amount": 100.0, "entry_count": 1}
