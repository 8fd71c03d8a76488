"""
Test CSV Reader Module

Covers row parsing, dataset import, column validation and remote fetching.
"""

from datetime import datetime

import pytest
import requests

from timesheet_analytics.extractors import csv_reader
from timesheet_analytics.utilities.errors import (
    EmptyDatasetError,
    FetchError,
    MalformedFileError,
    MissingColumnsError,
)


def test_parse_row_full_record():
    """Every column is copied into the entry"""
    entry = csv_reader.parse_row({
        "Project": "Website",
        "Client": "Acme",
        "Description": "Landing page",
        "Task": "Design",
        "User": "Alice",
        "Group": "Team A",
        "Email": "alice@example.com",
        "Tags": "web",
        "Billable": "YES",
        "Start Date": "2025-01-06",
        "Start Time": "09:00:00",
        "End Date": "2025-01-06",
        "End Time": "10:06:00",
        "Duration (h)": "01:06:00",
        "Duration (decimal)": "1.10",
        "Billable Rate (USD)": "50",
        "Billable Amount (USD)": "55",
    })

    assert entry.id == "Website-1736121600000-09:00:00"
    assert entry.project == "Website"
    assert entry.client == "Acme"
    assert entry.user == "Alice"
    assert entry.billable is True
    assert entry.start_date == datetime(2025, 1, 6)
    assert entry.end_date == datetime(2025, 1, 6)
    assert entry.time_hours == "01:06:00"
    assert entry.time_decimal == pytest.approx(1.1)
    assert entry.billable_rate == 50.0
    assert entry.billable_amount == 55.0
    assert entry.amount == 0.0


def test_parse_row_missing_optional_fields():
    """Absent fields fall back to empty, zero or False"""
    entry = csv_reader.parse_row({"Project": "X", "Start Date": "2025-02-01"})

    assert entry.client == ""
    assert entry.tags == ""
    assert entry.billable is False
    assert entry.time_hours == "0:00:00"
    assert entry.time_decimal == 0.0
    assert entry.billable_rate == 0.0
    assert entry.end_date is None


@pytest.mark.parametrize("value", ["true", "1", "Y", "", "no"])
def test_parse_row_billable_only_yes(value):
    assert csv_reader.parse_row({"Billable": value}).billable is False


def test_parse_row_invalid_date_is_none():
    """Unparseable dates become None and the id carries NaN"""
    entry = csv_reader.parse_row({
        "Project": "X",
        "Start Date": "not-a-date",
        "Start Time": "09:00",
    })

    assert entry.start_date is None
    assert entry.day is None
    assert entry.id == "X-NaN-09:00"


def test_parse_dataset_rounds_and_prices(sample_csv_text, settings):
    """Zero-duration rows are dropped, the rest rounded up and priced"""
    entries = csv_reader.parse_dataset(sample_csv_text, settings)

    assert [e.project for e in entries] == ["Website", "Website", "Mobile App"]
    assert [e.time_decimal for e in entries] == [1.5, 2.0, 0.5]
    assert [e.amount for e in entries] == [150.0, 200.0, 50.0]
    assert entries[2].billable is True


def test_parse_dataset_stats(sample_csv_text, settings):
    entries, stats = csv_reader.parse_dataset_with_stats(sample_csv_text, settings)

    assert stats.rows_read == 4
    assert stats.rows_dropped == 1
    assert stats.entries_imported == len(entries) == 3
    assert stats.duplicate_ids == 0


def test_parse_dataset_missing_columns(settings):
    text = "Project,Client,Description,Start Date,Start Time,End Date,Duration (h)\nA,B,C,2025-01-01,09:00,2025-01-01,1:00:00\n"

    with pytest.raises(MissingColumnsError) as excinfo:
        csv_reader.parse_dataset(text, settings)

    assert excinfo.value.missing == ["End Time", "Duration (decimal)"]
    assert "End Time" in str(excinfo.value)


def test_parse_dataset_column_match_is_case_sensitive(sample_csv_text, settings):
    text = sample_csv_text.replace("Project,", "project,", 1)

    with pytest.raises(MissingColumnsError) as excinfo:
        csv_reader.parse_dataset(text, settings)

    assert excinfo.value.missing == ["Project"]


def test_parse_dataset_only_zero_rows_is_empty(csv_header, settings):
    """A dataset whose rows all have zero duration is an empty import"""
    text = csv_header + "\nX,Y,,,,,,,No,2025-01-01,09:00,2025-01-01,09:00,0:00:00,0,,\n"

    with pytest.raises(EmptyDatasetError):
        csv_reader.parse_dataset(text, settings)


def test_parse_dataset_drops_non_numeric_duration(csv_header, settings):
    text = "\n".join([
        csv_header,
        "X,Y,,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,abc,,",
        "X,Y,,,,,,,No,2025-01-02,09:00,2025-01-02,10:00,1:00:00,,,",
        "X,Y,,,,,,,No,2025-01-03,09:00,2025-01-03,10:00,1:00:00,1,,",
    ])

    entries = csv_reader.parse_dataset(text, settings)

    assert len(entries) == 1
    assert entries[0].day.isoformat() == "2025-01-03"


def test_parse_dataset_disambiguates_duplicate_ids(csv_header, settings):
    row = "X,Y,first,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,1,,"
    text = "\n".join([csv_header, row, row.replace("first", "second"), row.replace("first", "third")])

    entries, stats = csv_reader.parse_dataset_with_stats(text, settings)

    base = entries[0].id
    assert [e.id for e in entries] == [base, f"{base}#2", f"{base}#3"]
    assert stats.duplicate_ids == 2


def test_parse_row_date_beyond_timestamp_range_is_invalid():
    """A year-3000 date is treated as invalid instead of crashing the import"""
    entry = csv_reader.parse_row({"Project": "P", "Start Date": "3000-01-01", "Start Time": "09:00"})

    assert entry.start_date is None
    assert entry.id == "P-NaN-09:00"


def test_parse_dataset_keeps_rows_around_far_future_date(csv_header, settings):
    text = "\n".join([
        csv_header,
        "X,Y,,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,1,,",
        "X,Y,,,,,,,No,3000-01-01,09:00,3000-01-01,10:00,1:00:00,1,,",
    ])

    entries = csv_reader.parse_dataset(text, settings)

    assert len(entries) == 2
    assert entries[1].day is None


def test_parse_dataset_skips_rows_with_extra_fields(csv_header, settings):
    """An unquoted comma in one row does not lose the other rows"""
    text = "\n".join([
        csv_header,
        "X,Y,good one,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,1,,",
        "X,Y,bad, unquoted,,,,,,No,2025-01-02,09:00,2025-01-02,10:00,1:00:00,1,,",
        "X,Y,good two,,,,,,No,2025-01-03,09:00,2025-01-03,10:00,1:00:00,1,,",
    ])

    entries, stats = csv_reader.parse_dataset_with_stats(text, settings)

    assert [e.description for e in entries] == ["good one", "good two"]
    assert stats.rows_read == 3
    assert stats.rows_dropped == 1


def test_parse_dataset_all_rows_with_extra_fields_do_not_shift_columns(csv_header, settings):
    """Ragged rows are never read as an index column; with none left the import is empty"""
    row = "X,Y,a, b,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,1,,"
    text = "\n".join([csv_header, row, row])

    with pytest.raises(EmptyDatasetError):
        csv_reader.parse_dataset(text, settings)


def test_parse_dataset_pads_short_rows(csv_header, settings):
    text = csv_header + "\nX,Y,short,,,,,,No,2025-01-01,09:00,2025-01-01,10:00,1:00:00,1\n"

    entries = csv_reader.parse_dataset(text, settings)

    assert entries[0].description == "short"
    assert entries[0].billable_rate == 0.0


def test_parse_dataset_empty_text_is_malformed(settings):
    with pytest.raises(MalformedFileError):
        csv_reader.parse_dataset("   \n", settings)


def test_read_csv_file_rejects_other_extensions(tmp_path):
    path = tmp_path / "export.xlsx"
    path.write_text("Project\n", encoding="utf-8")

    with pytest.raises(MalformedFileError):
        csv_reader.read_csv_file(path)


def test_read_csv_file_rejects_binary_content(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes(b"\xff\xfe\x00\x01\x02binary")

    with pytest.raises(MalformedFileError):
        csv_reader.read_csv_file(path)


def test_load_csv_file(tmp_path, sample_csv_text, settings):
    path = tmp_path / "export.csv"
    path.write_text("\ufeff" + sample_csv_text, encoding="utf-8")

    entries, stats = csv_reader.load_csv_file(path, settings)

    assert len(entries) == 3
    assert stats.rows_dropped == 1


class FakeResponse:
    def __init__(self, text="", status_code=200, content_type="text/csv"):
        self.text = text
        self.status_code = status_code
        self.headers = {"Content-Type": content_type} if content_type else {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_fetch_csv_text_success(monkeypatch, sample_csv_text):
    monkeypatch.setattr(csv_reader.requests, "get", lambda url, timeout: FakeResponse(sample_csv_text))

    assert csv_reader.fetch_csv_text("https://example.com/export.csv") == sample_csv_text


def test_fetch_csv_text_network_error(monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(csv_reader.requests, "get", boom)

    with pytest.raises(FetchError) as excinfo:
        csv_reader.fetch_csv_text("https://example.com/export.csv")
    assert "connection refused" in str(excinfo.value)


def test_fetch_csv_text_http_error(monkeypatch):
    monkeypatch.setattr(csv_reader.requests, "get", lambda url, timeout: FakeResponse(status_code=404))

    with pytest.raises(FetchError) as excinfo:
        csv_reader.fetch_csv_text("https://example.com/missing.csv")
    assert "404" in str(excinfo.value)


def test_fetch_csv_text_rejects_non_text(monkeypatch):
    monkeypatch.setattr(
        csv_reader.requests,
        "get",
        lambda url, timeout: FakeResponse("x", content_type="image/png"),
    )

    with pytest.raises(FetchError):
        csv_reader.fetch_csv_text("https://example.com/logo.png")


def test_load_csv_url(monkeypatch, sample_csv_text, settings):
    monkeypatch.setattr(csv_reader.requests, "get", lambda url, timeout: FakeResponse(sample_csv_text))

    entries, _ = csv_reader.load_csv_url("https://example.com/export.csv", settings)

    assert len(entries) == 3
