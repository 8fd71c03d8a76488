"""Error types raised by the timesheet pipeline."""
from typing import Sequence


class TimesheetError(Exception):
    """Base class for recoverable, user-visible pipeline errors."""


class MissingColumnsError(TimesheetError):
    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class EmptyDatasetError(TimesheetError):
    def __init__(self, message: str = "No valid data found in the CSV file"):
        super().__init__(message)


class MalformedFileError(TimesheetError):
    """File could not be read as CSV at all."""


class FetchError(TimesheetError):
    """Remote CSV could not be fetched."""


class InvalidSettingsError(TimesheetError):
    """Hourly rate or rounding interval out of range."""


class SnapshotNotFoundError(TimesheetError):
    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(
            f"Snapshot {snapshot_id} not found. The link may be invalid or the "
            "snapshot may have been deleted."
        )


class SnapshotStoreError(TimesheetError):
    """Snapshot database could not be read or written."""
