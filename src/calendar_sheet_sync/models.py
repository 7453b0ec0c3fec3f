"""
Pure data models — no EDS or file-system imports.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

DEFAULT_CONFIG = Path.home() / ".config/calendar-sheet-sync.conf"

# Canonical field keys in the order of a freshly initialised sheet.
FIELD_ORDER = ("title", "description", "location", "starttime", "endtime", "guests", "id")

DEFAULT_LABELS = {
    "title": "Title",
    "description": "Description",
    "location": "Location",
    "starttime": "Start Time",
    "endtime": "End Time",
    "guests": "Guests",
    "id": "Id",
}

REQUIRED_FIELDS = ("id", "title", "starttime")

DEFAULT_WINDOW_START = datetime(1970, 1, 1)
DEFAULT_WINDOW_END = datetime(2030, 1, 1)

DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class CalendarSyncError(Exception):
    """Base exception for calendar sync errors."""

    pass


class ConfigurationError(CalendarSyncError):
    """The calendar or sheet cannot be reached, or required settings are missing."""

    pass


class SchemaError(CalendarSyncError):
    """The sheet header lacks one or more required columns."""

    def __init__(self, missing_labels: list[str]):
        self.missing_labels = list(missing_labels)
        super().__init__(
            "Sheet must have " + ", ".join(self.missing_labels) + " column(s)"
        )


class RowValidationError(CalendarSyncError):
    """A single sheet row cannot be turned into a calendar event."""

    def __init__(self, message: str, row_index: int, title: str = ""):
        self.reason = message
        self.row_index = row_index
        self.title = title
        # row_index counts the header as row 0; sheets number rows from 1
        super().__init__(f'Skipping row: {message} in event "{title}", row {row_index + 1}')


class CapabilityError(CalendarSyncError):
    """A create, update or delete call on the event store failed."""

    pass


@dataclass
class Record:
    """Canonical, store-independent view of one event or sheet row."""

    id: str = ""
    title: str = ""
    description: str = ""
    location: str = ""
    starttime: Optional[datetime] = None
    endtime: Optional[datetime] = None  # None = all-day, single day
    guests: str = ""
    row_index: Optional[int] = field(default=None, compare=False)


@dataclass
class CalendarEvent:
    """An event as returned by an event store.

    For all-day events ``start``/``end`` are dates and ``end`` is exclusive.
    """

    id: str
    title: str
    start: Union[datetime, date]
    end: Union[datetime, date, None] = None
    all_day: bool = False
    description: str = ""
    location: str = ""
    guests: list[str] = field(default_factory=list)


@dataclass
class SyncConfig:
    """Configuration for one reconciliation pass."""

    calendar_id: str
    sheet_path: Path
    window_start: datetime = DEFAULT_WINDOW_START
    window_end: datetime = DEFAULT_WINDOW_END
    field_labels: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_LABELS))
    required_fields: tuple[str, ...] = REQUIRED_FIELDS
    send_invites: bool = False
    datetime_format: str = DEFAULT_DATETIME_FORMAT
    throttle_burst: int = 10
    throttle_delay: float = 0.075
    auto_delete_churn: bool = True  # Skip the prompt when deletions <= updates
    update_strategy: str = "auto"  # 'auto', 'recreate'
    direction: str = "pull"  # 'pull', 'push'
    dry_run: bool = False
    verbose: bool = False
    yes: bool = False  # Auto-confirm without prompting


@dataclass
class SyncStats:
    """Statistics for sync operation."""

    added: int = 0
    modified: int = 0
    deleted: int = 0
    unchanged: int = 0
    skipped: int = 0
    errors: int = 0
