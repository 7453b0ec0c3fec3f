"""
Conversion of calendar events and sheet rows into comparable Records.
"""

from datetime import date
from datetime import datetime
from datetime import time
from datetime import timedelta
from typing import Optional

from calendar_sheet_sync.fieldmap import FieldMap
from calendar_sheet_sync.models import CalendarEvent
from calendar_sheet_sync.models import Record
from calendar_sheet_sync.models import RowValidationError

_ONE_DAY = timedelta(days=1)
_ONE_SECOND = timedelta(seconds=1)

_TEXT_FIELDS = ("id", "title", "description", "location")


def to_timestamp(value) -> Optional[datetime]:
    """Return value as a naive datetime truncated to milliseconds, or None.

    Dates become midnight datetimes. Anything that is not a date/datetime
    (strings, numbers, empty cells) yields None.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime.combine(value, time())
    else:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts.replace(microsecond=ts.microsecond - ts.microsecond % 1000)


def normalize_guests(value) -> str:
    """Comma-join guest addresses, preserving order and dropping blanks."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        parts = value
    else:
        parts = str(value).split(",")
    return ",".join(p.strip() for p in parts if p and p.strip())


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and value == "")


class RecordNormalizer:
    """Builds canonical Records from both stores and projects them back onto rows."""

    @staticmethod
    def from_event(event: CalendarEvent) -> Record:
        """Convert a calendar event, applying the all-day end-time convention.

        An all-day event spanning exactly one day gets an empty end time.
        Longer all-day events keep their exclusive end date, pulled back one
        second when it falls on midnight so the sheet shows the last day.
        """
        record = Record(
            id=event.id or "",
            title=event.title or "",
            description=event.description or "",
            location=event.location or "",
            guests=normalize_guests(event.guests),
        )
        start = to_timestamp(event.start)
        record.starttime = start

        if event.all_day:
            end = to_timestamp(event.end) if event.end is not None else None
            if end is None or start is None or end - start == _ONE_DAY:
                record.endtime = None
            else:
                if end.hour == 0 and end.minute == 0:
                    end -= _ONE_SECOND
                record.endtime = end
        else:
            record.endtime = to_timestamp(event.end)
        return record

    @staticmethod
    def from_row(row: list, field_map: FieldMap, row_index: Optional[int] = None) -> Record:
        """Convert a sheet row. Cells that are not timestamps become None."""
        record = Record(row_index=row_index)
        for idx, key in field_map.mapped():
            value = row[idx] if idx < len(row) else None
            if key in _TEXT_FIELDS:
                setattr(record, key, _text(value))
            elif key == "guests":
                record.guests = normalize_guests(value)
            elif key in ("starttime", "endtime"):
                setattr(record, key, to_timestamp(value))
        return record

    @staticmethod
    def validate_row(row: list, field_map: FieldMap, row_index: int) -> None:
        """Raise RowValidationError if the row cannot become a calendar event."""

        def cell(key):
            idx = field_map.index_of(key)
            if idx is None or idx >= len(row):
                return None
            return row[idx]

        title = _text(cell("title"))
        if not title:
            raise RowValidationError("must have title", row_index, title)

        start = to_timestamp(cell("starttime"))
        if start is None:
            raise RowValidationError("start time must be a date/time", row_index, title)

        raw_end = cell("endtime")
        if not _is_empty(raw_end):
            end = to_timestamp(raw_end)
            if end is None:
                raise RowValidationError("end time must be empty or a date/time", row_index, title)
            if end < start:
                raise RowValidationError(
                    "end time must be after start time for event", row_index, title
                )

    @staticmethod
    def to_row(record: Record, field_map: FieldMap, row: Optional[list] = None) -> list:
        """Project a Record onto a row, touching only mapped columns."""
        out = list(row) if row is not None else []
        if len(out) < len(field_map):
            out.extend([""] * (len(field_map) - len(out)))

        for idx, key in field_map.mapped():
            value = getattr(record, key)
            if key == "endtime" and value is None:
                value = ""
            out[idx] = value
        return out


def records_equal(a: Record, b: Record) -> bool:
    """Field-level equality used to decide whether a pair needs an update."""
    if (a.title, a.description, a.location) != (b.title, b.description, b.location):
        return False
    if a.starttime != b.starttime:
        return False
    if (a.endtime is None) != (b.endtime is None):
        return False
    if a.endtime is not None and to_timestamp(a.endtime) != to_timestamp(b.endtime):
        return False
    return normalize_guests(a.guests) == normalize_guests(b.guests)
