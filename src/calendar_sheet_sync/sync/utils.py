"""
Stateless helpers shared by the pull and push drivers.
"""

import logging
from datetime import timedelta

from calendar_sheet_sync.fieldmap import FieldMap
from calendar_sheet_sync.models import Record
from calendar_sheet_sync.models import SchemaError
from calendar_sheet_sync.models import SyncConfig

_logger = logging.getLogger(__name__)

_LAST_SECOND = (23, 59, 59)


def is_blank_sheet(rows: list[list]) -> bool:
    """True for a sheet with no rows, or only a single row of empty cells."""
    if not rows:
        return True
    if len(rows) == 1:
        return all(cell is None or cell == "" for cell in rows[0])
    return False


def load_field_map(header: list, config: SyncConfig) -> FieldMap:
    """Build the field map for a header, raising SchemaError when incomplete."""
    field_map, missing = FieldMap.build(header, config.field_labels, config.required_fields)
    if missing:
        labels = field_map.missing_labels(missing)
        _logger.error("Sheet header is missing required column(s): %s", ", ".join(labels))
        raise SchemaError(labels)
    return field_map


def all_day_span(record: Record):
    """Return (first_day, exclusive_end_day) if the record describes all-day
    event(s), or None for a timed event.

    An empty end time means a single all-day event. A midnight start with an
    end at 23:59:59 on a later day is the sheet form of a multi-day all-day
    event.
    """
    start = record.starttime
    first_day = start.date()
    if record.endtime is None:
        return first_day, first_day + timedelta(days=1)

    end = record.endtime
    if (start.hour, start.minute, start.second) != (0, 0, 0):
        return None
    if (end.hour, end.minute, end.second) != _LAST_SECOND or end.date() <= first_day:
        return None
    return first_day, end.date() + timedelta(days=1)
