"""
CSV-file table store: a minimal spreadsheet with typed date/time cells.
"""

import csv
import logging
from datetime import date
from datetime import datetime
from pathlib import Path

from .models import ConfigurationError
from .models import DEFAULT_DATETIME_FORMAT
from .models import DEFAULT_LABELS
from .models import SyncConfig

logger = logging.getLogger(__name__)

# Accepted spellings for cells that hold a date/time, tried in order.
_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y")


def coerce_cell(value: str, datetime_format: str = DEFAULT_DATETIME_FORMAT):
    """Turn cell text into a datetime or date when it spells one, like a
    spreadsheet typing its cells. Other text is returned unchanged."""
    text = value.strip()
    if not text or not text[0].isdigit():
        return value
    for fmt in (datetime_format, *_DATETIME_FORMATS):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return value


def _parse_back(text: str, fmt: str):
    try:
        return datetime.strptime(text, fmt)
    except ValueError:
        return None


class CsvTableStore:
    """Table store over a CSV file whose first row is the header.

    Only columns whose header is one of ``time_labels`` hold typed date/time
    cells; every other cell is returned as the text in the file.
    """

    def __init__(
        self,
        path: Path,
        datetime_format: str = DEFAULT_DATETIME_FORMAT,
        time_labels: tuple[str, ...] = (DEFAULT_LABELS["starttime"], DEFAULT_LABELS["endtime"]),
    ):
        self.path = Path(path)
        self.datetime_format = datetime_format
        self.time_labels = tuple(time_labels)
        self.column_formats: dict[int, str] = {}
        self.hidden_columns: set[int] = set()

    @classmethod
    def from_config(cls, config: SyncConfig) -> "CsvTableStore":
        labels = config.field_labels
        return cls(
            config.sheet_path,
            config.datetime_format,
            time_labels=(labels["starttime"], labels["endtime"]),
        )

    def _read_raw(self) -> list[list[str]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open(newline="", encoding="utf-8") as fh:
                return [row for row in csv.reader(fh)]
        except OSError as e:
            raise ConfigurationError(f"Cannot read sheet {self.path}: {e}")

    def _write_raw(self, rows: list[list[str]]):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", newline="", encoding="utf-8") as fh:
                csv.writer(fh).writerows(rows)
        except OSError as e:
            raise ConfigurationError(f"Cannot write sheet {self.path}: {e}")

    def _format_cell(self, col: int, value) -> str:
        if value is None:
            return ""
        if isinstance(value, datetime):
            fmt = self.column_formats.get(col, self.datetime_format)
            text = value.strftime(fmt)
            if _parse_back(text, fmt) != value.replace(microsecond=0):
                # Format drops fields (usually seconds); write the value in full
                text = value.strftime(DEFAULT_DATETIME_FORMAT)
            return text
        if isinstance(value, date):
            return value.strftime("%Y-%m-%d")
        return str(value)

    def read_all(self) -> list[list]:
        """Return all rows; row 0 is the header and is never coerced."""
        raw = self._read_raw()
        if not raw:
            return []
        header = list(raw[0])
        time_cols = {idx for idx, label in enumerate(header) if label in self.time_labels}
        rows = [header]
        for row in raw[1:]:
            rows.append(
                [
                    coerce_cell(cell, self.datetime_format) if idx in time_cols else cell
                    for idx, cell in enumerate(row)
                ]
            )
        return rows

    def write_all(self, rows: list[list]):
        """Overwrite the leading rows; rows beyond ``len(rows)`` are left alone."""
        existing = self._read_raw()
        formatted = [
            [self._format_cell(col, value) for col, value in enumerate(row)] for row in rows
        ]
        self._write_raw(formatted + existing[len(formatted):])
        logger.debug(f"Wrote {len(rows)} rows to {self.path}")

    def delete_trailing_rows(self, from_index: int, count: int):
        """Delete ``count`` rows starting at zero-based row ``from_index``."""
        existing = self._read_raw()
        del existing[from_index:from_index + count]
        self._write_raw(existing)
        logger.debug(f"Deleted {count} trailing rows from {self.path}")

    def set_column_format(self, col: int, pattern: str):
        self.column_formats[col] = pattern

    def hide_column(self, col: int):
        # CSV has no column visibility; remember it for display purposes only
        self.hidden_columns.add(col)
        logger.debug(f"Column {col} marked hidden")
