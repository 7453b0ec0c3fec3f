"""
Mapping between sheet header labels and canonical record fields.
"""

from typing import Optional

from calendar_sheet_sync.models import DEFAULT_LABELS
from calendar_sheet_sync.models import FIELD_ORDER
from calendar_sheet_sync.models import REQUIRED_FIELDS


class FieldMap:
    """Positional map of sheet columns to canonical keys (None = unmapped)."""

    def __init__(
        self,
        keys: list[Optional[str]],
        labels: dict[str, str] = DEFAULT_LABELS,
        required: tuple[str, ...] = REQUIRED_FIELDS,
    ):
        self.keys = list(keys)
        self.labels = dict(labels)
        self.required = tuple(required)
        self._index = {}
        for idx, key in enumerate(self.keys):
            if key is not None and key not in self._index:
                self._index[key] = idx

    @classmethod
    def build(
        cls,
        header: list,
        labels: dict[str, str] = DEFAULT_LABELS,
        required: tuple[str, ...] = REQUIRED_FIELDS,
    ) -> tuple["FieldMap", set[str]]:
        """
        Map each header cell to the canonical key whose label equals it.

        Matching is exact (case and whitespace sensitive). Returns the map and
        the set of required keys that no column provides.
        """
        by_label = {label: key for key, label in labels.items()}
        keys = []
        for cell in header:
            keys.append(by_label.get(cell) if isinstance(cell, str) else None)

        field_map = cls(keys, labels, required)
        missing = {key for key in field_map.required if field_map.index_of(key) is None}
        return field_map, missing

    @staticmethod
    def reference_header(
        labels: dict[str, str] = DEFAULT_LABELS, order: tuple[str, ...] = FIELD_ORDER
    ) -> list[str]:
        """Header row for a freshly initialised sheet."""
        return [labels[key] for key in order]

    def __len__(self) -> int:
        return len(self.keys)

    def index_of(self, key: str) -> Optional[int]:
        return self._index.get(key)

    def mapped(self):
        """Yield (column index, key) for every mapped column."""
        for idx, key in enumerate(self.keys):
            if key is not None:
                yield idx, key

    @property
    def is_complete(self) -> bool:
        return all(self.index_of(key) is not None for key in self.required)

    def missing_labels(self, missing: set[str]) -> list[str]:
        """Display labels for missing keys, in canonical column order."""
        ordered = [key for key in FIELD_ORDER if key in missing]
        ordered += sorted(missing - set(ordered))
        return [self.labels.get(key, key) for key in ordered]
