"""
Identifier-indexed pairing of two record collections.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Optional

from calendar_sheet_sync.models import Record
from calendar_sheet_sync.normalizer import records_equal

_logger = logging.getLogger(__name__)


class MatchKind(str, Enum):
    SAME = "same"
    CHANGED = "changed"
    SOURCE_ONLY = "source-only"
    DEST_ONLY = "dest-only"


@dataclass
class Pairing:
    kind: MatchKind
    source: Optional[Record]
    dest: Optional[Record]


@dataclass
class MatchResult:
    """Outcome of matching; ``pairings`` lists source records in input order,
    followed by the unmatched destination records."""

    pairings: list[Pairing] = field(default_factory=list)

    def _of(self, kind: MatchKind) -> list[Pairing]:
        return [p for p in self.pairings if p.kind is kind]

    @property
    def matched_same(self) -> list[Pairing]:
        return self._of(MatchKind.SAME)

    @property
    def matched_changed(self) -> list[Pairing]:
        return self._of(MatchKind.CHANGED)

    @property
    def source_only(self) -> list[Record]:
        return [p.source for p in self._of(MatchKind.SOURCE_ONLY)]

    @property
    def dest_only(self) -> list[Record]:
        return [p.dest for p in self._of(MatchKind.DEST_ONLY)]

    @property
    def in_sync(self) -> bool:
        return all(p.kind is MatchKind.SAME for p in self.pairings)


def match(source: list[Record], dest: list[Record]) -> MatchResult:
    """Pair records by id in linear time.

    Source records without an id cannot match and are always source-only.
    When an id occurs more than once on a side, only its first occurrence
    takes part in a pairing; later ones are treated as unmatched.
    """
    index: dict[str, Record] = {}
    for record in dest:
        if not record.id:
            continue
        if record.id in index:
            _logger.warning(f"Duplicate id {record.id!r} in destination, ignoring repeat")
            continue
        index[record.id] = record

    result = MatchResult()
    paired: set[int] = set()
    for record in source:
        other = index.get(record.id) if record.id else None
        if other is None or id(other) in paired:
            result.pairings.append(Pairing(MatchKind.SOURCE_ONLY, record, None))
            continue
        paired.add(id(other))
        kind = MatchKind.SAME if records_equal(record, other) else MatchKind.CHANGED
        result.pairings.append(Pairing(kind, record, other))

    for record in dest:
        if id(record) not in paired:
            result.pairings.append(Pairing(MatchKind.DEST_ONLY, None, record))
    return result
