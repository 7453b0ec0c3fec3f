"""
Integration tests for the calendar → sheet pass.

Each test drives run_pull() against FakeEventStore / FakeTableStore.
"""

from datetime import date
from datetime import datetime

import pytest

from calendar_sheet_sync.models import SchemaError
from calendar_sheet_sync.models import SyncStats
from calendar_sheet_sync.sync.pull import run_pull
from tests.fake_client import HEADER
from tests.fake_client import FakeEventStore
from tests.fake_client import FakeTableStore
from tests.fake_client import make_all_day
from tests.fake_client import make_event
from tests.fake_client import make_row


def _pull(config, logger, events, tables, stats=None):
    stats = stats or SyncStats()
    run_pull(config, stats, logger, events, tables)
    return stats


def test_single_event_into_header_only_sheet(sync_config, sync_logger):
    events = FakeEventStore(
        [
            make_event(
                "e1",
                "Standup",
                datetime(2024, 1, 2, 9, 0),
                datetime(2024, 1, 2, 9, 15),
            )
        ]
    )
    tables = FakeTableStore([HEADER])

    stats = _pull(sync_config, sync_logger, events, tables)

    assert tables.data_rows == [
        make_row(
            "Standup",
            datetime(2024, 1, 2, 9, 0),
            datetime(2024, 1, 2, 9, 15),
            event_id="e1",
        )
    ]
    assert stats.added == 1
    assert events.mutation_count == 0


def test_queries_configured_window(sync_config, sync_logger):
    events = FakeEventStore()
    _pull(sync_config, sync_logger, events, FakeTableStore([HEADER]))
    assert events.windows == [(sync_config.window_start, sync_config.window_end)]


def test_blank_sheet_gets_header_and_presentation(sync_config, sync_logger):
    events = FakeEventStore([make_event("e1")])
    tables = FakeTableStore([])

    _pull(sync_config, sync_logger, events, tables)

    assert tables.rows[0] == HEADER
    assert len(tables.data_rows) == 1
    assert tables.formats == {3: sync_config.datetime_format, 4: sync_config.datetime_format}
    assert tables.hidden == {6}


def test_blank_first_row_counts_as_empty(sync_config, sync_logger):
    tables = FakeTableStore([["", "", ""]])
    _pull(sync_config, sync_logger, FakeEventStore(), tables)
    assert tables.rows == [HEADER]


def test_second_pass_writes_nothing(sync_config, sync_logger):
    events = FakeEventStore(
        [
            make_event("e1", "One"),
            make_all_day("e2", "Holiday", date(2024, 2, 1)),
            make_all_day("e3", "Trip", date(2024, 3, 1), date(2024, 3, 4)),
        ]
    )
    tables = FakeTableStore([HEADER])
    _pull(sync_config, sync_logger, events, tables)
    tables.reset_counters()

    stats = _pull(sync_config, sync_logger, events, tables)

    assert tables.mutation_count == 0
    assert stats.unchanged == 3
    assert (stats.added, stats.modified, stats.deleted) == (0, 0, 0)


def test_all_day_rows_use_sheet_convention(sync_config, sync_logger):
    events = FakeEventStore(
        [
            make_all_day("e2", "Holiday", date(2024, 2, 1)),
            make_all_day("e3", "Trip", date(2024, 3, 1), date(2024, 3, 4)),
        ]
    )
    tables = FakeTableStore([HEADER])
    _pull(sync_config, sync_logger, events, tables)

    by_id = {row[6]: row for row in tables.data_rows}
    assert by_id["e2"][3:5] == [datetime(2024, 2, 1), ""]
    assert by_id["e3"][3:5] == [datetime(2024, 3, 1), datetime(2024, 3, 3, 23, 59, 59)]


def test_changed_event_updates_row_in_place(sync_config, sync_logger):
    header = HEADER + ["Notes"]
    events = FakeEventStore([make_event("e1", "Renamed", location="Room 2")])
    tables = FakeTableStore([header, make_row("Original", event_id="e1") + ["my note"]])

    stats = _pull(sync_config, sync_logger, events, tables)

    (row,) = tables.data_rows
    assert row[0] == "Renamed"
    assert row[2] == "Room 2"
    assert row[7] == "my note"
    assert stats.modified == 1
    assert tables.trailing_deletes == []


def test_rows_without_events_are_removed(sync_config, sync_logger):
    events = FakeEventStore([make_event("e2", "Keep")])
    tables = FakeTableStore(
        [
            HEADER,
            make_row("Gone 1", event_id="e1"),
            make_row("Keep", event_id="e2"),
            make_row("Typed by hand"),
            make_row("Gone 2", event_id="e3"),
        ]
    )

    stats = _pull(sync_config, sync_logger, events, tables)

    assert [row[0] for row in tables.data_rows] == ["Keep"]
    assert stats.deleted == 3
    assert tables.trailing_deletes == [(2, 3)]


def test_added_rows_follow_existing_rows(sync_config, sync_logger):
    events = FakeEventStore([make_event("new", "New"), make_event("e1", "Old")])
    tables = FakeTableStore([HEADER, make_row("Old", event_id="e1")])

    _pull(sync_config, sync_logger, events, tables)

    assert [row[6] for row in tables.data_rows] == ["e1", "new"]


def test_converges_after_one_pass(sync_config, sync_logger):
    events = FakeEventStore(
        [make_event("e1", "A"), make_event("e2", "B", datetime(2024, 1, 3, 8), datetime(2024, 1, 3, 9))]
    )
    tables = FakeTableStore(
        [HEADER, make_row("stale", event_id="e1"), make_row("orphan", event_id="zz")]
    )

    _pull(sync_config, sync_logger, events, tables)
    tables.reset_counters()
    stats = _pull(sync_config, sync_logger, events, tables)

    assert tables.mutation_count == 0
    assert stats.unchanged == 2


def test_missing_required_column_aborts(sync_config, sync_logger):
    header = ["Title", "Description", "Location", "End Time", "Guests", "Id"]
    events = FakeEventStore([make_event("e1")])
    tables = FakeTableStore([header, ["Row", "", "", "", "", "e9"]])

    with pytest.raises(SchemaError) as exc_info:
        _pull(sync_config, sync_logger, events, tables)

    assert exc_info.value.missing_labels == ["Start Time"]
    assert tables.mutation_count == 0
    assert events.mutation_count == 0


def test_dry_run_writes_nothing(sync_config, sync_logger):
    sync_config.dry_run = True
    events = FakeEventStore([make_event("e1")])
    tables = FakeTableStore([HEADER, make_row("Old", event_id="x")])

    stats = _pull(sync_config, sync_logger, events, tables)

    assert tables.mutation_count == 0
    assert tables.data_rows == [make_row("Old", event_id="x")]
    assert (stats.added, stats.deleted) == (1, 1)


def test_dry_run_leaves_blank_sheet_untouched(sync_config, sync_logger):
    sync_config.dry_run = True
    tables = FakeTableStore([])
    _pull(sync_config, sync_logger, FakeEventStore([make_event("e1")]), tables)
    assert tables.rows == []
    assert tables.formats == {}
