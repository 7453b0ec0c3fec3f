"""
Unit tests for the EDS event-store helpers.

Components are built from iCal text with ICalGLib; the ECal client is a small
stand-in so no running evolution-data-server is needed.
"""

from datetime import date
from datetime import datetime
from datetime import timezone

import pytest

try:
    from calendar_sheet_sync import eds_client
except (ImportError, ValueError):
    pytest.skip("ICalGLib / ECal typelibs not available", allow_module_level=True)

from gi.repository import ECal
from gi.repository import ICalGLib

from calendar_sheet_sync.models import ConfigurationError
from calendar_sheet_sync.models import Record


def _vevent(body: str) -> str:
    return "BEGIN:VEVENT\n" + body.strip() + "\nEND:VEVENT\n"


STANDUP = _vevent(
    """
UID:e1
SUMMARY:Standup
DESCRIPTION:Daily
LOCATION:Room 1
DTSTART:20240102T090000Z
DTEND:20240102T091500Z
ATTENDEE:mailto:a@example.com
ATTENDEE:MAILTO:b@example.com
"""
)

TRIP = _vevent(
    """
UID:e2
SUMMARY:Trip
DTSTART;VALUE=DATE:20240501
DTEND;VALUE=DATE:20240503
"""
)


def _local(year, month, day, hour, minute=0):
    utc = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    return utc.astimezone().replace(tzinfo=None)


class _FakeECalClient:
    """Answers the handful of ECal.Client calls EDSEventStore makes."""

    def __init__(self, objects: list[str]):
        self.objects = objects
        self.sexps: list[str] = []
        self.modified: list[tuple] = []

    def get_object_list_sync(self, sexp, cancellable):
        self.sexps.append(sexp)
        return True, list(self.objects)

    def get_object_sync(self, uid, rid, cancellable):
        for obj in self.objects:
            comp = ICalGLib.Component.new_from_string(obj)
            if comp.get_uid() == uid:
                return True, comp
        raise AssertionError(f"unknown uid {uid}")

    def modify_object_sync(self, comp, mod, flags, cancellable):
        self.modified.append((comp, mod, flags))
        return True


def _store(objects: list[str]) -> eds_client.EDSEventStore:
    store = eds_client.EDSEventStore(None, "calendar-test")
    store.client = _FakeECalClient(objects)
    return store


class TestTimeConversion:
    def test_date_value_is_date(self):
        t = ICalGLib.Time.new_from_string("20240501")
        assert eds_client.from_ical_time(t) == date(2024, 5, 1)

    def test_utc_value_becomes_local(self):
        t = ICalGLib.Time.new_from_string("20240102T090000Z")
        assert eds_client.from_ical_time(t) == _local(2024, 1, 2, 9)

    def test_floating_value_kept_as_wall_clock(self):
        t = ICalGLib.Time.new_from_string("20240102T090000")
        assert eds_client.from_ical_time(t) == datetime(2024, 1, 2, 9)


class TestListEvents:
    def test_converts_timed_event(self):
        (event,) = _store([STANDUP]).list_events(datetime(2024, 1, 1), datetime(2025, 1, 1))
        assert event.id == "e1"
        assert event.title == "Standup"
        assert event.description == "Daily"
        assert event.location == "Room 1"
        assert (event.start, event.end) == (_local(2024, 1, 2, 9), _local(2024, 1, 2, 9, 15))
        assert not event.all_day
        assert event.guests == ["a@example.com", "b@example.com"]

    def test_converts_all_day_event(self):
        (event,) = _store([TRIP]).list_events(datetime(2024, 1, 1), datetime(2025, 1, 1))
        assert event.all_day
        assert (event.start, event.end) == (date(2024, 5, 1), date(2024, 5, 3))

    def test_repeated_uid_listed_once(self):
        events = _store([STANDUP, STANDUP, TRIP]).list_events(
            datetime(2024, 1, 1), datetime(2025, 1, 1)
        )
        assert [ev.id for ev in events] == ["e1", "e2"]

    def test_window_sent_as_time_range_query(self):
        store = _store([])
        store.list_events(datetime(2024, 1, 1), datetime(2025, 1, 1))
        assert store.client.sexps[0].startswith("(occur-in-time-range? (make-time ")


class TestUpdateEvent:
    def test_rewrites_synced_fields_only(self):
        store = _store([STANDUP])
        record = Record(
            id="e1",
            title="Renamed",
            starttime=datetime(2024, 1, 3, 10),
            endtime=datetime(2024, 1, 3, 11),
            guests="c@example.com",
        )

        store.update_event("e1", record)

        ((comp, mod, flags),) = store.client.modified
        assert comp.get_uid() == "e1"
        assert comp.get_summary() == "Renamed"
        assert eds_client._guest_emails(comp) == ["c@example.com"]
        assert eds_client.from_ical_time(comp.get_dtstart()) == datetime(2024, 1, 3, 10)
        assert mod == ECal.ObjModType.ALL
        assert flags == ECal.OperationFlags.DISABLE_ITIP_MESSAGE

    def test_empty_end_becomes_all_day(self):
        store = _store([STANDUP])
        record = Record(id="e1", title="Holiday", starttime=datetime(2024, 5, 1))

        store.update_event("e1", record, send_invites=True)

        ((comp, _, flags),) = store.client.modified
        assert comp.get_dtstart().is_date()
        assert eds_client.from_ical_time(comp.get_dtend()) == date(2024, 5, 2)
        assert flags == ECal.OperationFlags.NONE


def test_unconnected_store_raises():
    store = eds_client.EDSEventStore(None, "calendar-test")
    with pytest.raises(ConfigurationError):
        store.list_events(datetime(2024, 1, 1), datetime(2025, 1, 1))
