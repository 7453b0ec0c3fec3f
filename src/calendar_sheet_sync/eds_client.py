"""
Evolution Data Server calendar wrapper implementing the event-store interface.
"""

import uuid
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Optional, Tuple

import gi
gi.require_version('EDataServer', '1.2')
gi.require_version('ECal', '2.0')
gi.require_version('ICalGLib', '3.0')
from gi.repository import EDataServer, ECal, ICalGLib, GLib

from .models import CalendarEvent
from .models import CapabilityError
from .models import ConfigurationError
from .models import Record

_MAILTO = "mailto:"


def get_calendar_display_info(calendar_uid: str) -> Tuple[str, str, str]:
    """
    Get human-readable information about a calendar.

    Returns:
        Tuple of (display_name, account_name, uid)
    """
    try:
        registry = EDataServer.SourceRegistry.new_sync(None)
        source = registry.ref_source(calendar_uid)

        if not source:
            return ("Unknown Calendar", "", calendar_uid)

        display_name = source.get_display_name() or "Unnamed Calendar"

        account_name = ""
        parent_uid = source.get_parent()
        if parent_uid:
            parent_source = registry.ref_source(parent_uid)
            if parent_source:
                account_name = parent_source.get_display_name() or ""

        return (display_name, account_name, calendar_uid)
    except Exception as e:
        return (f"Error: {e}", "", calendar_uid)


def parse_component(obj) -> ICalGLib.Component:
    """Handle both string and native Component objects from EDS API."""
    if isinstance(obj, str):
        return ICalGLib.Component.new_from_string(obj)
    return obj


def _vevent(comp: ICalGLib.Component) -> Optional[ICalGLib.Component]:
    if comp.isa() == ICalGLib.ComponentKind.VCALENDAR_COMPONENT:
        return comp.get_first_component(ICalGLib.ComponentKind.VEVENT_COMPONENT)
    if comp.isa() == ICalGLib.ComponentKind.VEVENT_COMPONENT:
        return comp
    return None


def _utc_stamp(value: datetime) -> str:
    """Format a naive local datetime as an iCal UTC timestamp."""
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _ical_time(value) -> ICalGLib.Time:
    if isinstance(value, datetime):
        return ICalGLib.Time.new_from_string(_utc_stamp(value))
    return ICalGLib.Time.new_from_string(value.strftime("%Y%m%d"))


def from_ical_time(t: ICalGLib.Time, zone: Optional[ICalGLib.Timezone] = None):
    """Convert an ICalGLib.Time to a date (all-day) or a naive local datetime."""
    if t.is_date():
        return date(t.get_year(), t.get_month(), t.get_day())

    wall = datetime(
        t.get_year(), t.get_month(), t.get_day(), t.get_hour(), t.get_minute(), t.get_second()
    )
    if t.is_utc():
        return wall.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    zone = zone or t.get_timezone()
    if zone is not None:
        return datetime.fromtimestamp(t.as_timet_with_zone(zone))
    # Floating time: already wall-clock local
    return wall


def _remove_all_properties(component: ICalGLib.Component, prop_kind: ICalGLib.PropertyKind):
    """Remove all instances of a specific property from a component."""
    prop = component.get_first_property(prop_kind)
    while prop:
        component.remove_property(prop)
        prop = component.get_first_property(prop_kind)


def _guest_emails(vevent: ICalGLib.Component) -> list[str]:
    guests = []
    prop = vevent.get_first_property(ICalGLib.PropertyKind.ATTENDEE_PROPERTY)
    while prop:
        value = prop.get_attendee() or ""
        if value.lower().startswith(_MAILTO):
            value = value[len(_MAILTO):]
        if value:
            guests.append(value)
        prop = vevent.get_next_property(ICalGLib.PropertyKind.ATTENDEE_PROPERTY)
    return guests


def _apply_fields(
    vevent: ICalGLib.Component,
    title: str,
    start,
    end,
    description: str,
    location: str,
    guests,
):
    """Overwrite the synced properties of a VEVENT, keeping everything else."""
    for kind in (
        ICalGLib.PropertyKind.SUMMARY_PROPERTY,
        ICalGLib.PropertyKind.DESCRIPTION_PROPERTY,
        ICalGLib.PropertyKind.LOCATION_PROPERTY,
        ICalGLib.PropertyKind.DTSTART_PROPERTY,
        ICalGLib.PropertyKind.DTEND_PROPERTY,
        ICalGLib.PropertyKind.DURATION_PROPERTY,
        ICalGLib.PropertyKind.ATTENDEE_PROPERTY,
    ):
        _remove_all_properties(vevent, kind)

    vevent.set_summary(title)
    vevent.set_dtstart(_ical_time(start))
    if end is not None:
        vevent.set_dtend(_ical_time(end))
    if description:
        vevent.set_description(description)
    if location:
        vevent.set_location(location)
    for guest in guests:
        vevent.add_property(ICalGLib.Property.new_attendee(f"{_MAILTO}{guest}"))


def _operation_flags(send_invites: bool):
    if send_invites:
        return ECal.OperationFlags.NONE
    return ECal.OperationFlags.DISABLE_ITIP_MESSAGE


class EDSEventStore:
    """Event store backed by an Evolution Data Server calendar."""

    supports_update = True

    def __init__(self, registry: EDataServer.SourceRegistry, calendar_uid: str):
        self.registry = registry
        self.calendar_uid = calendar_uid
        self.client: Optional[ECal.Client] = None

    @classmethod
    def from_registry(cls, calendar_uid: str) -> "EDSEventStore":
        try:
            registry = EDataServer.SourceRegistry.new_sync(None)
        except GLib.Error as e:
            raise ConfigurationError(f"EDS registry unreachable: {e.message}")
        return cls(registry, calendar_uid)

    def connect(self, timeout: int = 10):
        """Connect to the specified calendar in EDS."""
        source = self.registry.ref_source(self.calendar_uid)
        if not source:
            raise ConfigurationError(
                f"Calendar with UID '{self.calendar_uid}' not found in EDS"
            )

        try:
            self.client = ECal.Client.connect_sync(
                source,
                ECal.ClientSourceType.EVENTS,
                timeout,
                None
            )
        except GLib.Error as e:
            raise ConfigurationError(
                f"Failed to connect to calendar {self.calendar_uid}: {e.message}"
            )

    def _require_client(self) -> ECal.Client:
        if not self.client:
            raise ConfigurationError("Client not connected")
        return self.client

    def _zone_for(self, vevent: ICalGLib.Component, kind: ICalGLib.PropertyKind):
        """Resolve the TZID of a DTSTART/DTEND property through the calendar."""
        prop = vevent.get_first_property(kind)
        if not prop:
            return None
        param = prop.get_first_parameter(ICalGLib.ParameterKind.TZID_PARAMETER)
        if not param:
            return None
        try:
            return self.client.get_timezone_sync(param.get_tzid(), None)
        except GLib.Error:
            return None

    def _to_event(self, vevent: ICalGLib.Component) -> CalendarEvent:
        start_t = vevent.get_dtstart()
        end_t = vevent.get_dtend()
        all_day = start_t.is_date()

        start = from_ical_time(
            start_t, self._zone_for(vevent, ICalGLib.PropertyKind.DTSTART_PROPERTY)
        )
        if end_t is None or end_t.is_null_time():
            end = start + timedelta(days=1) if all_day else start
        else:
            end = from_ical_time(end_t, self._zone_for(vevent, ICalGLib.PropertyKind.DTEND_PROPERTY))

        return CalendarEvent(
            id=vevent.get_uid() or "",
            title=vevent.get_summary() or "",
            start=start,
            end=end,
            all_day=all_day,
            description=vevent.get_description() or "",
            location=vevent.get_location() or "",
            guests=_guest_emails(vevent),
        )

    def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Retrieve events occurring in [start, end)."""
        client = self._require_client()
        sexp = (
            f'(occur-in-time-range? (make-time "{_utc_stamp(start)}") '
            f'(make-time "{_utc_stamp(end)}"))'
        )
        try:
            _, objects = client.get_object_list_sync(sexp, None)
        except GLib.Error as e:
            raise ConfigurationError(f"Failed to fetch events: {e.message}")

        events = []
        seen = set()
        for obj in objects:
            vevent = _vevent(parse_component(obj))
            if not vevent:
                continue
            uid = vevent.get_uid()
            # Detached recurrence instances share the master's UID
            if uid in seen:
                continue
            seen.add(uid)
            events.append(self._to_event(vevent))
        return events

    def _create(self, vevent: ICalGLib.Component, send_invites: bool) -> str:
        client = self._require_client()
        try:
            success, out_uid = client.create_object_sync(
                vevent,
                _operation_flags(send_invites),
                None
            )
        except GLib.Error as e:
            raise CapabilityError(f"Failed to create event: {e.message}")
        if not success:
            raise CapabilityError("Failed to create event")
        return out_uid or vevent.get_uid()

    def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        *,
        description: str = "",
        location: str = "",
        guests=(),
        send_invites: bool = False,
    ) -> CalendarEvent:
        """Create a timed event."""
        vevent = ICalGLib.Component.new_vevent()
        vevent.set_uid(str(uuid.uuid4()))
        _apply_fields(vevent, title, start, end, description, location, guests)
        event_id = self._create(vevent, send_invites)
        return CalendarEvent(
            id=event_id,
            title=title,
            start=start,
            end=end,
            description=description,
            location=location,
            guests=list(guests),
        )

    def create_all_day_event(
        self,
        title: str,
        day: date,
        *,
        end_day: Optional[date] = None,
        description: str = "",
        location: str = "",
        guests=(),
        send_invites: bool = False,
    ) -> CalendarEvent:
        """Create an all-day event; ``end_day`` is exclusive (default: the next day)."""
        end_day = end_day or day + timedelta(days=1)
        vevent = ICalGLib.Component.new_vevent()
        vevent.set_uid(str(uuid.uuid4()))
        _apply_fields(vevent, title, day, end_day, description, location, guests)
        event_id = self._create(vevent, send_invites)
        return CalendarEvent(
            id=event_id,
            title=title,
            start=day,
            end=end_day,
            all_day=True,
            description=description,
            location=location,
            guests=list(guests),
        )

    def update_event(self, event_id: str, record: Record, *, send_invites: bool = False):
        """Rewrite the synced fields of an existing event in place."""
        from .sync.utils import all_day_span

        client = self._require_client()
        try:
            _, obj = client.get_object_sync(event_id, None, None)
        except GLib.Error as e:
            raise CapabilityError(f"Failed to fetch event {event_id}: {e.message}")
        vevent = _vevent(parse_component(obj))
        if not vevent:
            raise CapabilityError(f"Event {event_id} has no VEVENT component")

        span = all_day_span(record)
        start, end = span if span is not None else (record.starttime, record.endtime)
        _apply_fields(
            vevent,
            record.title,
            start,
            end,
            record.description,
            record.location,
            [g for g in record.guests.split(",") if g],
        )
        try:
            success = client.modify_object_sync(
                vevent,
                ECal.ObjModType.ALL,
                _operation_flags(send_invites),
                None
            )
        except GLib.Error as e:
            raise CapabilityError(f"Failed to modify event {event_id}: {e.message}")
        if not success:
            raise CapabilityError(f"Failed to modify event {event_id}")

    def delete_event(self, event_id: str):
        """Remove an event from the calendar."""
        client = self._require_client()
        try:
            success = client.remove_object_sync(
                event_id,
                None,  # rid (recurrence-id)
                ECal.ObjModType.ALL,
                ECal.OperationFlags.NONE,
                None  # cancellable
            )
        except GLib.Error as e:
            raise CapabilityError(f"Failed to remove event {event_id}: {e.message}")
        if not success:
            raise CapabilityError(f"Failed to remove event {event_id}")
