"""
Sheet→Calendar sync: the calendar is brought in line with the sheet rows.
"""

from ..matcher import MatchKind
from ..matcher import match
from ..models import CalendarEvent
from ..models import ConfigurationError
from ..models import Record
from ..models import RowValidationError
from ..models import SyncConfig
from ..models import SyncStats
from ..normalizer import RecordNormalizer
from ..throttle import ThrottledWriter
from .utils import all_day_span
from .utils import load_field_map


def _create_event(config: SyncConfig, writer: ThrottledWriter, record: Record) -> CalendarEvent:
    """Create a calendar event from a validated sheet record."""
    opts = {
        "description": record.description,
        "location": record.location,
        "guests": [g for g in record.guests.split(",") if g],
        "send_invites": config.send_invites,
    }
    span = all_day_span(record)
    if span is not None:
        first_day, end_day = span
        return writer.create_all_day_event(record.title, first_day, end_day=end_day, **opts)
    return writer.create_event(record.title, record.starttime, record.endtime, **opts)


def _process_create(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    record: Record,
    writer: ThrottledWriter,
):
    """Create a new event for a sheet row; returns the new event id."""
    if config.dry_run:
        logger.info(f"[DRY RUN] Would CREATE event {record.title!r} (row {record.row_index + 1})")
        stats.added += 1
        return None

    event = _create_event(config, writer, record)
    stats.added += 1
    logger.debug(f"Created event {event.id} from row {record.row_index + 1}")
    return event.id


def _process_update(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    record: Record,
    event_id: str,
    writer: ThrottledWriter,
):
    """Bring an existing event in line with its row; returns the (possibly new) id."""
    if config.dry_run:
        logger.info(f"[DRY RUN] Would UPDATE event {event_id} (row {record.row_index + 1})")
        stats.modified += 1
        return event_id

    if config.update_strategy == "auto" and writer.supports_update:
        writer.update_event(event_id, record, send_invites=config.send_invites)
        stats.modified += 1
        logger.debug(f"Updated event {event_id} in place")
        return event_id

    # No in-place update available: delete and re-create
    writer.delete_event(event_id)
    event = _create_event(config, writer, record)
    stats.modified += 1
    logger.debug(f"Recreated event {event_id} as {event.id}")
    return event.id


def _process_deletions(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    orphans: list[Record],
    updates: int,
    writer: ThrottledWriter,
    prompt,
):
    """Delete calendar events that no sheet row refers to."""
    if not orphans:
        return

    count = len(orphans)
    if not (config.auto_delete_churn and count <= updates):
        if config.dry_run:
            logger.info(f"[DRY RUN] Would ask before deleting {count} calendar event(s)")
            return
        if not prompt.confirm(f"Delete {count} calendar event(s) not found in sheet?"):
            logger.info(f"Keeping {count} calendar event(s) not found in sheet")
            return

    for record in orphans:
        if config.dry_run:
            logger.info(f"[DRY RUN] Would DELETE event {record.id} ({record.title!r})")
            stats.deleted += 1
            continue
        writer.delete_event(record.id)
        stats.deleted += 1
        logger.debug(f"Deleted event {record.id} ({record.title!r})")


def run_push(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    event_store,
    table_store,
    prompt,
):
    """Execute sheet → calendar reconciliation."""
    logger.info("Reading sheet...")
    rows = table_store.read_all()
    field_map = load_field_map(rows[0] if rows else [], config)
    if len(rows) < 2:
        # Header-only sheets are never pushed
        logger.error("Sheet has no data rows, refusing to push")
        raise ConfigurationError("Sheet must have a title row and at least one data row")
    id_col = field_map.index_of("id")

    logger.info("Fetching calendar events...")
    events = event_store.list_events(config.window_start, config.window_end)
    dest = [RecordNormalizer.from_event(ev) for ev in events]

    source = []
    for ridx in range(1, len(rows)):
        try:
            RecordNormalizer.validate_row(rows[ridx], field_map, ridx)
        except RowValidationError as e:
            logger.warning(str(e))
            prompt.alert(str(e))
            stats.skipped += 1
            continue
        source.append(RecordNormalizer.from_row(rows[ridx], field_map, row_index=ridx))

    logger.info(f"Processing {len(source)} sheet rows against {len(events)} calendar events...")
    result = match(source, dest)

    writer = ThrottledWriter(event_store, config.throttle_burst, config.throttle_delay)
    new_ids: dict[int, str] = {}
    updates = 0
    try:
        for pairing in result.pairings:
            record = pairing.source
            if pairing.kind is MatchKind.SAME:
                stats.unchanged += 1
            elif pairing.kind is MatchKind.CHANGED:
                updates += 1
                new_id = _process_update(config, stats, logger, record, pairing.dest.id, writer)
                if new_id != record.id:
                    new_ids[record.row_index] = new_id
            elif pairing.kind is MatchKind.SOURCE_ONLY:
                new_id = _process_create(config, stats, logger, record, writer)
                if new_id is not None:
                    new_ids[record.row_index] = new_id

        logger.info("Checking for deletions...")
        _process_deletions(
            config, stats, logger, result.dest_only, updates, writer, prompt
        )
    finally:
        # Ids of events created before a failure still belong in the sheet
        if new_ids and not config.dry_run:
            width = len(field_map)
            for ridx, new_id in new_ids.items():
                row = rows[ridx]
                if len(row) < width:
                    row.extend([""] * (width - len(row)))
                row[id_col] = new_id
            table_store.write_all(rows)
            logger.info(f"Wrote {len(new_ids)} new event id(s) back to sheet")
