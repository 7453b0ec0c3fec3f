"""
Calendar→Sheet sync: the sheet is refreshed to mirror the calendar window.
"""

from ..fieldmap import FieldMap
from ..matcher import MatchKind
from ..matcher import match
from ..models import SyncConfig
from ..models import SyncStats
from ..normalizer import RecordNormalizer
from .utils import is_blank_sheet
from .utils import load_field_map


def _initialise_sheet(config: SyncConfig, logger, table_store) -> list[list]:
    """Write the reference header and set up column presentation."""
    header = FieldMap.reference_header(config.field_labels)
    if config.dry_run:
        logger.info("[DRY RUN] Would initialise empty sheet with header row")
        return [header]

    logger.info("Sheet is empty, writing header row")
    table_store.write_all([header])
    for key in ("starttime", "endtime"):
        table_store.set_column_format(header.index(config.field_labels[key]), config.datetime_format)
    table_store.hide_column(header.index(config.field_labels["id"]))
    return [header]


def run_pull(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    event_store,
    table_store,
):
    """Execute calendar → sheet reconciliation."""
    logger.info("Fetching calendar events...")
    events = event_store.list_events(config.window_start, config.window_end)

    logger.info("Reading sheet...")
    rows = table_store.read_all()
    if is_blank_sheet(rows):
        rows = _initialise_sheet(config, logger, table_store)

    field_map = load_field_map(rows[0], config)
    original = [list(row) for row in rows]

    source = [RecordNormalizer.from_event(ev) for ev in events]
    dest = [
        RecordNormalizer.from_row(row, field_map, row_index=ridx)
        for ridx, row in enumerate(rows[1:], start=1)
    ]

    logger.info(f"Processing {len(source)} calendar events against {len(dest)} sheet rows...")
    result = match(source, dest)

    retained: set[int] = set()
    for pairing in result.pairings:
        if pairing.kind is MatchKind.DEST_ONLY:
            continue
        if pairing.kind is MatchKind.SOURCE_ONLY:
            rows.append(RecordNormalizer.to_row(pairing.source, field_map))
            retained.add(len(rows) - 1)
            stats.added += 1
            logger.debug(f"Adding row for event {pairing.source.id} ({pairing.source.title!r})")
            continue

        ridx = pairing.dest.row_index
        retained.add(ridx)
        if pairing.kind is MatchKind.CHANGED:
            rows[ridx] = RecordNormalizer.to_row(pairing.source, field_map, rows[ridx])
            stats.modified += 1
            logger.debug(f"Updating row {ridx + 1} from event {pairing.source.id}")
        else:
            stats.unchanged += 1

    # Collect first, then delete from the bottom so earlier indices stay valid
    doomed = sorted((ridx for ridx in range(1, len(rows)) if ridx not in retained), reverse=True)
    for ridx in doomed:
        logger.debug(f"Removing row {ridx + 1} (no matching calendar event)")
        del rows[ridx]
    stats.deleted += len(doomed)

    if rows == original:
        logger.info("Sheet already matches calendar")
        return

    if config.dry_run:
        logger.info(
            f"[DRY RUN] Would write {len(rows)} rows "
            f"({stats.added} added, {stats.modified} updated, {stats.deleted} removed)"
        )
        return

    table_store.write_all(rows)
    if doomed:
        table_store.delete_trailing_rows(len(rows), len(doomed))
    logger.info(f"Wrote {len(rows) - 1} data rows to sheet")
