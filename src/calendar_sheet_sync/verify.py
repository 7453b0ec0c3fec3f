"""
Read-only audit: report drift between the calendar window and the sheet.
"""

import logging

from rich.console import Console
from rich.table import Table

from calendar_sheet_sync.matcher import match
from calendar_sheet_sync.models import Record
from calendar_sheet_sync.models import SyncConfig
from calendar_sheet_sync.normalizer import RecordNormalizer
from calendar_sheet_sync.sync.utils import load_field_map

_logger = logging.getLogger(__name__)


def _short_uid(uid: str) -> str:
    return uid[:16] + "…" if len(uid) > 16 else uid


def _when(record: Record) -> str:
    if record.starttime is None:
        return "—"
    return record.starttime.strftime("%Y-%m-%d %H:%M")


def _issue_table(title: str, records: list[Record], with_row: bool = False) -> Table:
    t = Table(title=title, show_header=True, header_style="bold")
    t.add_column("Title", overflow="fold", min_width=30)
    t.add_column("Start", width=16)
    t.add_column("Id", overflow="fold")
    if with_row:
        t.add_column("Row", justify="right")
    for record in records:
        cells = [record.title, _when(record), _short_uid(record.id)]
        if with_row:
            cells.append(str(record.row_index + 1))
        t.add_row(*cells)
    return t


def run_verify(config: SyncConfig, console: Console, event_store, table_store) -> bool:
    """Compare calendar and sheet without writing; True when they agree."""
    rows = table_store.read_all()
    field_map = load_field_map(rows[0] if rows else [], config)

    events = event_store.list_events(config.window_start, config.window_end)
    source = [RecordNormalizer.from_event(ev) for ev in events]
    dest = [
        RecordNormalizer.from_row(row, field_map, row_index=ridx)
        for ridx, row in enumerate(rows[1:], start=1)
    ]
    result = match(source, dest)
    _logger.debug(
        "verify: %d calendar events, %d sheet rows, %d pairings",
        len(source),
        len(dest),
        len(result.pairings),
    )

    ok_count = len(result.matched_same)
    console.print(f"Checking {len(source)} calendar event(s) against {len(dest)} sheet row(s)")
    if result.in_sync:
        console.print(f"[green]✓ All {ok_count} event(s) match the sheet.[/]")
        return True

    changed = [p.dest for p in result.matched_changed]
    if changed:
        console.print(
            _issue_table("[bold cyan]CHANGED[/] — row differs from its calendar event", changed, True)
        )
    if result.source_only:
        console.print(
            _issue_table("[bold red]CALENDAR ONLY[/] — event has no sheet row", result.source_only)
        )
    if result.dest_only:
        console.print(
            _issue_table(
                "[bold yellow]SHEET ONLY[/] — row has no calendar event", result.dest_only, True
            )
        )

    total_issues = len(changed) + len(result.source_only) + len(result.dest_only)
    console.print(
        f"\n[bold]{ok_count}/{len(source)}[/bold] calendar event(s) OK"
        f"\n[bold red]{total_issues}[/bold red] issue(s) found."
    )
    return False
