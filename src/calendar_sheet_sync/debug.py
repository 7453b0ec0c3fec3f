"""
Inspection helpers for the CLI.

Importable functions:
  list_calendars(registry, console)  — render a Rich table of all calendars
  describe_sheet(rows, config, console)  — render the header mapping of a sheet
"""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .fieldmap import FieldMap
from .models import SyncConfig


def list_calendars(registry, console: Console) -> None:
    """Render all configured EDS calendars as a Rich table."""
    import gi

    gi.require_version("EDataServer", "1.2")
    gi.require_version("ECal", "2.0")
    from gi.repository import ECal
    from gi.repository import EDataServer

    sources = registry.list_sources(EDataServer.SOURCE_EXTENSION_CALENDAR)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Display Name", style="bold")
    table.add_column("Account")
    table.add_column("Mode")
    table.add_column("UID", style="dim")

    for source in sources:
        name = source.get_display_name() or "(unnamed)"
        uid = source.get_uid() or ""
        parent = source.get_parent()
        account = ""
        if parent:
            parent_source = registry.ref_source(parent)
            if parent_source:
                account = parent_source.get_display_name() or ""
        try:
            client = ECal.Client.connect_sync(source, ECal.ClientSourceType.EVENTS, 5, None)
            mode = "Read-write" if not client.is_readonly() else "Read-only"
            mode_style = "green" if not client.is_readonly() else "yellow"
        except Exception:
            mode = "Unknown"
            mode_style = "red"

        table.add_row(name, account, Text(mode, style=mode_style), uid)

    console.print(table)


def describe_sheet(rows: list[list], config: SyncConfig, console: Console) -> bool:
    """Render which sheet columns feed which record fields.

    Returns True when every required column is present.
    """
    if not rows:
        console.print("[yellow]Sheet is empty — a pull will create the header row.[/]")
        return True

    field_map, missing = FieldMap.build(rows[0], config.field_labels, config.required_fields)

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("#", justify="right")
    table.add_column("Column")
    table.add_column("Field")
    for idx, cell in enumerate(rows[0]):
        key = field_map.keys[idx]
        field_cell = Text(key, style="green") if key else Text("(unmapped)", style="dim")
        table.add_row(str(idx + 1), str(cell), field_cell)
    console.print(table)
    console.print(f"[bold]Data rows:[/] {len(rows) - 1}")

    if missing:
        labels = ", ".join(field_map.missing_labels(missing))
        console.print(f"[bold red]Missing required column(s):[/] {labels}")
        return False
    return True
