"""
Command-line interface for Calendar Sheet Sync.
"""

import logging
from configparser import ConfigParser
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from calendar_sheet_sync.models import DEFAULT_CONFIG
from calendar_sheet_sync.models import DEFAULT_LABELS
from calendar_sheet_sync.models import CalendarSyncError
from calendar_sheet_sync.models import SyncConfig
from calendar_sheet_sync.sync import CalendarSheetSynchronizer

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Mirror an Evolution calendar into a CSV sheet and back.",
)

console = Console()

_SECTION = "calendar-sheet-sync"


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )


def _load_config_file(config_path: Path) -> ConfigParser:
    parser = ConfigParser()
    if config_path.exists():
        parser.read(config_path)
    if _SECTION not in parser:
        parser.add_section(_SECTION)
    return parser


def _load_labels(parser: ConfigParser) -> dict[str, str]:
    """Display labels, with per-field overrides from the [labels] section."""
    labels = dict(DEFAULT_LABELS)
    if parser.has_section("labels"):
        for key, label in parser["labels"].items():
            if key not in labels:
                raise typer.BadParameter(f"Unknown field {key!r} in [labels]")
            labels[key] = label
    return labels


def _parse_date(value: str | None, option: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date {value!r}", param_hint=option) from None


def _build_config(
    calendar: str | None,
    sheet: Path | None,
    direction: str,
    dry_run: bool = False,
    yes: bool = False,
    send_invites: bool = False,
    from_date: str | None = None,
    to_date: str | None = None,
) -> SyncConfig:
    parser = _load_config_file(state.config_path)
    section = parser[_SECTION]

    calendar_id = calendar or section.get("calendar_id")
    sheet_path = sheet
    if sheet_path is None and section.get("sheet_path"):
        sheet_path = Path(section["sheet_path"]).expanduser()
    if not calendar_id or not sheet_path:
        console.print(
            "[bold red]Error:[/] Calendar ID and sheet path must be provided via "
            "[cyan]--calendar[/]/[cyan]--sheet[/] or in the config file."
        )
        raise typer.Exit(1)

    cfg = SyncConfig(
        calendar_id=calendar_id,
        sheet_path=sheet_path,
        field_labels=_load_labels(parser),
        send_invites=send_invites or section.getboolean("send_invites", False),
        throttle_burst=section.getint("throttle_burst", 10),
        throttle_delay=section.getfloat("throttle_delay", 0.075),
        auto_delete_churn=section.getboolean("auto_delete_churn", True),
        update_strategy=section.get("update_strategy", "auto"),
        direction=direction,
        dry_run=dry_run,
        verbose=state.verbose,
        yes=yes,
    )
    if "datetime_format" in section:
        # ConfigParser interpolation would eat the % signs
        cfg.datetime_format = section.get("datetime_format", raw=True)
    if cfg.update_strategy not in ("auto", "recreate"):
        raise typer.BadParameter(
            f"update_strategy must be 'auto' or 'recreate', not {cfg.update_strategy!r}"
        )

    cfg.window_start = _parse_date(from_date, "--from-date") or cfg.window_start
    cfg.window_end = _parse_date(to_date, "--to-date") or cfg.window_end
    if cfg.window_end <= cfg.window_start:
        raise typer.BadParameter("--to-date must be after --from-date")
    return cfg


def _calendar_label(calendar_id: str) -> tuple[str, str]:
    from calendar_sheet_sync.eds_client import get_calendar_display_info

    name, account, uid = get_calendar_display_info(calendar_id)
    return name + (f" ({account})" if account else ""), uid


def _run_sync(cfg: SyncConfig) -> None:
    """Core sync runner: display panel, confirm, run, show results."""
    from calendar_sheet_sync.preflight import run_preflight_checks

    if not run_preflight_checks(cfg, console):
        raise typer.Exit(1)

    calendar_display, calendar_uid = _calendar_label(cfg.calendar_id)

    # -- Info panel ----------------------------------------------------------
    direction_label = {
        "pull": "[cyan]→ Calendar → Sheet[/]",
        "push": "[cyan]← Sheet → Calendar[/]",
    }[cfg.direction]

    info = Text()
    info.append("  Calendar:  ", style="bold")
    info.append(f"{calendar_display}\n")
    info.append(f"             {calendar_uid}\n", style="dim")
    info.append("  Sheet:     ", style="bold")
    info.append(f"{cfg.sheet_path}\n")
    info.append("  Window:    ", style="bold")
    info.append(f"{cfg.window_start:%Y-%m-%d} → {cfg.window_end:%Y-%m-%d}\n")
    info.append("  Direction: ", style="bold")
    info.append_text(Text.from_markup(direction_label))
    if cfg.send_invites:
        info.append("\n  Invites:   ")
        info.append("sent to guests", style="yellow")
    if cfg.dry_run:
        info.append("\n  Mode:      ")
        info.append("DRY RUN", style="bold magenta")

    console.print(Panel(info, title="[bold]Calendar Sheet Sync[/bold]"))

    # -- Confirmation --------------------------------------------------------
    if not cfg.yes and not cfg.dry_run:
        typer.confirm("Proceed?", abort=True)

    # -- Run -----------------------------------------------------------------
    try:
        stats = CalendarSheetSynchronizer(cfg).run()
    except CalendarSyncError as e:
        console.print(f"[bold red]Sync failed:[/] {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted by user[/]")
        raise typer.Exit(130) from None
    except Exception as e:
        console.print_exception()
        console.print(f"[bold red]Unexpected error:[/] {e}")
        raise typer.Exit(1) from e

    # -- Results table -------------------------------------------------------
    results = Table.grid(padding=(0, 2))
    results.add_column(style="bold")
    results.add_column(justify="right")
    results.add_row("Added", str(stats.added))
    results.add_row("Modified", str(stats.modified))
    results.add_row("Deleted", str(stats.deleted))
    results.add_row("Unchanged", str(stats.unchanged))
    skipped_val = Text(str(stats.skipped))
    if stats.skipped == 0:
        skipped_val.append(" ✓", style="green")
    else:
        skipped_val.stylize("bold yellow")
    results.add_row("Skipped rows", skipped_val)

    console.print(Panel(results, title="[bold]Results[/bold]", expand=False))


# ---------------------------------------------------------------------------
# Subcommands: pull / push share the same options
# ---------------------------------------------------------------------------

_CAL_OPT = Annotated[
    str | None,
    typer.Option("--calendar", help="EDS calendar UID (overrides config)"),
]
_SHEET_OPT = Annotated[
    Path | None,
    typer.Option("--sheet", "-s", help="CSV sheet path (overrides config)"),
]
_FROM = Annotated[
    str | None,
    typer.Option("--from-date", help="Window start YYYY-MM-DD (default: 1970-01-01)"),
]
_TO = Annotated[
    str | None,
    typer.Option("--to-date", help="Window end YYYY-MM-DD (default: 2030-01-01)"),
]
_DRY_RUN = Annotated[bool, typer.Option("--dry-run", "-n", help="Preview changes without applying")]
_YES = Annotated[
    bool, typer.Option("--yes", "-y", help="Skip confirmation prompts, including bulk deletes")
]
_INVITES = Annotated[
    bool, typer.Option("--send-invites", help="Email invitations to guests of created events")
]


@app.command()
def pull(
    calendar: _CAL_OPT = None,
    sheet: _SHEET_OPT = None,
    from_date: _FROM = None,
    to_date: _TO = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Update the sheet from the calendar.

    Rows whose event no longer exists are removed from the sheet.
    """
    _run_sync(
        _build_config(
            calendar,
            sheet,
            "pull",
            dry_run=dry_run,
            yes=yes,
            from_date=from_date,
            to_date=to_date,
        )
    )


@app.command()
def push(
    calendar: _CAL_OPT = None,
    sheet: _SHEET_OPT = None,
    from_date: _FROM = None,
    to_date: _TO = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
    send_invites: _INVITES = False,
) -> None:
    """Update the calendar from the sheet.

    Changed rows replace their event; calendar events without a row are
    deleted after confirmation.
    """
    _run_sync(
        _build_config(
            calendar,
            sheet,
            "push",
            dry_run=dry_run,
            yes=yes,
            send_invites=send_invites,
            from_date=from_date,
            to_date=to_date,
        )
    )


# ---------------------------------------------------------------------------
# Subcommand: verify
# ---------------------------------------------------------------------------


@app.command()
def verify(
    calendar: _CAL_OPT = None,
    sheet: _SHEET_OPT = None,
    from_date: _FROM = None,
    to_date: _TO = None,
) -> None:
    """Report differences between calendar and sheet without changing either.

    Exits with code 1 if any differences are found.
    """
    from calendar_sheet_sync.eds_client import EDSEventStore
    from calendar_sheet_sync.table_store import CsvTableStore
    from calendar_sheet_sync.verify import run_verify

    cfg = _build_config(calendar, sheet, "pull", from_date=from_date, to_date=to_date)
    try:
        event_store = EDSEventStore.from_registry(cfg.calendar_id)
        event_store.connect()
        ok = run_verify(cfg, console, event_store, CsvTableStore.from_config(cfg))
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None
    if not ok:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Subcommand: status
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """Show sync configuration and how the sheet header maps to fields."""
    from calendar_sheet_sync.debug import describe_sheet
    from calendar_sheet_sync.table_store import CsvTableStore

    config_exists = state.config_path.exists()
    parser = _load_config_file(state.config_path)
    section = parser[_SECTION]
    calendar_id = section.get("calendar_id")
    sheet_path = section.get("sheet_path")

    cfg_info = Text()
    cfg_info.append("  Config:   ", style="bold")
    cfg_info.append(str(state.config_path) + " ")
    cfg_info.append(
        "✓" if config_exists else "(not found)", style="green" if config_exists else "red"
    )
    cfg_info.append("\n  Calendar: ", style="bold")
    cfg_info.append(calendar_id or "(not set)", style=None if calendar_id else "yellow")
    cfg_info.append("\n  Sheet:    ", style="bold")
    cfg_info.append(sheet_path or "(not set)", style=None if sheet_path else "yellow")

    console.print(Panel(cfg_info, title="[bold]Calendar Sheet Sync — Status[/bold]"))

    if not sheet_path:
        return

    path = Path(sheet_path).expanduser()
    if not path.exists():
        console.print(
            "[yellow]No sheet yet — run[/] [cyan]calendar-sheet-sync pull[/] [yellow]to create it.[/]"
        )
        return

    cfg = SyncConfig(
        calendar_id=calendar_id or "", sheet_path=path, field_labels=_load_labels(parser)
    )
    if "datetime_format" in section:
        cfg.datetime_format = section.get("datetime_format", raw=True)
    if not describe_sheet(CsvTableStore.from_config(cfg).read_all(), cfg, console):
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Subcommand: calendars
# ---------------------------------------------------------------------------


@app.command()
def calendars() -> None:
    """List all configured EDS calendars."""
    import gi

    gi.require_version("EDataServer", "1.2")
    from gi.repository import EDataServer

    from calendar_sheet_sync.debug import list_calendars as _list_calendars

    registry = EDataServer.SourceRegistry.new_sync(None)
    _list_calendars(registry, console)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
