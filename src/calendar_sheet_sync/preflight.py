"""
Preflight checks run before sync to catch common misconfigurations early.
"""

import logging
import os

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from calendar_sheet_sync.models import SyncConfig

logger = logging.getLogger(__name__)

_OFFLINE_KEYWORDS = frozenset(
    {
        "offline",
        "network",
        "transport",
        "unreachable",
        "not connected",
        "no route",
        "authentication failed",
        "connection refused",
        "temporary failure",
    }
)


def check_sheet_path(cfg: SyncConfig) -> list[tuple[str, str, str]]:
    """Return (label, detail, hint) issues for the sheet file location."""
    issues = []
    path = cfg.sheet_path
    if path.exists():
        if path.is_dir():
            issues.append(("Sheet", f"{path} is a directory", "Point --sheet at a .csv file"))
        elif not os.access(path, os.R_OK | os.W_OK):
            logger.error("Sheet not readable/writable: %s", path)
            issues.append(("Sheet", f"{path}: permission denied", f"Check permissions on {path}"))
    elif cfg.direction == "push":
        issues.append(("Sheet", f"{path} does not exist", "Run a pull first to create it"))
    elif path.parent.exists() and not os.access(path.parent, os.W_OK):
        logger.error("Cannot create sheet in %s", path.parent)
        issues.append(
            ("Sheet", f"{path.parent} is not writable", f"Check permissions on {path.parent}")
        )
    return issues


def run_preflight_checks(cfg: SyncConfig, console: Console) -> bool:
    """Return True if sync may proceed; print issues and return False otherwise."""
    import gi

    gi.require_version("ECal", "2.0")
    gi.require_version("EDataServer", "1.2")
    from gi.repository import ECal
    from gi.repository import EDataServer
    from gi.repository import GLib

    issues: list[tuple[str, str, str]] = []  # (label, detail, hint)

    # 1. EDS registry reachable
    try:
        registry = EDataServer.SourceRegistry.new_sync(None)
    except Exception as e:
        logger.error("EDS registry unreachable: %s", e)
        issues.append(("EDS registry", str(e), "Is evolution-data-server running?"))
        _print_issues(issues, console)
        return False

    # 2. Calendar UID exists + connectable
    source = registry.ref_source(cfg.calendar_id)
    if source is None:
        logger.error("Calendar UID not found in EDS: %s", cfg.calendar_id)
        issues.append(
            ("Calendar", f"UID not found: {cfg.calendar_id}", "Run: calendar-sheet-sync calendars")
        )
    else:
        try:
            client = ECal.Client.connect_sync(source, ECal.ClientSourceType.EVENTS, 5, None)
            if cfg.direction == "push" and client.is_readonly():
                issues.append(
                    ("Calendar", "calendar is read-only", "Pick a writable calendar to push to")
                )
        except GLib.Error as e:
            msg = e.message or str(e)
            logger.error("Cannot connect to calendar (%s): %s", cfg.calendar_id, msg)
            if any(kw in msg.lower() for kw in _OFFLINE_KEYWORDS):
                hint = "Calendar appears offline — check GNOME Online Accounts"
            else:
                hint = msg
            issues.append(("Calendar", f"Connection failed: {msg}", hint))

    # 3. Sheet file usable
    issues.extend(check_sheet_path(cfg))

    if issues:
        _print_issues(issues, console)
        return False

    return True


def _print_issues(issues: list[tuple[str, str, str]], console: Console) -> None:
    body = Text()
    for i, (label, detail, hint) in enumerate(issues):
        if i:
            body.append("\n")
        body.append(f"  ✗  {label}: ", style="bold red")
        body.append(detail, style="bold red")
        body.append(f"\n       → {hint}", style="yellow")

    console.print(Panel(body, title="[bold red]Preflight checks failed[/bold red]"))
