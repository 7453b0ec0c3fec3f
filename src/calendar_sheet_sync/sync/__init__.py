"""
CalendarSheetSynchronizer — thin orchestrator that delegates to sync submodules.
"""

import logging

from calendar_sheet_sync.models import CalendarSyncError
from calendar_sheet_sync.models import SyncConfig
from calendar_sheet_sync.models import SyncStats
from calendar_sheet_sync.sync.pull import run_pull
from calendar_sheet_sync.sync.push import run_push


class CalendarSheetSynchronizer:
    """Main synchronization engine.

    ``event_store``, ``table_store`` and ``prompt`` default to the Evolution
    Data Server calendar, the CSV sheet and a console prompt; tests pass
    in-memory stand-ins.
    """

    def __init__(self, config: SyncConfig, event_store=None, table_store=None, prompt=None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.stats = SyncStats()
        self.event_store = event_store
        self.table_store = table_store
        self.prompt = prompt

    def _connect(self):
        if self.event_store is None:
            from calendar_sheet_sync.eds_client import EDSEventStore

            self.logger.info("Connecting to Evolution Data Server...")
            self.event_store = EDSEventStore.from_registry(self.config.calendar_id)
            self.event_store.connect()

        if self.table_store is None:
            from calendar_sheet_sync.table_store import CsvTableStore

            self.table_store = CsvTableStore.from_config(self.config)

        if self.prompt is None:
            from calendar_sheet_sync.prompt import ConsolePrompt

            self.prompt = ConsolePrompt(assume_yes=self.config.yes)

    def run(self) -> SyncStats:
        """Execute one reconciliation pass in the configured direction."""
        self._connect()
        try:
            if self.config.direction == "pull":
                run_pull(self.config, self.stats, self.logger, self.event_store, self.table_store)
            elif self.config.direction == "push":
                run_push(
                    self.config,
                    self.stats,
                    self.logger,
                    self.event_store,
                    self.table_store,
                    self.prompt,
                )
            else:
                raise CalendarSyncError(f"Unknown sync direction: {self.config.direction!r}")
        except CalendarSyncError as e:
            self.logger.error(f"Sync failed: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error: {e}", exc_info=True)
            raise

        return self.stats
