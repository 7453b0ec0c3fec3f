"""
Shared pytest fixtures.
"""

import logging

import pytest

from calendar_sheet_sync.models import SyncConfig
from calendar_sheet_sync.models import SyncStats

CALENDAR_ID = "calendar-test"


@pytest.fixture
def sheet_path(tmp_path):
    return tmp_path / "events.csv"


@pytest.fixture
def sync_config(sheet_path):
    return SyncConfig(
        calendar_id=CALENDAR_ID,
        sheet_path=sheet_path,
        throttle_delay=0,
        dry_run=False,
        verbose=False,
    )


@pytest.fixture
def sync_logger():
    return logging.getLogger("test_sync")


@pytest.fixture
def sync_stats():
    return SyncStats()
