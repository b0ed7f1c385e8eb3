from __future__ import annotations

import pytest

from ledgersync.config.sync import SyncConfig
from tests.helpers.ledger import FakeLedger, RecordingPublisher, RecordingSleep


@pytest.fixture
def sync_config() -> SyncConfig:
    """One second per time unit so recorded delays read as time units."""
    return SyncConfig(time_unit_seconds=1.0)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
