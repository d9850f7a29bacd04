"""Shared pytest fixtures for the attestation scheduler test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from attestation.audit.logger import AuditLogger
from attestation.audit.store import init_audit_table
from attestation.domain.models import DispatchResult
from attestation.store.assets import AssetStore, NewAssetStore
from attestation.store.campaigns import CampaignStore
from attestation.store.database import Database
from attestation.store.invites import PendingInviteStore
from attestation.store.records import RecordStore
from attestation.store.schema import init_attestation_db
from attestation.store.users import UserStore

# Campaign start used throughout the suite.
CAMPAIGN_START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, days: float) -> None:
        """Move to *days* after the campaign start."""
        self.now = CAMPAIGN_START + timedelta(days=days)

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at the campaign start."""
    return FakeClock(CAMPAIGN_START)


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    """An in-memory attestation database with the audit table."""
    connection = init_attestation_db(":memory:")
    init_audit_table(connection)
    yield connection
    connection.close()


@pytest.fixture
def db(conn: sqlite3.Connection) -> Database:
    return Database(conn)


@pytest.fixture
def campaigns(db: Database) -> CampaignStore:
    return CampaignStore(db)


@pytest.fixture
def records(db: Database) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def invites(db: Database) -> PendingInviteStore:
    return PendingInviteStore(db)


@pytest.fixture
def users(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def assets(db: Database) -> AssetStore:
    return AssetStore(db)


@pytest.fixture
def new_assets(db: Database) -> NewAssetStore:
    return NewAssetStore(db)


@pytest.fixture
def audit(db: Database) -> AuditLogger:
    return AuditLogger(db)


@pytest.fixture
def dispatcher() -> MagicMock:
    """A dispatcher whose every send succeeds."""
    mock = MagicMock()
    ok = DispatchResult(success=True)
    mock.send_reminder.return_value = ok
    mock.send_escalation.return_value = ok
    mock.send_unregistered_reminder.return_value = ok
    mock.send_unregistered_escalation.return_value = ok
    return mock
