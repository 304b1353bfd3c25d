"""
Shared fixtures.

Every test gets its own in-memory SQLite database and a controllable
clock, so timestamps and ordering are deterministic.
"""

from datetime import datetime, timedelta, timezone

import pytest

from accountable.audit import AuditStore
from accountable.config import AuditSettings, DatabaseSettings
from accountable.services.storage import DatabaseClient, SqlAuditStorage, SqlLedgerStorage
from accountable.verification import VerificationService


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def audit_settings():
    return AuditSettings(
        page_size=10,
        max_page_size=50,
        recent_verifications_limit=5,
        explorer_limit=10,
        token_preview_length=10,
    )


@pytest.fixture
def database():
    client = DatabaseClient(settings=DatabaseSettings(url="sqlite://"))
    client.create_schema()
    yield client
    client.dispose()


@pytest.fixture
def audit_storage(database, clock):
    return SqlAuditStorage(database, clock=clock)


@pytest.fixture
def audit_store(audit_storage, audit_settings):
    return AuditStore(audit_storage, settings=audit_settings)


@pytest.fixture
def ledger(database):
    return SqlLedgerStorage(database)


@pytest.fixture
def verification(ledger, audit_store, audit_settings):
    return VerificationService(ledger, audit_store, settings=audit_settings)
