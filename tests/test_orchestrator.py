"""
End-to-end wiring test: one in-memory database behind every component.
"""

import pytest
from decimal import Decimal

from accountable.config import get_settings
from accountable.models.ledger import LedgerRecord
from accountable.orchestrator import create_app_components
from accountable.verification import generate_integrity_token


@pytest.fixture
def components(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_settings.cache_clear()
    app = create_app_components(database_url="sqlite://")
    yield app
    app.database.dispose()
    get_settings.cache_clear()


class TestCreateAppComponents:

    def test_components_share_database(self, components):
        assert components.database.url == "sqlite://"
        assert components.database.check_connection() is True

    @pytest.mark.asyncio
    async def test_record_verify_and_report(self, components):
        token = generate_integrity_token()
        await components.ledger.add_record(LedgerRecord(
            owner="U1",
            description="Consulting",
            amount=Decimal("800.00"),
            integrity_token=token,
        ))
        assert await components.audit_store.log_client_added("U1", "Acme")

        result = await components.verification.verify("U1", token)
        assert result.verified is True
        assert result.audit_logged is True

        page = await components.reporter.list("U1")
        assert page.total == 2
        assert page.items[0].entry.title == "Blockchain Verification"
        assert page.items[0].relative_time == "just now"

    @pytest.mark.asyncio
    async def test_creation_audit_claims_the_token(self, components):
        """A creation entry carrying the token leaves no room for the success entry."""
        token = generate_integrity_token()
        await components.ledger.add_record(LedgerRecord(
            owner="U1",
            description="Rent",
            amount=Decimal("1200.00"),
            integrity_token=token,
        ))
        assert await components.audit_store.log_transaction_added(
            "U1", "Rent", "1200.00", integrity_token=token
        )

        result = await components.verification.verify("U1", token)
        assert result.verified is True
        assert result.audit_logged is False
