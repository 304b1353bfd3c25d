"""
Main Orchestrator for AccountAble

This module ties the audit core together for the presentation layer:
1. AuditStore        - append-only activity ledger
2. VerificationService - integrity token verification
3. ActivityReporter  - read-only activity views

DESIGN DECISION: There is exactly one place where the shared library
components are built. Every entry point (transactions, invoices, clients,
settings, verification, audit trail screens) gets the same instances
instead of carrying its own copy of the audit logic.
"""

import logging
from typing import NamedTuple, Optional

import structlog

from accountable.audit import AuditStore
from accountable.config import get_settings
from accountable.reporting import ActivityReporter
from accountable.services.storage import (
    DatabaseClient,
    SqlAuditStorage,
    SqlLedgerStorage,
)
from accountable.verification import VerificationService


logger = structlog.get_logger(__name__)


class AppComponents(NamedTuple):
    """Everything a presentation layer needs from the audit core."""

    audit_store: AuditStore
    verification: VerificationService
    reporter: ActivityReporter
    ledger: SqlLedgerStorage
    database: DatabaseClient


def create_app_components(
    database_url: Optional[str] = None,
    create_schema: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        database_url: Overrides DATABASE_URL (e.g. "sqlite://" for tests).
        create_schema: Create missing tables on startup.

    Returns:
        AppComponents sharing one database client

    Raises:
        DatabaseConnectionError: If the database cannot be reached after retries
    """
    settings = get_settings()
    app_settings = settings.app

    # structlog filters on the stdlib level of the "accountable" logger tree
    logging.getLogger("accountable").setLevel(
        logging.DEBUG if app_settings.debug_mode else app_settings.log_level
    )

    database = DatabaseClient(settings=settings.database, url=database_url)
    if create_schema:
        database.create_schema()

    audit_settings = settings.audit
    audit_store = AuditStore(SqlAuditStorage(database), settings=audit_settings)
    ledger = SqlLedgerStorage(database)

    components = AppComponents(
        audit_store=audit_store,
        verification=VerificationService(ledger, audit_store, settings=audit_settings),
        reporter=ActivityReporter(audit_store, settings=audit_settings),
        ledger=ledger,
        database=database,
    )
    logger.info("app_components_ready", environment=app_settings.app_environment)
    return components
