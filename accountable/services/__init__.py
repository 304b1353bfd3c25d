"""Services package."""

from accountable.services.storage import (
    AuditStorageInterface,
    DatabaseClient,
    DatabaseConnectionError,
    DuplicateError,
    LedgerLookupInterface,
    SqlAuditStorage,
    SqlLedgerStorage,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DatabaseClient",
    "DatabaseConnectionError",
    "DuplicateError",
    "LedgerLookupInterface",
    "SqlAuditStorage",
    "SqlLedgerStorage",
    "StorageError",
]
