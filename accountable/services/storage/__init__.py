"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a SQLAlchemy backend, but designed to be swappable.
"""

from accountable.services.storage.interface import (
    AuditStorageInterface,
    DatabaseConnectionError,
    DuplicateError,
    LedgerLookupInterface,
    StorageError,
)
from accountable.services.storage.sql import (
    DatabaseClient,
    SqlAuditStorage,
    SqlLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerLookupInterface",
    # Exceptions
    "DatabaseConnectionError",
    "DuplicateError",
    "StorageError",
    # SQL implementation
    "DatabaseClient",
    "SqlAuditStorage",
    "SqlLedgerStorage",
]
