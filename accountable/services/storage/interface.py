"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Swap the relational backend without touching the audit services
2. Treat the bookkeeping CRUD layer as a collaborator we only consume
3. Keep business logic decoupled from storage implementation

The interfaces are intentionally narrow - we're not building a full ORM.
Just the operations the audit and verification services need.

Backends raise StorageError (or a subclass). Turning those into boolean
results and empty pages is the job of the services above them.
"""

from abc import ABC, abstractmethod
from typing import Optional

from accountable.models.audit import AuditEntry, AuditFilters
from accountable.models.ledger import LedgerRecord


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit trail storage.

    Audit entries are append-only - there is no update or delete here.
    """

    @abstractmethod
    async def append_entry(self, entry: AuditEntry) -> AuditEntry:
        """
        Persist an audit entry.

        The backend assigns `id` and `timestamp`, ignoring any values
        already present on the entry.

        Returns:
            The stored entry, with id and timestamp filled in

        Raises:
            DuplicateError: If the integrity token is already used
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def query_entries(
        self,
        owner: str,
        filters: AuditFilters,
        limit: int,
        offset: int = 0,
    ) -> tuple[list[AuditEntry], int]:
        """
        Filtered, paginated listing for one owner.

        Args:
            owner: Exact owner to match
            filters: Optional search term, category and status
            limit: Maximum number of entries to return
            offset: Number of matching entries to skip

        Returns:
            (entries newest first, total matching entries before pagination)

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def get_entry(self, owner: str, entry_id: int) -> Optional[AuditEntry]:
        """
        Retrieve one entry, scoped to its owner.

        Returns:
            The entry if it exists and belongs to `owner`, None otherwise
        """
        pass


class LedgerLookupInterface(ABC):
    """
    What the verification workflow needs from the financial record store.

    Every lookup is scoped to an owner: a record belonging to someone else
    is indistinguishable from a record that does not exist.
    """

    @abstractmethod
    async def find_by_token(
        self,
        owner: str,
        token: str,
    ) -> Optional[LedgerRecord]:
        """
        Find the owner's record carrying exactly this integrity token.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def mark_verified(self, record: LedgerRecord, token: str) -> bool:
        """
        Set the record's verification status to VERIFIED.

        Returns:
            True if the record was updated. False if nothing matched or the
            write failed; this method does not raise.
        """
        pass

    @abstractmethod
    async def list_tokened_records(
        self,
        owner: str,
        limit: int = 10,
    ) -> list[LedgerRecord]:
        """
        Most recent records that carry an integrity token.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def count_records(self, owner: str) -> int:
        """
        Number of ledger records the owner has.

        Raises:
            StorageError: If the read fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity (e.g. a reused integrity token)."""
    pass


class DatabaseConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
