"""
Audit Store

DESIGN DECISION: Every financial mutation in the system is written to the
audit trail. This provides:
1. Complete traceability
2. A record of every verification attempt
3. User can see history of their account activity

The audit store:
- Validates entries before touching storage (blank titles are refused)
- Never raises on storage trouble: appends return False, queries return
  an empty page
- Reports its own failures on the operational log (structlog), never on
  the audit trail itself, so a broken store cannot recurse
"""

from typing import Optional

import structlog

from accountable.config import AuditSettings, get_settings
from accountable.models.audit import (
    AuditEntry,
    AuditEntryBuilder,
    AuditFilters,
    AuditPage,
    AuditStatus,
)
from accountable.services.storage import AuditStorageInterface


# Configure structlog for the operational log
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditStore:
    """
    Append-only activity ledger.

    Writes go through `append`; reads through `query` and `get`.
    There is no update or delete.
    """

    def __init__(
        self,
        storage: AuditStorageInterface,
        settings: Optional[AuditSettings] = None,
    ):
        """
        Initialize the audit store.

        Args:
            storage: Storage backend for persistence.
            settings: Paging defaults. Loaded from the environment if None.
        """
        self._storage = storage
        self._settings = settings or get_settings().audit
        self._logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def append(self, entry: AuditEntry) -> bool:
        """
        Append an audit entry.

        Returns True if the entry was persisted. Storage failures are
        logged on the operational log and reported as False.
        """
        if not entry.title:
            self._logger.warning(
                "audit_entry_rejected",
                reason="empty_title",
                owner=entry.owner,
                category=entry.category,
            )
            return False

        try:
            stored = await self._storage.append_entry(entry)
        except Exception as e:
            # Log failure but don't raise; DuplicateError lands here too
            self._logger.error(
                "audit_storage_failed",
                error_type=type(e).__name__,
                error=str(e),
                **entry.to_log_dict(),
            )
            return False

        if stored.status == AuditStatus.FAILED:
            self._logger.warning("audit_entry", **stored.to_log_dict())
        else:
            self._logger.info("audit_entry", **stored.to_log_dict())

        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _resolve_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            return self._settings.page_size
        return min(max(page_size, 1), self._settings.max_page_size)

    async def query(
        self,
        owner: str,
        page: int = 1,
        page_size: Optional[int] = None,
        search_term: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        filters: Optional[AuditFilters] = None,
    ) -> AuditPage:
        """
        Filtered, paginated listing for one owner, newest first.

        Either pass `filters` or the individual search/category/status
        arguments; `filters` wins when both are given.
        """
        if filters is None:
            filters = AuditFilters(
                search_term=search_term,
                category=category,
                status=status,
            )
        page = max(page, 1)
        page_size = self._resolve_page_size(page_size)
        offset = (page - 1) * page_size

        try:
            entries, total = await self._storage.query_entries(
                owner=owner,
                filters=filters,
                limit=page_size,
                offset=offset,
            )
        except Exception as e:
            self._logger.error(
                "audit_query_failed",
                owner=owner,
                page=page,
                error=str(e),
            )
            return AuditPage.empty(page=page, page_size=page_size)

        return AuditPage(
            entries=entries,
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get(self, owner: str, entry_id: int) -> Optional[AuditEntry]:
        """Single entry scoped to `owner`; None if missing or on storage errors."""
        try:
            return await self._storage.get_entry(owner, entry_id)
        except Exception as e:
            self._logger.error(
                "audit_get_failed",
                owner=owner,
                entry_id=entry_id,
                error=str(e),
            )
            return None

    # ------------------------------------------------------------------
    # Convenience emitters for the bookkeeping flows
    # ------------------------------------------------------------------

    async def log_transaction_added(
        self,
        owner: str,
        description: str,
        amount: str,
        integrity_token: Optional[str] = None,
    ) -> bool:
        """Log a new transaction."""
        return await self.append(AuditEntryBuilder.transaction_added(
            owner=owner,
            description=description,
            amount=amount,
            integrity_token=integrity_token,
        ))

    async def log_transaction_deleted(
        self,
        owner: str,
        transaction_id: int,
        description: Optional[str] = None,
    ) -> bool:
        """Log a transaction removal."""
        return await self.append(AuditEntryBuilder.transaction_deleted(
            owner=owner,
            transaction_id=transaction_id,
            description=description,
        ))

    async def log_invoice_added(
        self,
        owner: str,
        client_id: int,
        amount: str,
        integrity_token: Optional[str] = None,
    ) -> bool:
        """Log a new invoice."""
        return await self.append(AuditEntryBuilder.invoice_added(
            owner=owner,
            client_id=client_id,
            amount=amount,
            integrity_token=integrity_token,
        ))

    async def log_client_added(
        self,
        owner: str,
        client_name: str,
        succeeded: bool = True,
    ) -> bool:
        """Log a client creation attempt."""
        return await self.append(AuditEntryBuilder.client_added(
            owner=owner,
            client_name=client_name,
            succeeded=succeeded,
        ))

    async def log_profile_updated(self, owner: str, succeeded: bool = True) -> bool:
        """Log a profile update attempt."""
        return await self.append(AuditEntryBuilder.profile_updated(owner, succeeded))

    async def log_password_changed(self, owner: str, succeeded: bool = True) -> bool:
        """Log a password change attempt."""
        return await self.append(AuditEntryBuilder.password_changed(owner, succeeded))

    async def log_user_logout(self, owner: str) -> bool:
        """Log a logout."""
        return await self.append(AuditEntryBuilder.user_logout(owner))
