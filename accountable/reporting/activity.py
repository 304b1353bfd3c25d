"""
Activity Reporter

DESIGN DECISION: Reporting is a pure composition of the audit store and
the time formatter. It holds no state and adds no validation; filters
pass straight through to the store.

GUARANTEES:
- Only returns entries the store returned
- Scoped to the requesting owner
- Clear empty page if nothing matches (or the store is unavailable)
"""

from datetime import datetime
from typing import Callable, List, Optional

from accountable.audit import AuditStore
from accountable.config import AuditSettings, get_settings
from accountable.models.activity import ActivityItem, ActivityPage, VerificationSummary
from accountable.models.audit import (
    AuditCategory,
    AuditEntry,
    AuditFilters,
    AuditStatus,
)
from accountable.time_utils import relative_time, utcnow
from accountable.verification.integrity import token_preview


class ActivityReporter:
    """
    Read-only activity views for the presentation layer.
    """

    def __init__(
        self,
        audit_store: AuditStore,
        settings: Optional[AuditSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._audit_store = audit_store
        self._settings = settings or get_settings().audit
        self._clock = clock

    def _item(self, entry: AuditEntry, now: datetime) -> ActivityItem:
        return ActivityItem(
            entry=entry,
            relative_time=relative_time(entry.timestamp, now),
            token_preview=token_preview(
                entry.integrity_token, self._settings.token_preview_length
            ),
        )

    async def list(
        self,
        owner: str,
        filters: Optional[AuditFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> ActivityPage:
        """One page of the owner's activity, newest first."""
        filters = filters or AuditFilters()
        result = await self._audit_store.query(
            owner,
            page=page,
            page_size=page_size,
            filters=filters,
        )
        now = self._clock()
        return ActivityPage(
            items=[self._item(entry, now) for entry in result.entries],
            filters=filters,
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )

    async def detail(self, owner: str, entry_id: int) -> Optional[ActivityItem]:
        """A single entry, or None if it is not the owner's."""
        entry = await self._audit_store.get(owner, entry_id)
        if entry is None:
            return None
        return self._item(entry, self._clock())

    async def recent_verifications(
        self,
        owner: str,
        limit: Optional[int] = None,
    ) -> List[ActivityItem]:
        """Most recent successful verifications."""
        if limit is None:
            limit = self._settings.recent_verifications_limit
        if limit < 1:
            return []
        page = await self.list(
            owner,
            filters=AuditFilters(
                category=AuditCategory.VERIFICATION,
                status=AuditStatus.SUCCESS,
            ),
            page=1,
            page_size=limit,
        )
        return page.items

    async def verification_summary(self, owner: str) -> VerificationSummary:
        """Success/failure counters plus the recent successes."""
        failed = await self._audit_store.query(
            owner,
            page=1,
            page_size=1,
            filters=AuditFilters(
                category=AuditCategory.VERIFICATION,
                status=AuditStatus.FAILED,
            ),
        )
        succeeded = await self._audit_store.query(
            owner,
            page=1,
            page_size=self._settings.recent_verifications_limit,
            filters=AuditFilters(
                category=AuditCategory.VERIFICATION,
                status=AuditStatus.SUCCESS,
            ),
        )
        now = self._clock()
        return VerificationSummary(
            successful_verifications=succeeded.total,
            failed_verifications=failed.total,
            recent=[self._item(entry, now) for entry in succeeded.entries],
        )
