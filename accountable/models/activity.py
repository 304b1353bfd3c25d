"""
Read-side view models for the activity screens.

These carry audit entries plus display strings; they add no state of
their own and are never persisted.
"""

from pydantic import BaseModel, Field

from accountable.models.audit import AuditEntry, AuditFilters


class ActivityItem(BaseModel):
    """One audit entry as a list or detail view shows it."""

    entry: AuditEntry
    relative_time: str = Field(..., description="e.g. '3 hours ago'")
    token_preview: str = Field(default="", description="Shortened integrity token")


class ActivityPage(BaseModel):
    """A page of activity plus what the pager needs."""

    items: list[ActivityItem] = Field(default_factory=list)
    filters: AuditFilters = Field(default_factory=AuditFilters)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items


class VerificationSummary(BaseModel):
    """Counters and recent successes for the verification screen."""

    successful_verifications: int = 0
    failed_verifications: int = 0
    recent: list[ActivityItem] = Field(default_factory=list)
