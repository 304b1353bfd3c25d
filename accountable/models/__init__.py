"""
Data Models Package

This package contains all Pydantic models used by the AccountAble audit core.
All data flowing through the system must conform to these schemas.
"""

from accountable.models.audit import (
    ALL_ACTIVITIES,
    ALL_STATUS,
    TOKEN_MAX_LENGTH,
    AuditCategory,
    AuditEntry,
    AuditEntryBuilder,
    AuditFilters,
    AuditPage,
    AuditStatus,
)
from accountable.models.ledger import (
    ExplorerRow,
    LedgerRecord,
    RecordKind,
    VerificationResult,
    VerificationStatus,
)
from accountable.models.activity import (
    ActivityItem,
    ActivityPage,
    VerificationSummary,
)

__all__ = [
    # Audit models
    "ALL_ACTIVITIES",
    "ALL_STATUS",
    "TOKEN_MAX_LENGTH",
    "AuditCategory",
    "AuditEntry",
    "AuditEntryBuilder",
    "AuditFilters",
    "AuditPage",
    "AuditStatus",
    # Ledger models
    "ExplorerRow",
    "LedgerRecord",
    "RecordKind",
    "VerificationResult",
    "VerificationStatus",
    # Activity view models
    "ActivityItem",
    "ActivityPage",
    "VerificationSummary",
]
