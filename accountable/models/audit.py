"""
Audit Models for AccountAble

Every financial mutation (transaction, invoice, client change, setting
change) leaves an entry in the activity ledger. This provides:
1. Complete traceability of all operations
2. A record of every verification attempt, successful or not
3. Accountability per owner

DESIGN DECISION: Audit entries are append-only. We never update or delete them.
The store assigns the id and the timestamp; callers only describe what happened.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Sentinels the listing UI sends when a filter is not applied.
ALL_ACTIVITIES = "All Activities"
ALL_STATUS = "All Status"

# Width of the integrity_token column.
TOKEN_MAX_LENGTH = 255


class AuditCategory(str, Enum):
    """
    Known activity categories.

    Stored as plain strings, so rows written with a category that is no
    longer (or not yet) listed here still load and still filter.
    """
    TRANSACTIONS = "Transactions"
    USER_ACTIONS = "User Actions"
    SYSTEM_EVENTS = "System Events"
    INVOICES = "Invoices"
    CLIENTS = "Clients"
    VERIFICATION = "Verification"
    SECURITY = "Security"
    SETTINGS = "Settings"
    ACCOUNT_ACTIONS = "Account Actions"


class AuditStatus(str, Enum):
    """Outcome recorded on an audit entry."""
    SUCCESS = "Success"
    FAILED = "Failed"
    PENDING = "Pending"
    VERIFIED = "Verified"


def _enum_value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


class AuditEntry(BaseModel):
    """
    A single activity ledger entry.

    `id` and `timestamp` stay None until the store persists the entry.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Identity (store-assigned)
    id: Optional[int] = Field(
        default=None,
        description="Store-assigned, monotonically increasing identifier"
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Write time (UTC), set by the store"
    )

    # Who
    owner: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Acting principal; None for system-originated entries"
    )

    # What
    title: str = Field(
        ...,
        max_length=255,
        description="Short human label"
    )
    description: str = Field(
        ...,
        description="Free text detail, may be empty"
    )
    category: str = Field(
        ...,
        max_length=64,
        description="Activity category (see AuditCategory)"
    )
    status: AuditStatus = Field(
        default=AuditStatus.SUCCESS,
        description="Outcome of the activity"
    )

    # Provenance
    source_address: Optional[str] = Field(default=None, max_length=45)
    device_info: Optional[str] = Field(default=None, max_length=255)

    # Integrity
    integrity_token: Optional[str] = Field(
        default=None,
        max_length=TOKEN_MAX_LENGTH,
        description="Optional token, unique across all entries"
    )

    @field_validator('category', mode='before')
    @classmethod
    def category_as_string(cls, v: Any) -> Any:
        return _enum_value(v)

    @field_validator('owner', 'source_address', 'device_info', 'integrity_token')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def known_category(self) -> Optional[AuditCategory]:
        """The category as an enum member, or None for legacy values."""
        try:
            return AuditCategory(self.category)
        except ValueError:
            return None

    def with_provenance(
        self,
        source_address: Optional[str] = None,
        device_info: Optional[str] = None,
    ) -> "AuditEntry":
        """Copy of this entry carrying request provenance."""
        if not (source_address or device_info):
            return self
        return self.model_copy(update={
            "source_address": source_address or self.source_address,
            "device_info": device_info or self.device_info,
        })

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "entry_id": self.id,
            "written_at": self.timestamp.isoformat() if self.timestamp else None,
            "owner": self.owner,
            "title": self.title,
            "category": self.category,
            "status": self.status.value,
            "integrity_token": self.integrity_token,
            "source_address": self.source_address,
        }


class AuditFilters(BaseModel):
    """
    Listing filters.

    None means "no filter". Blank strings and the UI sentinels
    ("All Activities", "All Status") are normalised to None here, so the
    query layer never sees them.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    search_term: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None

    @field_validator('search_term')
    @classmethod
    def normalise_search(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('category', mode='before')
    @classmethod
    def normalise_category(cls, v: Any) -> Any:
        v = _enum_value(v)
        if isinstance(v, str) and v.strip() in ("", ALL_ACTIVITIES):
            return None
        return v

    @field_validator('status', mode='before')
    @classmethod
    def normalise_status(cls, v: Any) -> Any:
        v = _enum_value(v)
        if isinstance(v, str) and v.strip() in ("", ALL_STATUS):
            return None
        return v

    @property
    def is_empty(self) -> bool:
        return not (self.search_term or self.category or self.status)


class AuditPage(BaseModel):
    """One page of a filtered audit query plus the unpaginated total."""

    entries: list[AuditEntry] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @classmethod
    def empty(cls, page: int = 1, page_size: int = 10) -> "AuditPage":
        return cls(entries=[], total=0, page=page, page_size=page_size)


def _status(succeeded: bool) -> AuditStatus:
    return AuditStatus.SUCCESS if succeeded else AuditStatus.FAILED


class AuditEntryBuilder:
    """
    Helper class to build audit entries for the events the bookkeeping
    flows emit.

    Usage:
        entry = AuditEntryBuilder.transaction_added(owner, "Office rent", amount, token)
        entry = AuditEntryBuilder.user_logout(owner)
    """

    # Transactions

    @staticmethod
    def transaction_added(
        owner: str,
        description: str,
        amount: Union[Decimal, str],
        integrity_token: Optional[str] = None,
    ) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Transaction Added",
            description=f"New transaction '{description}' with amount {amount} added.",
            category=AuditCategory.TRANSACTIONS,
            integrity_token=integrity_token,
        )

    @staticmethod
    def transaction_add_failed(owner: str, description: str) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Transaction Add Failed",
            description=f"Attempt to add transaction '{description}' failed.",
            category=AuditCategory.TRANSACTIONS,
            status=AuditStatus.FAILED,
        )

    @staticmethod
    def transaction_updated(owner: str, transaction_id: int) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Transaction Updated",
            description=f"Transaction ID: {transaction_id} updated.",
            category=AuditCategory.TRANSACTIONS,
        )

    @staticmethod
    def transaction_update_failed(
        owner: str,
        transaction_id: int,
        reason: Optional[str] = None,
    ) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Transaction Update Failed",
            description=reason or f"Failed to update transaction ID: {transaction_id}.",
            category=AuditCategory.TRANSACTIONS,
            status=AuditStatus.FAILED,
        )

    @staticmethod
    def transaction_deleted(
        owner: str,
        transaction_id: int,
        description: Optional[str] = None,
    ) -> AuditEntry:
        detail = f" ('{description}')" if description else ""
        return AuditEntry(
            owner=owner,
            title="Transaction Deleted",
            description=f"Transaction ID: {transaction_id}{detail} deleted.",
            category=AuditCategory.TRANSACTIONS,
        )

    @staticmethod
    def transaction_delete_failed(owner: str, transaction_id: int) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Transaction Delete Failed",
            description=f"Attempt to delete transaction ID: {transaction_id} failed.",
            category=AuditCategory.TRANSACTIONS,
            status=AuditStatus.FAILED,
        )

    # Invoices

    @staticmethod
    def invoice_added(
        owner: str,
        client_id: int,
        amount: Union[Decimal, str],
        integrity_token: Optional[str] = None,
    ) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Invoice Added",
            description=f"New invoice for client ID {client_id} with amount {amount} added.",
            category=AuditCategory.INVOICES,
            integrity_token=integrity_token,
        )

    @staticmethod
    def invoice_add_failed(owner: str, client_id: int) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Invoice Add Failed",
            description=f"Attempt to add invoice for client ID {client_id} failed.",
            category=AuditCategory.INVOICES,
            status=AuditStatus.FAILED,
        )

    @staticmethod
    def invoice_deleted(
        owner: str,
        invoice_id: int,
        invoice_number: Optional[str] = None,
    ) -> AuditEntry:
        label = invoice_number or f"ID: {invoice_id}"
        return AuditEntry(
            owner=owner,
            title="Invoice Deleted",
            description=f"Invoice {label} deleted.",
            category=AuditCategory.INVOICES,
        )

    @staticmethod
    def invoice_delete_failed(owner: str, invoice_id: int) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Invoice Delete Failed",
            description=f"Attempt to delete invoice ID: {invoice_id} failed.",
            category=AuditCategory.INVOICES,
            status=AuditStatus.FAILED,
        )

    # Clients

    @staticmethod
    def client_added(owner: str, client_name: str, succeeded: bool = True) -> AuditEntry:
        if succeeded:
            title = "Client Added"
            description = f"Client '{client_name}' was added."
        else:
            title = "Client Add Failed"
            description = f"Attempt to add client '{client_name}' failed."
        return AuditEntry(
            owner=owner,
            title=title,
            description=description,
            category=AuditCategory.CLIENTS,
            status=_status(succeeded),
        )

    @staticmethod
    def client_deleted(
        owner: str,
        client_id: int,
        client_name: Optional[str] = None,
        succeeded: bool = True,
    ) -> AuditEntry:
        if succeeded:
            label = f"'{client_name}' (ID: {client_id})" if client_name else f"ID: {client_id}"
            title = "Client Deleted"
            description = f"Client {label} was deleted."
        else:
            title = "Client Delete Failed"
            description = f"Attempt to delete client ID: {client_id} failed."
        return AuditEntry(
            owner=owner,
            title=title,
            description=description,
            category=AuditCategory.CLIENTS,
            status=_status(succeeded),
        )

    # Settings and security

    @staticmethod
    def profile_updated(owner: str, succeeded: bool = True) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Profile Update" if succeeded else "Profile Update Failed",
            description=(
                "User profile updated." if succeeded
                else "Attempt to update profile failed."
            ),
            category=AuditCategory.SETTINGS,
            status=_status(succeeded),
        )

    @staticmethod
    def advanced_settings_updated(owner: str, succeeded: bool = True) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title=(
                "Advanced Settings Update" if succeeded
                else "Advanced Settings Update Failed"
            ),
            description=(
                "User advanced settings updated." if succeeded
                else "Attempt to update advanced settings failed."
            ),
            category=AuditCategory.SETTINGS,
            status=_status(succeeded),
        )

    @staticmethod
    def security_settings_updated(owner: str, succeeded: bool = True) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title=(
                "Security Settings Update" if succeeded
                else "Security Settings Update Failed"
            ),
            description=(
                "User security settings updated." if succeeded
                else "Attempt to update security settings failed."
            ),
            category=AuditCategory.SECURITY,
            status=_status(succeeded),
        )

    @staticmethod
    def password_changed(owner: str, succeeded: bool = True) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Password Change" if succeeded else "Password Change Failed",
            description=(
                "User password changed." if succeeded
                else "Attempt to change password failed."
            ),
            category=AuditCategory.SECURITY,
            status=_status(succeeded),
        )

    # Account and session

    @staticmethod
    def user_logout(owner: str) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="User Logout",
            description="User logged out successfully.",
            category=AuditCategory.USER_ACTIONS,
        )

    @staticmethod
    def data_export_requested(owner: str) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Data Export Request",
            description="User requested data export.",
            category=AuditCategory.ACCOUNT_ACTIONS,
        )

    @staticmethod
    def audit_trail_export(owner: str) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Audit Trail Export",
            description="User requested audit trail export.",
            category=AuditCategory.SYSTEM_EVENTS,
        )

    @staticmethod
    def account_deleted(owner: str, succeeded: bool = True) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Account Deletion" if succeeded else "Account Deletion Failed",
            description=(
                "User account permanently deleted." if succeeded
                else "Attempt to delete account failed."
            ),
            category=AuditCategory.ACCOUNT_ACTIONS,
            status=_status(succeeded),
        )

    # Verification

    @staticmethod
    def verification_succeeded(
        owner: str,
        token: str,
        record_label: str,
        record_id: int,
        record_kind: str = "transaction",
    ) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Blockchain Verification",
            description=(
                f"{record_kind.capitalize()} '{record_label}' (ID: {record_id}) "
                "verified on blockchain."
            ),
            category=AuditCategory.VERIFICATION,
            status=AuditStatus.SUCCESS,
            integrity_token=token,
        )

    @staticmethod
    def verification_failed(
        owner: str,
        token: str,
        reason: str = "not found",
    ) -> AuditEntry:
        return AuditEntry(
            owner=owner,
            title="Blockchain Verification Failed",
            description=f"Attempt to verify hash '{token}' failed ({reason}).",
            category=AuditCategory.VERIFICATION,
            status=AuditStatus.FAILED,
            # Over-long tokens are kept in the description only
            integrity_token=token if len(token) <= TOKEN_MAX_LENGTH else None,
        )
