"""
Ledger Models for AccountAble

Financial records (transactions and invoices) belong to the bookkeeping
CRUD layer. The audit core only needs enough of them to look a record up
by its integrity token, mark it verified and describe it in a result.

CRITICAL: A record reaches VERIFIED only through the verification
workflow, and never leaves it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accountable.models.audit import TOKEN_MAX_LENGTH


# =============================================================================
# ENUMS
# =============================================================================

class RecordKind(str, Enum):
    """Which kind of financial record carries the token."""
    TRANSACTION = "transaction"
    INVOICE = "invoice"


class VerificationStatus(str, Enum):
    """Verification state of a ledger record."""
    VERIFIED = "Verified"
    PENDING = "Pending"
    FAILED = "Failed"


# =============================================================================
# LEDGER RECORD
# =============================================================================

class LedgerRecord(BaseModel):
    """
    A token-bearing financial record as the verification workflow sees it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    owner: str = Field(..., min_length=1, max_length=64)
    kind: RecordKind = RecordKind.TRANSACTION

    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(..., max_digits=18, decimal_places=2)
    currency: str = Field(default="USD", min_length=1, max_length=10)
    record_date: date = Field(default_factory=date.today)

    integrity_token: Optional[str] = Field(default=None, max_length=TOKEN_MAX_LENGTH)
    verification_status: VerificationStatus = VerificationStatus.PENDING

    created_at: Optional[datetime] = None

    @field_validator('integrity_token')
    @classmethod
    def blank_token_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED

    @property
    def label(self) -> str:
        """Short human label used in audit descriptions."""
        return self.description or f"{self.kind.value} #{self.id}"


# =============================================================================
# VERIFICATION OUTPUT
# =============================================================================

class VerificationResult(BaseModel):
    """
    Outcome of one verification attempt. Transient, never persisted.

    matched  -> a record owned by the caller carries the token
    verified -> the record's VERIFIED state was durably written
    """

    token: str = ""
    matched: bool = False
    verified: bool = False
    record: Optional[LedgerRecord] = None
    derived_block_reference: Optional[str] = Field(
        default=None,
        description="Display-only reference derived from the token"
    )
    audit_logged: bool = Field(
        default=False,
        description="Whether the outcome reached the audit trail"
    )
    message: str = ""

    @property
    def status(self) -> str:
        return "verified" if self.verified else "failed"


class ExplorerRow(BaseModel):
    """A token-bearing record listed in the verification explorer."""

    record: LedgerRecord
    derived_block_reference: str
    token_preview: str
