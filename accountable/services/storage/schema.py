"""
Relational schema for the audit trail and the ledger records it references.

The unique constraints on `integrity_token` are the only mutual-exclusion
device the verification workflow relies on: at most one audit entry and at
most one ledger record may claim a given token.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import declarative_base

from accountable.models.audit import TOKEN_MAX_LENGTH, AuditEntry, AuditStatus
from accountable.models.ledger import LedgerRecord, RecordKind, VerificationStatus
from accountable.time_utils import utcnow


Base = declarative_base()

AuditStatusEnum = Enum(
    *[s.value for s in AuditStatus],
    name="audit_status",
    native_enum=False,
)
RecordKindEnum = Enum(
    *[k.value for k in RecordKind],
    name="record_kind",
    native_enum=False,
)
VerificationStatusEnum = Enum(
    *[s.value for s in VerificationStatus],
    name="verification_status",
    native_enum=False,
)


class AppendOnlyViolation(RuntimeError):
    """Raised when ORM code tries to change or remove an audit row."""


class AuditTrailRow(Base):
    """One row of the append-only activity ledger."""

    __tablename__ = "audit_trail"
    __table_args__ = (
        UniqueConstraint("integrity_token", name="uq_audit_trail_integrity_token"),
        Index("idx_audit_trail_owner", "owner"),
        Index("idx_audit_trail_timestamp", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String(64), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    # Plain string so legacy or unclassified categories still load.
    category = Column(String(64), nullable=False)
    status = Column(AuditStatusEnum, nullable=False, default=AuditStatus.SUCCESS.value)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    source_address = Column(String(45), nullable=True)
    device_info = Column(String(255), nullable=True)
    integrity_token = Column(String(TOKEN_MAX_LENGTH), nullable=True)

    @classmethod
    def from_model(cls, entry: AuditEntry, timestamp: datetime) -> "AuditTrailRow":
        return cls(
            owner=entry.owner,
            title=entry.title,
            description=entry.description,
            category=entry.category,
            status=entry.status.value,
            timestamp=timestamp,
            source_address=entry.source_address,
            device_info=entry.device_info,
            integrity_token=entry.integrity_token,
        )

    def to_model(self) -> AuditEntry:
        return AuditEntry(
            id=self.id,
            timestamp=_ensure_aware_timestamp(self.timestamp),
            owner=self.owner,
            title=self.title,
            description=self.description or "",
            category=self.category,
            status=AuditStatus(self.status),
            source_address=self.source_address,
            device_info=self.device_info,
            integrity_token=self.integrity_token,
        )


class LedgerRecordRow(Base):
    """A token-bearing transaction or invoice."""

    __tablename__ = "ledger_records"
    __table_args__ = (
        UniqueConstraint("integrity_token", name="uq_ledger_records_integrity_token"),
        Index("idx_ledger_records_owner", "owner"),
        Index("idx_ledger_records_date", "record_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String(64), nullable=False)
    kind = Column(RecordKindEnum, nullable=False, default=RecordKind.TRANSACTION.value)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    record_date = Column(Date, nullable=False, default=date.today)
    integrity_token = Column(String(TOKEN_MAX_LENGTH), nullable=True)
    verification_status = Column(
        VerificationStatusEnum,
        nullable=False,
        default=VerificationStatus.PENDING.value,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @classmethod
    def from_model(cls, record: LedgerRecord) -> "LedgerRecordRow":
        return cls(
            owner=record.owner,
            kind=record.kind.value,
            description=record.description,
            amount=record.amount,
            currency=record.currency,
            record_date=record.record_date,
            integrity_token=record.integrity_token,
            verification_status=record.verification_status.value,
            created_at=record.created_at or utcnow(),
        )

    def to_model(self) -> LedgerRecord:
        return LedgerRecord(
            id=self.id,
            owner=self.owner,
            kind=RecordKind(self.kind),
            description=self.description or "",
            amount=self.amount,
            currency=self.currency,
            record_date=self.record_date,
            integrity_token=self.integrity_token,
            verification_status=VerificationStatus(self.verification_status),
            created_at=_ensure_aware_timestamp(self.created_at),
        )


def _ensure_aware_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize timestamps to UTC when timezone info is missing."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@event.listens_for(AuditTrailRow, "before_update")
def _reject_audit_update(_mapper, _connection, target: AuditTrailRow) -> None:
    raise AppendOnlyViolation(f"Audit entry {target.id} cannot be modified")


@event.listens_for(AuditTrailRow, "before_delete")
def _reject_audit_delete(_mapper, _connection, target: AuditTrailRow) -> None:
    raise AppendOnlyViolation(f"Audit entry {target.id} cannot be deleted")
