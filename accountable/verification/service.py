"""
Verification Service

Checks a presented integrity token against the owner's ledger records and
writes the outcome to the audit trail.

Flow per attempt (state is transient, nothing is persisted about the
attempt itself besides its audit entry):

    lookup token ── found ──> mark verified ──> success audit ──> result
        │                         │
        │                         └─ mark failed ──> failed audit ──> result
        └── not found ──> failed audit ──> result

KNOWN GAP: marking the ledger and writing the audit entry are two separate
units of work. A crash between them leaves a verified record without a
success entry, and two concurrent attempts on one token can both see the
record as found. The UNIQUE constraint on the audit token means only one
of those attempts gets its entry written; the other is reported on the
operational log.
"""

from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from accountable.audit import AuditStore
from accountable.config import AuditSettings, get_settings
from accountable.models.audit import TOKEN_MAX_LENGTH, AuditEntry, AuditEntryBuilder
from accountable.models.ledger import (
    ExplorerRow,
    LedgerRecord,
    VerificationResult,
    VerificationStatus,
)
from accountable.services.storage import LedgerLookupInterface
from accountable.verification.integrity import derive_block_reference, token_preview


MSG_EMPTY_TOKEN = "Please enter a transaction hash."
MSG_VERIFIED = "Transaction verified on blockchain!"
MSG_NOT_FOUND = "Transaction not found or not yet verified on blockchain."
MSG_NOT_SAVED = "Transaction found, but its verification could not be saved."
MSG_UNAVAILABLE = "Verification is unavailable right now."


class VerificationService:
    """
    Verifies integrity tokens for one owner at a time.

    Tokens belonging to another owner are reported exactly like tokens
    that do not exist.
    """

    def __init__(
        self,
        ledger: LedgerLookupInterface,
        audit_store: AuditStore,
        settings: Optional[AuditSettings] = None,
    ):
        self._ledger = ledger
        self._audit_store = audit_store
        self._settings = settings or get_settings().audit
        self._logger = structlog.get_logger(__name__)

    async def verify(
        self,
        owner: str,
        token: str,
        source_address: Optional[str] = None,
        device_info: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify `token` against the owner's ledger records.

        Blank tokens are refused without touching the ledger or the audit
        trail. Every other attempt leaves exactly one audit entry (unless
        the audit store itself is failing).
        """
        token = (token or "").strip()
        if not token:
            self._logger.info("verification_rejected", owner=owner, reason="empty_token")
            return VerificationResult(matched=False, message=MSG_EMPTY_TOKEN)

        async def record_audit(build: Callable[[], AuditEntry]) -> bool:
            try:
                entry = build().with_provenance(source_address, device_info)
            except ValidationError as e:
                self._logger.error(
                    "verification_audit_invalid",
                    owner=owner,
                    error=str(e),
                )
                return False
            return await self._audit_store.append(entry)

        if len(token) > TOKEN_MAX_LENGTH:
            # Wider than the token column, so no record can carry it
            record = None
        else:
            try:
                record = await self._find(owner, token)
            except Exception as e:
                self._logger.error(
                    "verification_lookup_failed",
                    owner=owner,
                    token=token,
                    error=str(e),
                )
                logged = await record_audit(lambda: AuditEntryBuilder.verification_failed(
                    owner, token, reason="lookup error"
                ))
                return VerificationResult(
                    token=token,
                    matched=False,
                    audit_logged=logged,
                    message=MSG_UNAVAILABLE,
                )

        if record is None:
            logged = await record_audit(lambda: AuditEntryBuilder.verification_failed(
                owner, token, reason="not found"
            ))
            self._logger.info("verification_not_found", owner=owner, token=token)
            return VerificationResult(
                token=token,
                matched=False,
                audit_logged=logged,
                message=MSG_NOT_FOUND,
            )

        reference = derive_block_reference(token)

        if not await self._mark_verified(record, token):
            logged = await record_audit(lambda: AuditEntryBuilder.verification_failed(
                owner, token, reason="status could not be saved"
            ))
            return VerificationResult(
                token=token,
                matched=True,
                verified=False,
                record=record,
                derived_block_reference=reference,
                audit_logged=logged,
                message=MSG_NOT_SAVED,
            )

        verified_record = record.model_copy(
            update={"verification_status": VerificationStatus.VERIFIED}
        )
        logged = await record_audit(lambda: AuditEntryBuilder.verification_succeeded(
            owner=owner,
            token=token,
            record_label=record.label,
            record_id=record.id,
            record_kind=record.kind.value,
        ))
        self._logger.info(
            "verification_succeeded",
            owner=owner,
            record_id=record.id,
            block=reference,
            audit_logged=logged,
        )
        return VerificationResult(
            token=token,
            matched=True,
            verified=True,
            record=verified_record,
            derived_block_reference=reference,
            audit_logged=logged,
            message=MSG_VERIFIED,
        )

    async def _find(self, owner: str, token: str) -> Optional[LedgerRecord]:
        record = await self._ledger.find_by_token(owner, token)
        if record is not None and record.owner != owner:
            # A lookup that ignored the owner scope must not leak the record.
            self._logger.warning(
                "verification_owner_mismatch",
                owner=owner,
                record_id=record.id,
            )
            return None
        return record

    async def _mark_verified(self, record: LedgerRecord, token: str) -> bool:
        try:
            return await self._ledger.mark_verified(record, token)
        except Exception as e:
            self._logger.error(
                "verification_mark_failed",
                owner=record.owner,
                record_id=record.id,
                error=str(e),
            )
            return False

    async def explorer(
        self,
        owner: str,
        limit: Optional[int] = None,
    ) -> list[ExplorerRow]:
        """Recent token-bearing records with their block references."""
        if limit is None:
            limit = self._settings.explorer_limit
        if limit < 1:
            return []
        try:
            records = await self._ledger.list_tokened_records(owner, limit=limit)
        except Exception as e:
            self._logger.error("explorer_query_failed", owner=owner, error=str(e))
            return []

        return [
            ExplorerRow(
                record=record,
                derived_block_reference=derive_block_reference(record.integrity_token),
                token_preview=token_preview(
                    record.integrity_token, self._settings.token_preview_length
                ),
            )
            for record in records
            if record.integrity_token
        ]

    async def record_count(self, owner: str) -> int:
        """How many ledger records the owner has; 0 if the ledger is unreadable."""
        try:
            return await self._ledger.count_records(owner)
        except Exception as e:
            self._logger.error("record_count_failed", owner=owner, error=str(e))
            return 0
