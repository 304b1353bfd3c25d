"""
Tests for integrity token verification.
"""

import re

import pytest
from decimal import Decimal
from datetime import date, timedelta

from accountable.models.audit import TOKEN_MAX_LENGTH, AuditCategory, AuditStatus
from accountable.models.ledger import LedgerRecord, RecordKind, VerificationStatus
from accountable.services.storage import (
    DuplicateError,
    LedgerLookupInterface,
    StorageError,
)
from accountable.verification import (
    VerificationService,
    derive_block_reference,
    generate_integrity_token,
    token_preview,
)
from accountable.verification.service import (
    MSG_EMPTY_TOKEN,
    MSG_NOT_FOUND,
    MSG_NOT_SAVED,
    MSG_UNAVAILABLE,
    MSG_VERIFIED,
)


class RecordingLedger(LedgerLookupInterface):
    """In-memory ledger that records every call made to it."""

    def __init__(self, records=None, mark_result=True, fail_lookup=False):
        self.records = list(records or [])
        self.mark_result = mark_result
        self.fail_lookup = fail_lookup
        self.calls = []

    async def find_by_token(self, owner, token):
        self.calls.append(("find_by_token", owner, token))
        if self.fail_lookup:
            raise StorageError("ledger unavailable")
        for record in self.records:
            if record.integrity_token == token:
                return record
        return None

    async def mark_verified(self, record, token):
        self.calls.append(("mark_verified", record.id, token))
        return self.mark_result

    async def list_tokened_records(self, owner, limit=10):
        self.calls.append(("list_tokened_records", owner, limit))
        if self.fail_lookup:
            raise StorageError("ledger unavailable")
        return [r for r in self.records if r.owner == owner][:limit]

    async def count_records(self, owner):
        if self.fail_lookup:
            raise StorageError("ledger unavailable")
        return len([r for r in self.records if r.owner == owner])


def record(owner="U1", token="T1", **kwargs) -> LedgerRecord:
    kwargs.setdefault("description", "Office rent")
    kwargs.setdefault("amount", Decimal("1200.00"))
    return LedgerRecord(owner=owner, integrity_token=token, **kwargs)


async def verification_entries(audit_store, owner):
    page = await audit_store.query(owner, category=AuditCategory.VERIFICATION)
    return page.entries


class TestIntegrityHelpers:
    """Token generation and display helpers."""

    def test_generated_token_format(self):
        token = generate_integrity_token()
        assert re.fullmatch(r"0x[0-9a-f]{64}", token)

    def test_generated_tokens_are_unique(self):
        assert len({generate_integrity_token() for _ in range(50)}) == 50

    def test_block_reference_is_deterministic(self):
        token = "0x" + "ab" * 32
        assert derive_block_reference(token) == derive_block_reference(token)
        assert re.fullmatch(r"#BLOCK-[0-9a-f]{7}", derive_block_reference(token))

    def test_block_reference_known_value(self):
        # md5("T1") = ce499dea30cfce118f4fe85da0227e83
        assert derive_block_reference("T1") == "#BLOCK-ce499de"
        assert derive_block_reference("T1") != derive_block_reference("T2")

    def test_token_preview(self):
        assert token_preview("0x1234567890abcdef") == "0x12345678..."
        assert token_preview("short") == "short"
        assert token_preview(None) == ""
        assert token_preview("0x1234567890abcdef", length=4) == "0x12..."


class TestVerify:
    """The verification workflow against a real database."""

    @pytest.mark.asyncio
    async def test_matching_token_is_verified(self, verification, ledger, audit_store):
        """U1 verifies their own pending record."""
        stored = await ledger.add_record(record())

        result = await verification.verify("U1", "T1")

        assert result.matched is True
        assert result.verified is True
        assert result.audit_logged is True
        assert result.message == MSG_VERIFIED
        assert result.record.id == stored.id
        assert result.record.verification_status == VerificationStatus.VERIFIED
        assert result.derived_block_reference == derive_block_reference("T1")

        reloaded = await ledger.find_by_token("U1", "T1")
        assert reloaded.verification_status == VerificationStatus.VERIFIED

        entries = await verification_entries(audit_store, "U1")
        assert len(entries) == 1
        assert entries[0].status == AuditStatus.SUCCESS
        assert entries[0].integrity_token == "T1"
        assert entries[0].title == "Blockchain Verification"
        assert f"(ID: {stored.id})" in entries[0].description

    @pytest.mark.asyncio
    async def test_unknown_token_fails_with_audit(self, verification, ledger, audit_store):
        await ledger.add_record(record())
        await verification.verify("U1", "T1")

        result = await verification.verify("U1", "T2")

        assert result.matched is False
        assert result.record is None
        assert result.derived_block_reference is None
        assert result.message == MSG_NOT_FOUND
        assert result.audit_logged is True

        entries = await verification_entries(audit_store, "U1")
        assert len(entries) == 2
        assert entries[0].status == AuditStatus.FAILED
        assert entries[0].integrity_token == "T2"
        assert entries[0].description == "Attempt to verify hash 'T2' failed (not found)."

    @pytest.mark.asyncio
    async def test_other_owners_token_is_not_found(self, verification, ledger, audit_store):
        """Another owner's record is reported exactly like a missing one."""
        await ledger.add_record(record(owner="U1"))

        result = await verification.verify("U2", "T1")

        assert result.matched is False
        assert result.record is None
        assert result.message == MSG_NOT_FOUND

        untouched = await ledger.find_by_token("U1", "T1")
        assert untouched.verification_status == VerificationStatus.PENDING
        assert await verification_entries(audit_store, "U1") == []
        assert len(await verification_entries(audit_store, "U2")) == 1

    @pytest.mark.asyncio
    async def test_lookup_ignoring_owner_does_not_leak(self, audit_store, audit_settings):
        """A ledger that returns someone else's record is treated as a miss."""
        ledger = RecordingLedger([record(owner="U1")])
        service = VerificationService(ledger, audit_store, settings=audit_settings)

        result = await service.verify("U2", "T1")

        assert result.matched is False
        assert result.record is None
        assert [c[0] for c in ledger.calls] == ["find_by_token"]

    @pytest.mark.parametrize("token", ["", "   ", None])
    @pytest.mark.asyncio
    async def test_empty_token_is_a_no_op(self, token, audit_store, audit_settings):
        ledger = RecordingLedger([record()])
        service = VerificationService(ledger, audit_store, settings=audit_settings)

        result = await service.verify("U1", token)

        assert result.matched is False
        assert result.message == MSG_EMPTY_TOKEN
        assert ledger.calls == []
        assert (await audit_store.query("U1")).total == 0

    @pytest.mark.asyncio
    async def test_overlong_token_is_a_miss(self, audit_store, audit_settings):
        """A token wider than the token column is not found, and still audited."""
        ledger = RecordingLedger([record()])
        service = VerificationService(ledger, audit_store, settings=audit_settings)
        token = "0x" + "a" * 300

        result = await service.verify("U1", token)

        assert result.matched is False
        assert result.message == MSG_NOT_FOUND
        assert result.audit_logged is True
        assert ledger.calls == []

        entries = await verification_entries(audit_store, "U1")
        assert len(entries) == 1
        assert entries[0].status == AuditStatus.FAILED
        assert entries[0].integrity_token is None
        assert token in entries[0].description

    @pytest.mark.asyncio
    async def test_token_at_column_width_is_looked_up(self, verification, ledger, audit_store):
        token = "0x" + "b" * (TOKEN_MAX_LENGTH - 2)
        await ledger.add_record(record(token=token))

        result = await verification.verify("U1", token)

        assert result.verified is True
        entries = await verification_entries(audit_store, "U1")
        assert entries[0].integrity_token == token

    @pytest.mark.asyncio
    async def test_unbuildable_audit_entry_does_not_raise(self, verification):
        """An owner too long for the audit column costs the entry, not the call."""
        result = await verification.verify("U" * 100, "T9")

        assert result.matched is False
        assert result.audit_logged is False

    @pytest.mark.asyncio
    async def test_token_is_trimmed(self, verification, ledger):
        await ledger.add_record(record())
        result = await verification.verify("U1", "  T1 ")
        assert result.matched is True
        assert result.token == "T1"

    @pytest.mark.asyncio
    async def test_mark_failure_is_reported(self, audit_store, audit_settings):
        ledger = RecordingLedger([record(id=3)], mark_result=False)
        service = VerificationService(ledger, audit_store, settings=audit_settings)

        result = await service.verify("U1", "T1")

        assert result.matched is True
        assert result.verified is False
        assert result.message == MSG_NOT_SAVED
        assert result.record.verification_status == VerificationStatus.PENDING

        entries = await verification_entries(audit_store, "U1")
        assert len(entries) == 1
        assert entries[0].status == AuditStatus.FAILED
        assert "status could not be saved" in entries[0].description

    @pytest.mark.asyncio
    async def test_lookup_error_degrades(self, audit_store, audit_settings):
        ledger = RecordingLedger(fail_lookup=True)
        service = VerificationService(ledger, audit_store, settings=audit_settings)

        result = await service.verify("U1", "T1")

        assert result.matched is False
        assert result.message == MSG_UNAVAILABLE
        entries = await verification_entries(audit_store, "U1")
        assert entries[0].status == AuditStatus.FAILED
        assert "lookup error" in entries[0].description

    @pytest.mark.asyncio
    async def test_repeated_verification(self, verification, ledger, audit_store):
        """The second success entry collides with the first on the token."""
        await ledger.add_record(record())

        first = await verification.verify("U1", "T1")
        second = await verification.verify("U1", "T1")

        assert first.audit_logged is True
        assert second.matched is True
        assert second.verified is True
        assert second.audit_logged is False
        assert second.derived_block_reference == first.derived_block_reference
        assert len(await verification_entries(audit_store, "U1")) == 1

    @pytest.mark.asyncio
    async def test_provenance_on_audit_entry(self, verification, ledger, audit_store):
        await ledger.add_record(record())
        await verification.verify("U1", "T1", source_address="10.1.1.1", device_info="curl")

        entry = (await verification_entries(audit_store, "U1"))[0]
        assert entry.source_address == "10.1.1.1"
        assert entry.device_info == "curl"

    @pytest.mark.asyncio
    async def test_invoice_description(self, verification, ledger, audit_store):
        await ledger.add_record(record(kind=RecordKind.INVOICE, description="INV-0042"))
        await verification.verify("U1", "T1")

        entry = (await verification_entries(audit_store, "U1"))[0]
        assert entry.description.startswith("Invoice 'INV-0042'")


class TestLedgerStorage:
    """SQL ledger behaviour the workflow relies on."""

    @pytest.mark.asyncio
    async def test_duplicate_token_rejected(self, ledger):
        await ledger.add_record(record())
        with pytest.raises(DuplicateError):
            await ledger.add_record(record(owner="U2"))

    @pytest.mark.asyncio
    async def test_records_without_token_do_not_collide(self, ledger):
        await ledger.add_record(record(token=None))
        await ledger.add_record(record(token=None))
        assert await ledger.count_records("U1") == 2

    @pytest.mark.asyncio
    async def test_mark_verified_is_owner_scoped(self, ledger):
        stored = await ledger.add_record(record(owner="U1"))
        foreign = stored.model_copy(update={"owner": "U2"})

        assert await ledger.mark_verified(foreign, "T1") is False
        assert await ledger.mark_verified(stored, "T1") is True

    @pytest.mark.asyncio
    async def test_created_at_defaults_to_aware_utc(self, ledger):
        stored = await ledger.add_record(record())
        assert stored.created_at is not None
        assert stored.created_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_mark_verified_without_id(self, ledger):
        assert await ledger.mark_verified(record(), "T1") is False


class TestExplorer:
    """Recent token-bearing records."""

    @pytest.mark.asyncio
    async def test_explorer_lists_recent_tokened_records(self, verification, ledger):
        await ledger.add_record(record(token="0xaaaaaaaaaaaaaaaa", record_date=date(2025, 1, 1)))
        await ledger.add_record(record(token="0xbbbbbbbbbbbbbbbb", record_date=date(2025, 1, 10)))
        await ledger.add_record(record(token=None, record_date=date(2025, 1, 12)))
        await ledger.add_record(record(owner="U2", token="0xcccccccccccccccc"))

        rows = await verification.explorer("U1")

        assert [r.record.integrity_token for r in rows] == [
            "0xbbbbbbbbbbbbbbbb",
            "0xaaaaaaaaaaaaaaaa",
        ]
        assert rows[0].token_preview == "0xbbbbbbbb..."
        assert rows[0].derived_block_reference == derive_block_reference("0xbbbbbbbbbbbbbbbb")

    @pytest.mark.asyncio
    async def test_explorer_limit(self, verification, ledger):
        for i in range(4):
            await ledger.add_record(record(token=f"0x{i:016x}"))
        assert len(await verification.explorer("U1", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_explorer_zero_limit(self, verification, ledger):
        await ledger.add_record(record())
        assert await verification.explorer("U1", limit=0) == []

    @pytest.mark.asyncio
    async def test_explorer_and_count_fail_soft(self, audit_store, audit_settings):
        service = VerificationService(
            RecordingLedger(fail_lookup=True), audit_store, settings=audit_settings
        )
        assert await service.explorer("U1") == []
        assert await service.record_count("U1") == 0

    @pytest.mark.asyncio
    async def test_record_count(self, verification, ledger):
        await ledger.add_record(record(token="A"))
        await ledger.add_record(record(token=None))
        await ledger.add_record(record(owner="U2", token="B"))
        assert await verification.record_count("U1") == 2
