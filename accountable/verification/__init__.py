"""Integrity token verification package."""

from accountable.verification.integrity import (
    derive_block_reference,
    generate_integrity_token,
    token_preview,
)
from accountable.verification.service import VerificationService

__all__ = [
    "VerificationService",
    "derive_block_reference",
    "generate_integrity_token",
    "token_preview",
]
