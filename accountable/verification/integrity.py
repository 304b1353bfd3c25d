"""
Integrity token helpers.

Tokens are random and unique, not derived from record content and not
chained to earlier tokens. They support exact-match lookup only; they do
not detect tampering with the record they are attached to.
"""

import hashlib
import secrets
from typing import Optional


TOKEN_PREFIX = "0x"
TOKEN_BYTES = 32
BLOCK_PREFIX = "#BLOCK-"
BLOCK_DIGITS = 7


def generate_integrity_token() -> str:
    """A fresh token: "0x" followed by 64 lowercase hex characters."""
    return TOKEN_PREFIX + secrets.token_bytes(TOKEN_BYTES).hex()


def derive_block_reference(token: str) -> str:
    """
    Display-only block reference for a token.

    Pure function of the token, so verifying the same token twice shows
    the same reference. Not a block height.
    """
    digest = hashlib.md5(token.encode("utf-8")).hexdigest()
    return BLOCK_PREFIX + digest[:BLOCK_DIGITS]


def token_preview(token: Optional[str], length: int = 10) -> str:
    """First `length` characters of a token followed by an ellipsis."""
    if not token:
        return ""
    if len(token) <= length:
        return token
    return token[:length] + "..."
