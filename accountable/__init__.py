"""
AccountAble - Audit & Verification Core

The bookkeeping back end's activity ledger and integrity-token
verification, shared by every screen of the application.

DESIGN PRINCIPLES:
1. Every financial mutation leaves a permanent, queryable trace
2. The audit trail is append-only
3. Storage trouble degrades to empty results, never to a crash
4. Owners only ever see their own records
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "AccountAble Team"
