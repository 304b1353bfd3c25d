"""Audit trail package."""

from accountable.audit.store import AuditStore

__all__ = ["AuditStore"]
