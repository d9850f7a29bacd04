"""Audit trail for scheduler notifications, campaign closes, and attestation completions."""

from attestation.audit.logger import AuditLogger
from attestation.audit.models import AuditEntry, EventType
from attestation.audit.store import init_audit_table, insert_audit_entry, query_audit_trail

__all__ = [
    "AuditEntry",
    "AuditLogger",
    "EventType",
    "init_audit_table",
    "insert_audit_entry",
    "query_audit_trail",
]
