"""Audit trail models for attestation scheduler and completion events.

Each entry names the event, the campaign and the row it concerns (record or
pending invite), the recipient address when a notification is involved,
and arbitrary string metadata.
"""

from enum import StrEnum

from pydantic import BaseModel


class EventType(StrEnum):
    """Types of events tracked in the audit trail."""

    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"
    NOTIFICATION_SKIPPED = "notification_skipped"
    CAMPAIGN_AUTO_CLOSED = "campaign_auto_closed"
    ATTESTATION_STARTED = "attestation_started"
    ATTESTATION_COMPLETED = "attestation_completed"
    ASSET_TRANSFERRED = "asset_transferred"
    ERROR = "error"


class AuditEntry(BaseModel):
    """A single audit trail entry.

    All fields except event_type are optional to accommodate different
    event types (e.g., campaign_auto_closed has no recipient).
    """

    event_type: EventType
    campaign_id: int | None = None
    record_id: int | None = None
    invite_id: int | None = None
    notification_kind: str | None = None
    recipient: str | None = None
    metadata: dict[str, str] | None = None
