"""Domain enumerations for attestation campaigns, records, and assets."""

from enum import StrEnum


class CampaignStatus(StrEnum):
    """Lifecycle states of an attestation campaign."""

    ACTIVE = "active"
    COMPLETED = "completed"


class RecordStatus(StrEnum):
    """Per-employee attestation progress within a campaign."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AssetStatus(StrEnum):
    """Status of an asset in the canonical registry."""

    ACTIVE = "active"
    RETURNED = "returned"
    LOST = "lost"
    DAMAGED = "damaged"
    RETIRED = "retired"


class NotificationKind(StrEnum):
    """The four time-driven notifications the scheduler sends."""

    REMINDER = "reminder"
    ESCALATION = "escalation"
    UNREGISTERED_REMINDER = "unregistered_reminder"
    UNREGISTERED_ESCALATION = "unregistered_escalation"
