"""Convenience class for inserting audit trail entries.

Each method creates a properly structured :class:`AuditEntry` and inserts
it via :func:`insert_audit_entry`.
"""

from __future__ import annotations

from attestation.audit.models import AuditEntry, EventType
from attestation.audit.store import insert_audit_entry
from attestation.domain.models import Asset
from attestation.domain.types import NotificationKind
from attestation.store.database import Database


class AuditLogger:
    """Typed convenience API for inserting audit entries.

    Args:
        db: The shared attestation database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def log_notification_sent(
        self,
        kind: NotificationKind,
        campaign_id: int,
        recipient: str,
        *,
        record_id: int | None = None,
        invite_id: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> int:
        """Log a reminder or escalation that was delivered.

        Args:
            kind: Which notification was sent.
            campaign_id: Campaign the notification belongs to.
            recipient: Address the email went to.
            record_id: Attestation record, for registered employees.
            invite_id: Pending invite, for unregistered employees.
            metadata: Additional key-value metadata.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.NOTIFICATION_SENT,
            campaign_id=campaign_id,
            record_id=record_id,
            invite_id=invite_id,
            notification_kind=kind.value,
            recipient=recipient,
            metadata=metadata,
        )
        return insert_audit_entry(self._db, entry)

    def log_notification_failed(
        self,
        kind: NotificationKind,
        campaign_id: int,
        recipient: str,
        error: str,
        *,
        record_id: int | None = None,
        invite_id: int | None = None,
    ) -> int:
        """Log a send attempt that failed and will be retried next tick.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.NOTIFICATION_FAILED,
            campaign_id=campaign_id,
            record_id=record_id,
            invite_id=invite_id,
            notification_kind=kind.value,
            recipient=recipient,
            metadata={"error": error},
        )
        return insert_audit_entry(self._db, entry)

    def log_notification_skipped(
        self,
        kind: NotificationKind,
        campaign_id: int,
        reason: str,
        *,
        record_id: int | None = None,
        invite_id: int | None = None,
        recipient: str | None = None,
    ) -> int:
        """Log a recipient that was skipped without sending.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.NOTIFICATION_SKIPPED,
            campaign_id=campaign_id,
            record_id=record_id,
            invite_id=invite_id,
            notification_kind=kind.value,
            recipient=recipient,
            metadata={"reason": reason},
        )
        return insert_audit_entry(self._db, entry)

    def log_campaign_auto_closed(self, campaign_id: int, campaign_name: str, end_date: str) -> int:
        """Log a campaign closed because its end date passed.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.CAMPAIGN_AUTO_CLOSED,
            campaign_id=campaign_id,
            metadata={"campaign_name": campaign_name, "end_date": end_date},
        )
        return insert_audit_entry(self._db, entry)

    def log_attestation_started(self, campaign_id: int, record_id: int) -> int:
        """Log a record moving from pending to in progress.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.ATTESTATION_STARTED,
            campaign_id=campaign_id,
            record_id=record_id,
        )
        return insert_audit_entry(self._db, entry)

    def log_attestation_completed(
        self,
        campaign_id: int,
        record_id: int,
        transferred_count: int,
    ) -> int:
        """Log a completed attestation.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            event_type=EventType.ATTESTATION_COMPLETED,
            campaign_id=campaign_id,
            record_id=record_id,
            metadata={"transferred_count": str(transferred_count)},
        )
        return insert_audit_entry(self._db, entry)

    def log_asset_transferred(self, campaign_id: int, record_id: int, asset: Asset) -> int:
        """Log a draft asset promoted into the registry.

        Returns:
            The row ID of the inserted audit entry.
        """
        meta = {"asset_id": str(asset.id), "asset_type": asset.asset_type}
        if asset.serial_number:
            meta["serial_number"] = asset.serial_number
        if asset.asset_tag:
            meta["asset_tag"] = asset.asset_tag

        entry = AuditEntry(
            event_type=EventType.ASSET_TRANSFERRED,
            campaign_id=campaign_id,
            record_id=record_id,
            recipient=asset.employee_email,
            metadata=meta,
        )
        return insert_audit_entry(self._db, entry)

    def log_error(
        self,
        campaign_id: int | None,
        error_message: str,
        context: str | None = None,
    ) -> int:
        """Log an error encountered during processing.

        Args:
            campaign_id: Campaign identifier (if available).
            error_message: The error message.
            context: Additional context about where the error occurred.

        Returns:
            The row ID of the inserted audit entry.
        """
        meta: dict[str, str] = {"error_message": error_message}
        if context is not None:
            meta["context"] = context

        entry = AuditEntry(
            event_type=EventType.ERROR,
            campaign_id=campaign_id,
            metadata=meta,
        )
        return insert_audit_entry(self._db, entry)
