"""SQLite-backed attestation record store with atomic notification claims."""

from __future__ import annotations

from datetime import datetime

from attestation.domain.models import AttestationRecord
from attestation.domain.types import RecordStatus
from attestation.lifecycle.transitions import COMPLETABLE_STATUSES
from attestation.store.claims import claim_flag, release_flag, settle_flag
from attestation.store.database import Database
from attestation.timeutil import format_timestamp

_TABLE = "attestation_records"

# A record only needs a reminder or escalation while the employee has not
# started; the claim re-checks this so a record that moved on between the
# listing and the claim is never notified.
_STILL_PENDING = f"status = '{RecordStatus.PENDING.value}'"


class RecordStore:
    """Read and write ``attestation_records`` rows.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_by_id(self, record_id: int) -> AttestationRecord | None:
        """Return the record with *record_id*, or ``None``."""
        row = self._db.fetch_one(f"SELECT * FROM {_TABLE} WHERE id = ?", (record_id,))
        return AttestationRecord(**row) if row is not None else None

    def list_by_campaign(self, campaign_id: int) -> list[AttestationRecord]:
        """Return every record belonging to *campaign_id*, ordered by id."""
        rows = self._db.fetch_all(
            f"SELECT * FROM {_TABLE} WHERE campaign_id = ? ORDER BY id", (campaign_id,)
        )
        return [AttestationRecord(**row) for row in rows]

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def create(
        self,
        campaign_id: int,
        user_id: int,
        status: RecordStatus = RecordStatus.PENDING,
    ) -> AttestationRecord:
        """Insert a record for *user_id* in *campaign_id* and return it."""
        cursor = self._db.execute(
            f"INSERT INTO {_TABLE} (campaign_id, user_id, status) VALUES (?, ?, ?)",
            (campaign_id, user_id, status.value),
        )
        record = self.get_by_id(cursor.lastrowid or 0)
        if record is None:
            raise RuntimeError("Inserted attestation record could not be read back")
        return record

    def start(self, record_id: int) -> bool:
        """Move a record from ``pending`` to ``in_progress``.

        Returns:
            True if this call changed the status.
        """
        cursor = self._db.execute(
            f"UPDATE {_TABLE} SET status = ? WHERE id = ? AND status = ?",
            (RecordStatus.IN_PROGRESS.value, record_id, RecordStatus.PENDING.value),
        )
        return cursor.rowcount == 1

    def complete(self, record_id: int, completed_at: datetime) -> bool:
        """Mark a record ``completed`` if it is not already.

        Returns:
            True if this call completed the record; False if it was already
            completed or does not exist.
        """
        placeholders = ", ".join("?" for _ in COMPLETABLE_STATUSES)
        cursor = self._db.execute(
            f"""
            UPDATE {_TABLE}
            SET status = ?, completed_at = ?
            WHERE id = ? AND status IN ({placeholders})
            """,
            (
                RecordStatus.COMPLETED.value,
                format_timestamp(completed_at),
                record_id,
                *(s.value for s in COMPLETABLE_STATUSES),
            ),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Notification claims
    # ------------------------------------------------------------------

    def claim_reminder(self, record_id: int, now: datetime, stale_before: datetime) -> bool:
        """Atomically claim the reminder send for a still-pending record."""
        return claim_flag(
            self._db, _TABLE, "reminder", record_id, now, stale_before, _STILL_PENDING
        )

    def claim_escalation(self, record_id: int, now: datetime, stale_before: datetime) -> bool:
        """Atomically claim the escalation send for a still-pending record."""
        return claim_flag(
            self._db, _TABLE, "escalation", record_id, now, stale_before, _STILL_PENDING
        )

    def mark_reminder_sent(self, record_id: int, sent_at: datetime) -> bool:
        """Set ``reminder_sent_at`` after a successful send."""
        return settle_flag(self._db, _TABLE, "reminder", record_id, sent_at)

    def mark_escalation_sent(self, record_id: int, sent_at: datetime) -> bool:
        """Set ``escalation_sent_at`` after a successful send."""
        return settle_flag(self._db, _TABLE, "escalation", record_id, sent_at)

    def release_reminder(self, record_id: int) -> None:
        """Give up a reminder claim so the record is retried next tick."""
        release_flag(self._db, _TABLE, "reminder", record_id)

    def release_escalation(self, record_id: int) -> None:
        """Give up an escalation claim so the record is retried next tick."""
        release_flag(self._db, _TABLE, "escalation", record_id)
