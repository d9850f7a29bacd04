"""SQLite-backed pending invite store for asset owners without an account."""

from __future__ import annotations

import secrets
from datetime import datetime

from attestation.domain.models import PendingInvite
from attestation.store.claims import claim_flag, release_flag, settle_flag
from attestation.store.database import Database
from attestation.timeutil import format_timestamp

_TABLE = "attestation_pending_invites"

# Once the employee registers, the invite no longer drives notifications.
_STILL_UNREGISTERED = "registered_at IS NULL"


class PendingInviteStore:
    """Read and write ``attestation_pending_invites`` rows.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        campaign_id: int,
        employee_email: str,
        *,
        employee_first_name: str | None = None,
        employee_last_name: str | None = None,
        invite_token: str | None = None,
    ) -> PendingInvite:
        """Insert an invite, generating a URL-safe token when none is given."""
        token = invite_token or secrets.token_urlsafe(32)
        cursor = self._db.execute(
            f"""
            INSERT INTO {_TABLE} (
                campaign_id, employee_email, employee_first_name,
                employee_last_name, invite_token
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (campaign_id, employee_email, employee_first_name, employee_last_name, token),
        )
        invite = self.get_by_id(cursor.lastrowid or 0)
        if invite is None:
            raise RuntimeError("Inserted pending invite could not be read back")
        return invite

    def get_by_id(self, invite_id: int) -> PendingInvite | None:
        """Return the invite with *invite_id*, or ``None``."""
        row = self._db.fetch_one(f"SELECT * FROM {_TABLE} WHERE id = ?", (invite_id,))
        return PendingInvite(**row) if row is not None else None

    def list_by_campaign(self, campaign_id: int) -> list[PendingInvite]:
        """Return every invite belonging to *campaign_id*, ordered by id."""
        rows = self._db.fetch_all(
            f"SELECT * FROM {_TABLE} WHERE campaign_id = ? ORDER BY id", (campaign_id,)
        )
        return [PendingInvite(**row) for row in rows]

    def mark_registered(self, invite_id: int, registered_at: datetime) -> bool:
        """Record that the invited employee created an account.

        Returns:
            True if the invite was unregistered before this call.
        """
        cursor = self._db.execute(
            f"UPDATE {_TABLE} SET registered_at = ? WHERE id = ? AND registered_at IS NULL",
            (format_timestamp(registered_at), invite_id),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Notification claims
    # ------------------------------------------------------------------

    def claim_reminder(self, invite_id: int, now: datetime, stale_before: datetime) -> bool:
        """Atomically claim the unregistered reminder for an invite."""
        return claim_flag(
            self._db, _TABLE, "reminder", invite_id, now, stale_before, _STILL_UNREGISTERED
        )

    def claim_escalation(self, invite_id: int, now: datetime, stale_before: datetime) -> bool:
        """Atomically claim the unregistered escalation for an invite."""
        return claim_flag(
            self._db, _TABLE, "escalation", invite_id, now, stale_before, _STILL_UNREGISTERED
        )

    def mark_reminder_sent(self, invite_id: int, sent_at: datetime) -> bool:
        """Set ``reminder_sent_at`` after a successful send."""
        return settle_flag(self._db, _TABLE, "reminder", invite_id, sent_at)

    def mark_escalation_sent(self, invite_id: int, sent_at: datetime) -> bool:
        """Set ``escalation_sent_at`` after a successful send."""
        return settle_flag(self._db, _TABLE, "escalation", invite_id, sent_at)

    def release_reminder(self, invite_id: int) -> None:
        """Give up a reminder claim so the invite is retried next tick."""
        release_flag(self._db, _TABLE, "reminder", invite_id)

    def release_escalation(self, invite_id: int) -> None:
        """Give up an escalation claim so the invite is retried next tick."""
        release_flag(self._db, _TABLE, "escalation", invite_id)
