"""SQLite-backed attestation campaign store."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from attestation.domain.models import Campaign
from attestation.domain.types import CampaignStatus
from attestation.store.database import Database

logger = structlog.get_logger()

_UPDATABLE = frozenset(
    {
        "name",
        "description",
        "start_date",
        "end_date",
        "reminder_days",
        "escalation_days",
        "unregistered_reminder_days",
        "status",
    }
)

_DAY_COUNTS = ("reminder_days", "escalation_days", "unregistered_reminder_days")


def _check_day_counts(fields: dict[str, Any]) -> None:
    for name in _DAY_COUNTS:
        value = fields.get(name)
        if value is not None and value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")


class CampaignStore:
    """Read and write ``attestation_campaigns`` rows.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        name: str,
        start_date: str,
        *,
        description: str = "",
        end_date: str | None = None,
        reminder_days: int = 7,
        escalation_days: int = 10,
        unregistered_reminder_days: int | None = 7,
        created_by: int | None = None,
    ) -> Campaign:
        """Insert a new active campaign and return it.

        Raises:
            ValueError: If a threshold day count is negative.
        """
        _check_day_counts(
            {
                "reminder_days": reminder_days,
                "escalation_days": escalation_days,
                "unregistered_reminder_days": unregistered_reminder_days,
            }
        )
        cursor = self._db.execute(
            """
            INSERT INTO attestation_campaigns (
                name, description, start_date, end_date, reminder_days,
                escalation_days, unregistered_reminder_days, status, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                description,
                start_date,
                end_date,
                reminder_days,
                escalation_days,
                unregistered_reminder_days,
                CampaignStatus.ACTIVE.value,
                created_by,
            ),
        )
        campaign = self.get_by_id(cursor.lastrowid or 0)
        if campaign is None:
            raise RuntimeError("Inserted campaign could not be read back")
        return campaign

    def get_by_id(self, campaign_id: int) -> Campaign | None:
        """Return the campaign with *campaign_id*, or ``None``."""
        row = self._db.fetch_one(
            "SELECT * FROM attestation_campaigns WHERE id = ?", (campaign_id,)
        )
        return Campaign(**row) if row is not None else None

    def list_active(self) -> list[Campaign]:
        """Return every campaign whose status is ``active``, oldest first.

        Rows that fail model validation are logged and left out.
        """
        rows = self._db.fetch_all(
            "SELECT * FROM attestation_campaigns WHERE status = ? ORDER BY id",
            (CampaignStatus.ACTIVE.value,),
        )
        campaigns: list[Campaign] = []
        for row in rows:
            try:
                campaigns.append(Campaign(**row))
            except ValidationError as exc:
                logger.error(
                    "Skipping invalid campaign row",
                    campaign_id=row.get("id"),
                    errors=exc.error_count(),
                )
        return campaigns

    def update(self, campaign_id: int, **fields: Any) -> None:
        """Update the named columns of one campaign.

        Raises:
            ValueError: If a field name is not an updatable column, or a
                threshold day count is negative.
        """
        if not fields:
            return
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update campaign fields: {', '.join(sorted(unknown))}")
        _check_day_counts(fields)

        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [v.value if isinstance(v, CampaignStatus) else v for v in fields.values()]
        self._db.execute(
            f"UPDATE attestation_campaigns SET {assignments} WHERE id = ?",
            (*values, campaign_id),
        )

    def complete_if_active(self, campaign_id: int) -> bool:
        """Move a campaign from ``active`` to ``completed``.

        Returns:
            True if this call changed the status; False if the campaign was
            already completed (or does not exist).
        """
        cursor = self._db.execute(
            "UPDATE attestation_campaigns SET status = ? WHERE id = ? AND status = ?",
            (CampaignStatus.COMPLETED.value, campaign_id, CampaignStatus.ACTIVE.value),
        )
        return cursor.rowcount == 1
