"""Structural interfaces the scheduler and asset transfer depend on.

The SQLite stores in this package satisfy these protocols; any other
persistence layer can be injected as long as it honors the conditional
claim contract: ``claim_*`` must succeed for at most one caller per row
until the lease is released or goes stale.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Protocol

from attestation.domain.models import (
    Asset,
    AttestationRecord,
    Campaign,
    NewAssetDraft,
    PendingInvite,
    User,
)


class CampaignStoreProtocol(Protocol):
    def list_active(self) -> list[Campaign]: ...

    def update(self, campaign_id: int, **fields: Any) -> None: ...

    def complete_if_active(self, campaign_id: int) -> bool: ...


class ClaimableStoreProtocol(Protocol):
    """Shared claim family for records and pending invites."""

    def claim_reminder(self, row_id: int, now: datetime, stale_before: datetime) -> bool: ...

    def claim_escalation(self, row_id: int, now: datetime, stale_before: datetime) -> bool: ...

    def mark_reminder_sent(self, row_id: int, sent_at: datetime) -> bool: ...

    def mark_escalation_sent(self, row_id: int, sent_at: datetime) -> bool: ...

    def release_reminder(self, row_id: int) -> None: ...

    def release_escalation(self, row_id: int) -> None: ...


class RecordStoreProtocol(ClaimableStoreProtocol, Protocol):
    def get_by_id(self, record_id: int) -> AttestationRecord | None: ...

    def list_by_campaign(self, campaign_id: int) -> list[AttestationRecord]: ...

    def start(self, record_id: int) -> bool: ...

    def complete(self, record_id: int, completed_at: datetime) -> bool: ...


class PendingInviteStoreProtocol(ClaimableStoreProtocol, Protocol):
    def list_by_campaign(self, campaign_id: int) -> list[PendingInvite]: ...


class AssetStoreProtocol(Protocol):
    def list_by_employee_email(self, email: str) -> list[Asset]: ...

    def count_by_employee_email(self, email: str) -> int: ...

    def create(self, asset: Asset) -> Asset: ...


class NewAssetStoreProtocol(Protocol):
    def list_by_record(self, record_id: int) -> list[NewAssetDraft]: ...

    def create(self, draft: NewAssetDraft) -> NewAssetDraft: ...


class UserStoreProtocol(Protocol):
    def get_by_id(self, user_id: int) -> User | None: ...


class TransactionalProtocol(Protocol):
    """Provides the atomic boundary asset transfer runs inside."""

    def transaction(self) -> AbstractContextManager[Any]: ...

