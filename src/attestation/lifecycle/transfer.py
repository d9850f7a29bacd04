"""Attestation completion and promotion of draft assets into the registry.

``complete_attestation`` is the single entry point the submission handler
calls.  Inside one ``BEGIN IMMEDIATE`` transaction it re-reads the record,
creates one registry asset per draft, and flips the record to
``completed``.  Any failure rolls the whole unit back, so drafts are
either all transferred together with the status change or not at all.
A record that is already completed is returned unchanged and nothing is
created, which makes repeated calls safe.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import structlog

from attestation.domain.errors import AssetTransferError, DraftAssetError, RecordNotFoundError
from attestation.domain.models import (
    Asset,
    AttestationRecord,
    CompletionResult,
    NewAssetDraft,
    User,
)
from attestation.domain.types import AssetStatus, RecordStatus
from attestation.lifecycle.transitions import validate_transition
from attestation.observability.metrics import ASSETS_TRANSFERRED
from attestation.store.protocols import (
    AssetStoreProtocol,
    NewAssetStoreProtocol,
    RecordStoreProtocol,
    TransactionalProtocol,
    UserStoreProtocol,
)
from attestation.timeutil import Clock, format_timestamp, utc_now

if TYPE_CHECKING:
    from attestation.audit.logger import AuditLogger

logger = structlog.get_logger()


def asset_from_draft(draft: NewAssetDraft, owner: User) -> Asset:
    """Build the registry asset for *draft*, owned by *owner*."""
    return Asset(
        owner_id=owner.id,
        employee_email=owner.email,
        employee_first_name=owner.first_name or "",
        employee_last_name=owner.last_name or "",
        manager_email=owner.manager_email,
        manager_first_name=owner.manager_first_name,
        manager_last_name=owner.manager_last_name,
        company_id=draft.company_id,
        asset_type=draft.asset_type,
        make=draft.make,
        model=draft.model,
        serial_number=draft.serial_number,
        asset_tag=draft.asset_tag,
        status=AssetStatus.ACTIVE,
        notes=draft.notes,
    )


class AssetTransferEngine:
    """Create one registry asset per draft attached to a record.

    Must be called inside the caller's transaction: a uniqueness violation
    on serial number or asset tag raises :class:`AssetTransferError`, and
    the caller's rollback discards the assets already created.

    Args:
        assets: Registry asset store.
        new_assets: Draft asset store.
    """

    def __init__(self, assets: AssetStoreProtocol, new_assets: NewAssetStoreProtocol) -> None:
        self._assets = assets
        self._new_assets = new_assets

    def transfer(self, record: AttestationRecord, owner: User | None) -> list[Asset]:
        """Promote every draft of *record* into the registry.

        Args:
            record: The record being completed.
            owner: The record's user; required when drafts exist.

        Returns:
            The created assets, in draft order.

        Raises:
            AssetTransferError: If the owner is unknown or an insert fails.
        """
        drafts = self._new_assets.list_by_record(record.id)
        if not drafts:
            return []
        if owner is None:
            raise AssetTransferError(record.id, f"owner user {record.user_id} not found")

        created: list[Asset] = []
        for draft in drafts:
            try:
                created.append(self._assets.create(asset_from_draft(draft, owner)))
            except sqlite3.IntegrityError as exc:
                raise AssetTransferError(
                    record.id, str(exc), serial_number=draft.serial_number
                ) from exc
        return created


class AttestationService:
    """Record-level operations invoked by the attestation request handlers.

    Args:
        db: Provides the transaction every completion runs in.
        records: Attestation record store.
        users: User store.
        assets: Registry asset store.
        new_assets: Draft asset store.
        clock: Source of the completion timestamp.
        audit: Optional audit trail writer.  It must write to the same
            database as *db* so that its entries roll back with the
            transaction.
    """

    def __init__(
        self,
        db: TransactionalProtocol,
        records: RecordStoreProtocol,
        users: UserStoreProtocol,
        assets: AssetStoreProtocol,
        new_assets: NewAssetStoreProtocol,
        *,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
    ) -> None:
        self._db = db
        self._records = records
        self._users = users
        self._new_assets = new_assets
        self._engine = AssetTransferEngine(assets, new_assets)
        self._clock = clock
        self._audit = audit

    def _require(self, record_id: int) -> AttestationRecord:
        record = self._records.get_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def start_attestation(self, record_id: int) -> AttestationRecord:
        """Move a pending record to ``in_progress``.

        Starting a record that is already in progress is a no-op.

        Raises:
            RecordNotFoundError: If the record does not exist.
            InvalidTransitionError: If the record is already completed.
        """
        record = self._require(record_id)
        if record.status == RecordStatus.IN_PROGRESS:
            return record
        validate_transition(record.status, RecordStatus.IN_PROGRESS)

        if self._records.start(record_id):
            logger.info("Attestation started", record_id=record_id, campaign_id=record.campaign_id)
            if self._audit is not None:
                self._audit.log_attestation_started(record.campaign_id, record_id)
        return self._require(record_id)

    def add_new_asset(self, record_id: int, draft: NewAssetDraft) -> NewAssetDraft:
        """Attach a draft asset to a record that has not completed yet.

        Raises:
            RecordNotFoundError: If the record does not exist.
            DraftAssetError: If the record is already completed.
        """
        with self._db.transaction():
            record = self._require(record_id)
            if record.status == RecordStatus.COMPLETED:
                raise DraftAssetError(
                    f"Attestation record {record_id} is completed; new assets cannot be added"
                )
            attached = draft.model_copy(update={"attestation_record_id": record_id})
            return self._new_assets.create(attached)

    def list_new_assets(self, record_id: int) -> list[NewAssetDraft]:
        """Return the drafts attached to *record_id*."""
        return self._new_assets.list_by_record(record_id)

    def complete_attestation(self, record_id: int) -> CompletionResult:
        """Complete a record and transfer its drafts as one atomic unit.

        Returns:
            The completion outcome.  ``already_completed`` is True, and
            ``transferred`` empty, when the record had been completed before.

        Raises:
            RecordNotFoundError: If the record does not exist.
            AssetTransferError: If any asset could not be created.  Nothing
                is written in that case and the record keeps its status.
        """
        try:
            with self._db.transaction():
                record = self._require(record_id)
                if record.status == RecordStatus.COMPLETED:
                    logger.info("Attestation already completed", record_id=record_id)
                    return CompletionResult(
                        record_id=record_id,
                        already_completed=True,
                        completed_at=record.completed_at,
                    )

                validate_transition(record.status, RecordStatus.COMPLETED)
                owner = self._users.get_by_id(record.user_id)
                transferred = self._engine.transfer(record, owner)

                completed_at = self._clock()
                if not self._records.complete(record_id, completed_at):
                    raise AssetTransferError(record_id, "record status changed during completion")

                if self._audit is not None:
                    for asset in transferred:
                        self._audit.log_asset_transferred(record.campaign_id, record_id, asset)
                    self._audit.log_attestation_completed(
                        record.campaign_id, record_id, len(transferred)
                    )
        except AssetTransferError as exc:
            logger.error(
                "Asset transfer aborted",
                record_id=record_id,
                serial_number=exc.serial_number,
                error=str(exc),
            )
            raise

        ASSETS_TRANSFERRED.inc(len(transferred))
        logger.info(
            "Attestation completed",
            record_id=record_id,
            campaign_id=record.campaign_id,
            transferred=len(transferred),
        )
        return CompletionResult(
            record_id=record_id,
            completed_at=format_timestamp(completed_at),
            transferred=transferred,
        )
