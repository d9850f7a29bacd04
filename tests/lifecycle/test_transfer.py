"""Tests for attestation completion and draft asset transfer."""

from __future__ import annotations

import sqlite3

import pytest

from attestation.audit.store import query_audit_trail
from attestation.domain.errors import (
    AssetTransferError,
    DraftAssetError,
    InvalidTransitionError,
    RecordNotFoundError,
)
from attestation.domain.models import Asset, NewAssetDraft
from attestation.domain.types import AssetStatus, RecordStatus
from attestation.lifecycle.transfer import AttestationService, asset_from_draft


@pytest.fixture
def service(db, records, users, assets, new_assets, clock, audit):
    return AttestationService(db, records, users, assets, new_assets, clock=clock, audit=audit)


@pytest.fixture
def record(campaigns, records, users):
    campaign = campaigns.create("Q1", "2026-03-02T09:00:00.000Z")
    user = users.create(
        "ada@example.com",
        first_name="Ada",
        last_name="Lovelace",
        manager_email="grace@example.com",
        manager_first_name="Grace",
        manager_last_name="Hopper",
    )
    return records.create(campaign.id, user.id)


def _draft(record_id, serial="SN-1", tag=None):
    return NewAssetDraft(
        attestation_record_id=record_id,
        asset_type="laptop",
        make="Lenovo",
        model="T14",
        serial_number=serial,
        asset_tag=tag,
        notes="found in drawer",
    )


def _count_serial(conn: sqlite3.Connection, serial: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM assets WHERE serial_number = ?", (serial,)
    ).fetchone()[0]


class TestCompleteAttestation:
    def test_single_draft_transferred_once(self, conn, service, record, records):
        service.add_new_asset(record.id, _draft(record.id))

        result = service.complete_attestation(record.id)

        assert result.already_completed is False
        assert result.completed_at == "2026-03-02T09:00:00.000Z"
        assert len(result.transferred) == 1
        asset = result.transferred[0]
        assert asset.id is not None
        assert asset.serial_number == "SN-1"
        assert asset.status == AssetStatus.ACTIVE
        assert asset.employee_email == "ada@example.com"
        assert asset.manager_email == "grace@example.com"
        assert _count_serial(conn, "SN-1") == 1
        assert records.get_by_id(record.id).status == RecordStatus.COMPLETED

    def test_second_call_creates_nothing(self, conn, service, record):
        service.add_new_asset(record.id, _draft(record.id))
        service.complete_attestation(record.id)

        again = service.complete_attestation(record.id)

        assert again.already_completed is True
        assert again.transferred == []
        assert again.completed_at == "2026-03-02T09:00:00.000Z"
        assert _count_serial(conn, "SN-1") == 1

    def test_owner_identity_copied_from_user(self, service, record, assets):
        service.add_new_asset(record.id, _draft(record.id))

        service.complete_attestation(record.id)

        (stored,) = assets.list_by_employee_email("ada@example.com")
        assert stored.owner_id == record.user_id
        assert stored.employee_first_name == "Ada"
        assert stored.employee_last_name == "Lovelace"
        assert stored.manager_first_name == "Grace"
        assert stored.manager_last_name == "Hopper"
        assert stored.make == "Lenovo"
        assert stored.notes == "found in drawer"

    def test_record_without_drafts_completes(self, service, record, records):
        result = service.complete_attestation(record.id)

        assert result.transferred == []
        assert records.get_by_id(record.id).status == RecordStatus.COMPLETED

    def test_in_progress_record_completes(self, service, record, records):
        service.start_attestation(record.id)

        service.complete_attestation(record.id)

        assert records.get_by_id(record.id).status == RecordStatus.COMPLETED

    def test_unknown_record_raises(self, service):
        with pytest.raises(RecordNotFoundError):
            service.complete_attestation(999)

    def test_completion_is_audited(self, db, service, record):
        service.add_new_asset(record.id, _draft(record.id, "SN-1"))
        service.add_new_asset(record.id, _draft(record.id, "SN-2"))

        service.complete_attestation(record.id)

        transferred = query_audit_trail(db, event_type="asset_transferred")
        completed = query_audit_trail(db, event_type="attestation_completed")
        assert {e["metadata"]["serial_number"] for e in transferred} == {"SN-1", "SN-2"}
        assert completed[0]["metadata"] == {"transferred_count": "2"}


class TestTransferRollback:
    """A failed asset insert aborts the whole completion."""

    def test_duplicate_serial_rolls_back_everything(
        self, db, conn, service, record, records, assets
    ):
        assets.create(
            Asset(employee_email="other@example.com", asset_type="phone", serial_number="SN-2")
        )
        service.add_new_asset(record.id, _draft(record.id, "SN-1"))
        service.add_new_asset(record.id, _draft(record.id, "SN-2"))

        with pytest.raises(AssetTransferError) as exc_info:
            service.complete_attestation(record.id)

        assert exc_info.value.record_id == record.id
        assert exc_info.value.serial_number == "SN-2"
        assert _count_serial(conn, "SN-1") == 0
        assert records.get_by_id(record.id).status == RecordStatus.PENDING
        assert query_audit_trail(db, event_type="asset_transferred") == []
        assert db.in_transaction is False

    def test_retry_after_fixing_conflict_succeeds(self, conn, service, record, assets):
        assets.create(
            Asset(employee_email="other@example.com", asset_type="phone", asset_tag="TAG-9")
        )
        service.add_new_asset(record.id, _draft(record.id, "SN-1", tag="TAG-9"))
        with pytest.raises(AssetTransferError):
            service.complete_attestation(record.id)
        conn.execute("UPDATE assets SET asset_tag = NULL WHERE asset_tag = 'TAG-9'")

        result = service.complete_attestation(record.id)

        assert len(result.transferred) == 1
        assert _count_serial(conn, "SN-1") == 1


class TestStartAttestation:
    def test_moves_pending_to_in_progress(self, db, service, record):
        started = service.start_attestation(record.id)

        assert started.status == RecordStatus.IN_PROGRESS
        assert len(query_audit_trail(db, event_type="attestation_started")) == 1

    def test_starting_twice_is_a_noop(self, db, service, record):
        service.start_attestation(record.id)

        again = service.start_attestation(record.id)

        assert again.status == RecordStatus.IN_PROGRESS
        assert len(query_audit_trail(db, event_type="attestation_started")) == 1

    def test_completed_record_cannot_restart(self, service, record):
        service.complete_attestation(record.id)

        with pytest.raises(InvalidTransitionError):
            service.start_attestation(record.id)


class TestAddNewAsset:
    def test_attaches_draft_to_record(self, service, record):
        draft = NewAssetDraft(attestation_record_id=0, asset_type="monitor")

        saved = service.add_new_asset(record.id, draft)

        assert saved.id is not None
        assert saved.attestation_record_id == record.id
        assert service.list_new_assets(record.id) == [saved]

    def test_completed_record_rejects_drafts(self, service, record):
        service.complete_attestation(record.id)

        with pytest.raises(DraftAssetError):
            service.add_new_asset(record.id, _draft(record.id))

    def test_unknown_record_rejects_drafts(self, service):
        with pytest.raises(RecordNotFoundError):
            service.add_new_asset(42, _draft(42))


class TestAssetFromDraft:
    def test_builds_active_asset(self, users):
        owner = users.create("ada@example.com", first_name="Ada")

        asset = asset_from_draft(_draft(1), owner)

        assert asset.id is None
        assert asset.status == AssetStatus.ACTIVE
        assert asset.owner_id == owner.id
        assert asset.employee_first_name == "Ada"
        assert asset.employee_last_name == ""
