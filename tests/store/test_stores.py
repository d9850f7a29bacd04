"""Tests for the SQLite stores and the transaction wrapper."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime

import pytest
import structlog

from attestation.domain.models import Asset, NewAssetDraft
from attestation.domain.types import CampaignStatus, RecordStatus
from attestation.store.database import Database
from attestation.store.schema import init_attestation_db

START = "2026-03-02T09:00:00.000Z"
NOW = datetime(2026, 3, 9, 9, 0, tzinfo=UTC)


class TestSchema:
    def test_init_creates_every_table(self, conn):
        names = {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }

        assert {
            "users",
            "attestation_campaigns",
            "attestation_records",
            "attestation_pending_invites",
            "attestation_new_assets",
            "assets",
            "audit_log",
        } <= names

    def test_init_is_idempotent(self, tmp_path):
        path = tmp_path / "attestation.db"
        init_attestation_db(path).close()

        conn = init_attestation_db(path)
        try:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0
        finally:
            conn.close()


class TestDatabaseTransaction:
    def test_commit_on_success(self, db, users):
        with db.transaction():
            users.create("ada@example.com")

        assert db.fetch_one("SELECT COUNT(*) AS n FROM users")["n"] == 1
        assert db.in_transaction is False

    def test_rollback_on_error(self, db, users):
        with pytest.raises(RuntimeError), db.transaction():
            users.create("ada@example.com")
            raise RuntimeError("boom")

        assert db.fetch_one("SELECT COUNT(*) AS n FROM users")["n"] == 0
        assert db.in_transaction is False

    def test_nested_block_joins_outer(self, db, users):
        with pytest.raises(RuntimeError), db.transaction():
            with db.transaction():
                users.create("ada@example.com")
                assert db.in_transaction is True
            raise RuntimeError("outer fails")

        assert db.fetch_one("SELECT COUNT(*) AS n FROM users")["n"] == 0

    def test_usable_after_rollback(self, db, users):
        with pytest.raises(sqlite3.IntegrityError), db.transaction():
            users.create("ada@example.com")
            users.create("ada@example.com")

        users.create("ada@example.com")

        assert db.fetch_one("SELECT COUNT(*) AS n FROM users")["n"] == 1

    def test_fetch_helpers_return_dicts(self, db, users):
        users.create("ada@example.com", first_name="Ada")

        assert db.fetch_one("SELECT email, first_name FROM users") == {
            "email": "ada@example.com",
            "first_name": "Ada",
        }
        assert db.fetch_all("SELECT email FROM users WHERE id = ?", (999,)) == []

    def test_connection_property(self, conn):
        assert Database(conn).connection is conn


class TestCampaignStore:
    def test_create_defaults(self, campaigns):
        campaign = campaigns.create("Q1", START)

        assert campaign.status == CampaignStatus.ACTIVE
        assert campaign.reminder_days == 7
        assert campaign.escalation_days == 10
        assert campaign.unregistered_reminder_days == 7
        assert campaign.end_date is None

    def test_list_active_excludes_completed(self, campaigns):
        first = campaigns.create("Q1", START)
        second = campaigns.create("Q2", START)
        campaigns.complete_if_active(first.id)

        assert [c.id for c in campaigns.list_active()] == [second.id]

    def test_update_whitelisted_fields(self, campaigns):
        campaign = campaigns.create("Q1", START)

        campaigns.update(campaign.id, reminder_days=3, status=CampaignStatus.COMPLETED)

        stored = campaigns.get_by_id(campaign.id)
        assert stored.reminder_days == 3
        assert stored.status == CampaignStatus.COMPLETED

    def test_update_rejects_unknown_fields(self, campaigns):
        campaign = campaigns.create("Q1", START)

        with pytest.raises(ValueError, match="id"):
            campaigns.update(campaign.id, id=99)

    @pytest.mark.parametrize(
        "field", ["reminder_days", "escalation_days", "unregistered_reminder_days"]
    )
    def test_update_rejects_negative_day_counts(self, campaigns, field):
        campaign = campaigns.create("Q1", START)

        with pytest.raises(ValueError, match="must not be negative"):
            campaigns.update(campaign.id, **{field: -1})

        assert campaigns.get_by_id(campaign.id) == campaign

    def test_create_rejects_negative_day_counts(self, campaigns):
        with pytest.raises(ValueError, match="escalation_days"):
            campaigns.create("Q1", START, escalation_days=-2)

        assert campaigns.list_active() == []

    def test_list_active_skips_invalid_rows(self, conn, campaigns):
        bad = campaigns.create("Broken", START)
        good = campaigns.create("Q1", START)
        conn.execute(
            "UPDATE attestation_campaigns SET reminder_days = -1 WHERE id = ?", (bad.id,)
        )

        with structlog.testing.capture_logs() as logs:
            active = campaigns.list_active()

        assert [c.id for c in active] == [good.id]
        skipped = [e for e in logs if e["event"] == "Skipping invalid campaign row"]
        assert skipped[0]["campaign_id"] == bad.id
        assert skipped[0]["log_level"] == "error"

    def test_update_without_fields_is_noop(self, campaigns):
        campaign = campaigns.create("Q1", START)

        campaigns.update(campaign.id)

        assert campaigns.get_by_id(campaign.id) == campaign

    def test_complete_if_active_only_once(self, campaigns):
        campaign = campaigns.create("Q1", START)

        assert campaigns.complete_if_active(campaign.id) is True
        assert campaigns.complete_if_active(campaign.id) is False
        assert campaigns.complete_if_active(999) is False


class TestRecordStore:
    @pytest.fixture
    def record(self, campaigns, records, users):
        campaign = campaigns.create("Q1", START)
        user = users.create("ada@example.com")
        return records.create(campaign.id, user.id)

    def test_create_pending(self, record):
        assert record.status == RecordStatus.PENDING
        assert record.completed_at is None

    def test_one_record_per_user_and_campaign(self, records, record):
        with pytest.raises(sqlite3.IntegrityError):
            records.create(record.campaign_id, record.user_id)

    def test_start_only_from_pending(self, records, record):
        assert records.start(record.id) is True
        assert records.start(record.id) is False
        assert records.get_by_id(record.id).status == RecordStatus.IN_PROGRESS

    def test_complete_sets_timestamp(self, records, record):
        assert records.complete(record.id, NOW) is True

        stored = records.get_by_id(record.id)
        assert stored.status == RecordStatus.COMPLETED
        assert stored.completed_at == "2026-03-09T09:00:00.000Z"

    def test_complete_twice_is_rejected(self, records, record):
        records.complete(record.id, NOW)

        assert records.complete(record.id, datetime(2026, 4, 1, tzinfo=UTC)) is False
        assert records.get_by_id(record.id).completed_at == "2026-03-09T09:00:00.000Z"

    def test_list_by_campaign(self, campaigns, records, users, record):
        other = users.create("bob@example.com")
        second = records.create(record.campaign_id, other.id)
        unrelated = campaigns.create("Q2", START)
        records.create(unrelated.id, other.id)

        assert [r.id for r in records.list_by_campaign(record.campaign_id)] == [
            record.id,
            second.id,
        ]


class TestPendingInviteStore:
    def test_create_generates_token(self, campaigns, invites):
        campaign = campaigns.create("Q1", START)

        first = invites.create(campaign.id, "a@example.com")
        second = invites.create(campaign.id, "b@example.com")

        assert len(first.invite_token) >= 32
        assert first.invite_token != second.invite_token

    def test_explicit_token_kept(self, campaigns, invites):
        campaign = campaigns.create("Q1", START)

        invite = invites.create(campaign.id, "a@example.com", invite_token="tok-1")

        assert invite.invite_token == "tok-1"

    def test_mark_registered_once(self, campaigns, invites):
        campaign = campaigns.create("Q1", START)
        invite = invites.create(campaign.id, "a@example.com")

        assert invites.mark_registered(invite.id, NOW) is True
        assert invites.mark_registered(invite.id, datetime(2026, 4, 1, tzinfo=UTC)) is False
        assert invites.get_by_id(invite.id).registered_at == "2026-03-09T09:00:00.000Z"

    def test_display_name_falls_back_to_email(self, campaigns, invites):
        campaign = campaigns.create("Q1", START)

        named = invites.create(
            campaign.id, "a@example.com", employee_first_name="Ann", employee_last_name="Lee"
        )
        anonymous = invites.create(campaign.id, "b@example.com")

        assert named.display_name == "Ann Lee"
        assert anonymous.display_name == "b@example.com"


class TestAssetStores:
    def test_create_assigns_id(self, assets):
        asset = assets.create(Asset(employee_email="ada@example.com", asset_type="laptop"))

        assert asset.id is not None
        assert assets.get_by_id(asset.id) == asset

    def test_count_is_case_insensitive(self, assets):
        assets.create(Asset(employee_email="Ada@Example.com", asset_type="laptop"))
        assets.create(Asset(employee_email="ada@example.com", asset_type="phone"))
        assets.create(Asset(employee_email="bob@example.com", asset_type="phone"))

        assert assets.count_by_employee_email("ADA@example.COM") == 2
        assert len(assets.list_by_employee_email("ada@example.com")) == 2
        assert assets.count_by_employee_email("nobody@example.com") == 0

    def test_serial_numbers_are_unique(self, assets):
        assets.create(Asset(employee_email="a@example.com", asset_type="x", serial_number="S1"))

        with pytest.raises(sqlite3.IntegrityError):
            assets.create(
                Asset(employee_email="b@example.com", asset_type="x", serial_number="S1")
            )

    def test_missing_serials_do_not_conflict(self, assets):
        assets.create(Asset(employee_email="a@example.com", asset_type="x"))
        assets.create(Asset(employee_email="b@example.com", asset_type="x"))

        assert assets.count_by_employee_email("a@example.com") == 1

    def test_drafts_listed_in_order(self, campaigns, records, users, new_assets):
        campaign = campaigns.create("Q1", START)
        record = records.create(campaign.id, users.create("ada@example.com").id)

        first = new_assets.create(NewAssetDraft(attestation_record_id=record.id, asset_type="a"))
        second = new_assets.create(NewAssetDraft(attestation_record_id=record.id, asset_type="b"))

        assert new_assets.list_by_record(record.id) == [first, second]
        assert new_assets.list_by_record(999) == []
