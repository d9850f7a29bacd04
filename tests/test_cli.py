"""Tests for the attestation-scheduler command-line entry point."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from attestation.cli import build_parser, main
from attestation.config import get_settings
from attestation.store.campaigns import CampaignStore
from attestation.store.database import Database
from attestation.store.records import RecordStore
from attestation.store.schema import init_attestation_db
from attestation.store.users import UserStore


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the settings at a fresh database under tmp_path."""
    path = tmp_path / "attestation.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_PATH", str(path))
    monkeypatch.delenv("BREVO_API_KEY", raising=False)
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    monkeypatch.setattr("attestation.cli.configure_logging", lambda **_: None)
    get_settings.cache_clear()
    with structlog.testing.capture_logs():
        yield path
    get_settings.cache_clear()


def _seed(path: Path, *, start_date: str = "2026-03-02T09:00:00.000Z") -> int:
    """Create one campaign with one pending record and return the record id."""
    db = Database(init_attestation_db(path))
    try:
        campaign = CampaignStore(db).create("Q1", start_date)
        user = UserStore(db).create("ada@example.com", first_name="Ada")
        return RecordStore(db).create(campaign.id, user.id).id
    finally:
        db.close()


class TestBuildParser:
    def test_complete_requires_record_id(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["complete"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_complete_parses_record_id(self) -> None:
        args = build_parser().parse_args(["complete", "42"])
        assert args.command == "complete"
        assert args.record_id == 42


class TestTickCommand:
    def test_tick_on_empty_database(self, db_path: Path, capsys) -> None:
        assert main(["tick"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["success"] is True
        assert [r["processor"] for r in result["results"]] == [
            "reminder",
            "escalation",
            "unregistered_reminder",
            "unregistered_escalation",
            "auto_close",
        ]

    def test_undeliverable_reminder_does_not_fail_tick(self, db_path: Path, capsys) -> None:
        record_id = _seed(db_path, start_date="2020-01-01T00:00:00.000Z")

        assert main(["tick"]) == 0

        result = json.loads(capsys.readouterr().out)
        reminder = result["results"][0]
        assert reminder["failed"] == 1
        assert reminder["sent"] == 0

        db = Database(init_attestation_db(db_path))
        try:
            assert RecordStore(db).get_by_id(record_id).reminder_sent_at is None
        finally:
            db.close()


class TestCompleteCommand:
    def test_completes_record(self, db_path: Path, capsys) -> None:
        record_id = _seed(db_path)

        assert main(["complete", str(record_id)]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["record_id"] == record_id
        assert result["already_completed"] is False
        assert result["transferred"] == []

    def test_second_completion_reports_already_completed(self, db_path: Path, capsys) -> None:
        record_id = _seed(db_path)
        main(["complete", str(record_id)])
        capsys.readouterr()

        assert main(["complete", str(record_id)]) == 0

        assert json.loads(capsys.readouterr().out)["already_completed"] is True

    def test_unknown_record_exits_non_zero(self, db_path: Path, capsys) -> None:
        with structlog.testing.capture_logs() as logs:
            assert main(["complete", "999"]) == 1

        output = json.loads(capsys.readouterr().out)
        assert output == {"record_id": 999, "error": "Attestation record 999 not found"}
        assert any(
            e["event"] == "Attestation completion failed" and e["log_level"] == "error"
            for e in logs
        )
