"""Tests for the CLI query interface for the audit trail."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from attestation.audit.cli import (
    build_parser,
    format_json,
    format_table,
    main,
    parse_last_duration,
)
from attestation.audit.logger import AuditLogger
from attestation.audit.store import init_audit_table
from attestation.domain.types import NotificationKind
from attestation.store.database import Database
from attestation.store.schema import init_attestation_db


def _parse(ts: str) -> datetime:
    return datetime.strptime(ts, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=UTC)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """A database file holding a few audit entries."""
    path = tmp_path / "attestation.db"
    conn = init_attestation_db(path)
    init_audit_table(conn)
    db = Database(conn)
    logger = AuditLogger(db)
    logger.log_notification_sent(NotificationKind.REMINDER, 1, "ada@example.com", record_id=10)
    logger.log_notification_sent(NotificationKind.REMINDER, 2, "bob@example.com", record_id=20)
    logger.log_campaign_auto_closed(1, "Q1", "2026-03-31")
    db.close()
    return path


class TestBuildParser:
    """Tests for argument parser construction."""

    def test_accepts_all_arguments(self) -> None:
        parser = build_parser()
        args = parser.parse_args([
            "--campaign",
            "12",
            "--record",
            "40",
            "--recipient",
            "ada@example.com",
            "--from-date",
            "2026-01-01",
            "--to-date",
            "2026-02-01",
            "--event-type",
            "notification_failed",
            "--last",
            "7d",
            "--format",
            "json",
            "--limit",
            "10",
            "--db",
            "/tmp/x.db",
        ])
        assert args.campaign == 12
        assert args.record == 40
        assert args.recipient == "ada@example.com"
        assert args.event_type == "notification_failed"
        assert args.output_format == "json"
        assert args.limit == 10
        assert args.db == "/tmp/x.db"

    def test_default_values(self) -> None:
        args = build_parser().parse_args([])
        assert args.campaign is None
        assert args.record is None
        assert args.output_format == "table"
        assert args.limit == 50
        assert args.db == "data/attestation.db"

    def test_rejects_unknown_event_type(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--event-type", "email_sent"])


class TestParseLastDuration:
    """Tests for parse_last_duration conversion."""

    def test_converts_days(self) -> None:
        result = parse_last_duration("7d")
        expected = datetime.now(tz=UTC) - timedelta(days=7)
        assert abs((_parse(result) - expected).total_seconds()) < 2

    def test_converts_hours(self) -> None:
        result = parse_last_duration("24h")
        expected = datetime.now(tz=UTC) - timedelta(hours=24)
        assert abs((_parse(result) - expected).total_seconds()) < 2

    def test_raises_on_invalid_unit(self) -> None:
        with pytest.raises(ValueError, match="Unrecognized duration format"):
            parse_last_duration("7x")

    def test_raises_on_non_numeric_value(self) -> None:
        with pytest.raises(ValueError, match="Unrecognized duration format"):
            parse_last_duration("xd")

    def test_raises_on_empty_string(self) -> None:
        with pytest.raises(ValueError, match="Unrecognized duration format"):
            parse_last_duration("")


class TestFormatTable:
    """Tests for table output formatting."""

    def test_produces_readable_output_with_header(self) -> None:
        results = [
            {
                "timestamp": "2026-03-09T09:00:00.000Z",
                "event_type": "notification_sent",
                "notification_kind": "reminder",
                "campaign_id": 1,
                "record_id": 10,
                "recipient": "ada@example.com",
            },
        ]
        output = format_table(results)
        assert "Timestamp" in output
        assert "Recipient" in output
        assert "ada@example.com" in output
        assert "notification_sent" in output
        lines = output.strip().split("\n")
        assert len(lines) == 3  # header + separator + 1 row

    def test_invite_id_shown_when_no_record(self) -> None:
        output = format_table([{"event_type": "notification_sent", "invite_id": 77}])
        assert "77" in output

    def test_long_values_truncated(self) -> None:
        output = format_table([{"recipient": "a" * 60 + "@example.com"}])
        assert "..." in output

    def test_empty_results(self) -> None:
        assert format_table([]) == "No results found."


class TestFormatJson:
    """Tests for JSON output formatting."""

    def test_produces_valid_json(self) -> None:
        output = format_json([{"event_type": "notification_sent", "metadata": {"a": "b"}}])
        parsed = json.loads(output)
        assert parsed[0]["metadata"] == {"a": "b"}


class TestMain:
    """Tests for the main() entry point."""

    def test_filters_by_campaign(self, db_path: Path, capsys) -> None:
        assert main(["--campaign", "1", "--format", "json", "--db", str(db_path)]) == 0

        parsed = json.loads(capsys.readouterr().out)
        assert {r["event_type"] for r in parsed} == {"notification_sent", "campaign_auto_closed"}
        assert all(r["campaign_id"] == 1 for r in parsed)

    def test_filters_by_recipient_as_table(self, db_path: Path, capsys) -> None:
        main(["--recipient", "BOB@example.com", "--db", str(db_path)])

        output = capsys.readouterr().out
        assert "bob@example.com" in output
        assert "ada@example.com" not in output

    def test_last_duration_includes_recent_entries(self, db_path: Path, capsys) -> None:
        main(["--last", "1h", "--format", "json", "--db", str(db_path)])

        assert len(json.loads(capsys.readouterr().out)) == 3

    def test_to_date_in_past_excludes_everything(self, db_path: Path, capsys) -> None:
        main(["--to-date", "2000-01-01", "--db", str(db_path)])

        assert capsys.readouterr().out.strip() == "No results found."

    def test_bad_last_duration_exits(self, db_path: Path) -> None:
        with pytest.raises(SystemExit):
            main(["--last", "soon", "--db", str(db_path)])
