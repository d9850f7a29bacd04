"""CLI query interface for the attestation audit trail.

Provides an argparse-based command-line tool for querying audit entries
with filters by campaign, record, recipient, date range, event type, and
a shorthand ``--last`` duration.  Output formats: table (default) or JSON.

Usage::

    python -m attestation.audit.cli --campaign 12 --last 7d
    python -m attestation.audit.cli --event-type notification_failed --format json
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path
from typing import Any

from attestation.audit.models import EventType
from attestation.audit.store import init_audit_table, query_audit_trail
from attestation.store.database import Database
from attestation.store.schema import init_attestation_db
from attestation.timeutil import format_timestamp, utc_now


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for audit trail queries.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Query attestation audit trail")

    parser.add_argument("--campaign", type=int, help="Filter by campaign ID")
    parser.add_argument("--record", type=int, help="Filter by attestation record ID")
    parser.add_argument(
        "--recipient",
        type=str,
        help="Filter by recipient email (case-insensitive matching)",
    )
    parser.add_argument("--from-date", type=str, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to-date", type=str, help="End date (YYYY-MM-DD), inclusive")
    parser.add_argument(
        "--event-type",
        type=str,
        choices=[e.value for e in EventType],
        help="Filter by event type",
    )
    parser.add_argument(
        "--last",
        type=str,
        help='Shorthand duration (e.g., "7d", "24h", "30d")',
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum results (default: 50)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default="data/attestation.db",
        help="Path to attestation database (default: data/attestation.db)",
    )

    return parser


def parse_last_duration(last: str) -> str:
    """Convert a shorthand duration to a timestamp in the audit log format.

    Supported formats:
        - ``Nd`` -- N days ago (e.g., ``7d``)
        - ``Nh`` -- N hours ago (e.g., ``24h``)

    Args:
        last: Duration string like ``"7d"`` or ``"24h"``.

    Returns:
        Timestamp string for the computed past time.

    Raises:
        ValueError: If the format is not recognized.
    """
    if not last or len(last) < 2:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg)

    unit = last[-1]
    try:
        value = int(last[:-1])
    except ValueError:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg) from None

    now = utc_now()

    if unit == "d":
        result = now - timedelta(days=value)
    elif unit == "h":
        result = now - timedelta(hours=value)
    else:
        msg = f"Unrecognized duration format: {last!r}. Use 'd' for days or 'h' for hours."
        raise ValueError(msg)

    return format_timestamp(result)


def _end_of_day(to_date: str | None) -> str | None:
    # A bare date would otherwise exclude every entry logged during that day.
    if to_date is not None and len(to_date) == 10:
        return f"{to_date}T23:59:59.999Z"
    return to_date


def format_table(results: list[dict[str, Any]]) -> str:
    """Format audit results as a human-readable table.

    Columns: Timestamp, Event, Kind, Campaign, Record, Recipient.
    Long fields are truncated to fit reasonable terminal width.

    Args:
        results: List of audit entry dicts from ``query_audit_trail``.

    Returns:
        Formatted table string with header row.
    """
    if not results:
        return "No results found."

    headers = ["Timestamp", "Event", "Kind", "Campaign", "Record", "Recipient"]
    widths = [24, 22, 23, 8, 8, 30]

    def truncate(value: Any, width: int) -> str:
        s = "" if value is None else str(value)
        if len(s) > width:
            return s[: width - 3] + "..."
        return s

    lines: list[str] = []

    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    lines.append(header_line)
    lines.append("-" * len(header_line))

    for row in results:
        cells = [
            truncate(row.get("timestamp"), widths[0]),
            truncate(row.get("event_type"), widths[1]),
            truncate(row.get("notification_kind"), widths[2]),
            truncate(row.get("campaign_id"), widths[3]),
            truncate(row.get("record_id") or row.get("invite_id"), widths[4]),
            truncate(row.get("recipient"), widths[5]),
        ]
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))

    return "\n".join(lines)


def format_json(results: list[dict[str, Any]]) -> str:
    """Format audit results as a JSON string.

    Args:
        results: List of audit entry dicts from ``query_audit_trail``.

    Returns:
        Pretty-printed JSON string.
    """
    return json.dumps(results, indent=2)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, query audit trail, and print results."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from_date = args.from_date
    if args.last:
        try:
            from_date = parse_last_duration(args.last)
        except ValueError as exc:
            parser.error(str(exc))

    db_path = Path(args.db)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_attestation_db(db_path)
    init_audit_table(conn)
    db = Database(conn)

    try:
        results = query_audit_trail(
            db,
            campaign_id=args.campaign,
            record_id=args.record,
            recipient=args.recipient,
            from_date=from_date,
            to_date=_end_of_day(args.to_date),
            event_type=args.event_type,
            limit=args.limit,
        )

        output = format_json(results) if args.output_format == "json" else format_table(results)

        print(output)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
