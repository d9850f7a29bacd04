"""SQLite-backed audit trail store with indexed queries.

Provides functions to create the audit table, insert audit entries, and
query the audit trail with flexible filtering.  Uses parameterized queries
exclusively (never string concatenation) to prevent SQL injection.

The audit table lives in the attestation database.  Inserts made inside a
:meth:`Database.transaction` block commit or roll back with it, so an
aborted asset transfer leaves no "transferred" entries behind.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from attestation.audit.models import AuditEntry
from attestation.store.database import Database
from attestation.timeutil import format_timestamp, utc_now


def init_audit_table(conn: sqlite3.Connection) -> None:
    """Create the audit_log table and its indexes if they do not already exist.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            event_type TEXT NOT NULL,
            campaign_id INTEGER,
            record_id INTEGER,
            invite_id INTEGER,
            notification_kind TEXT,
            recipient TEXT,
            metadata TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_campaign ON audit_log (campaign_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_event ON audit_log (event_type)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp)")


def insert_audit_entry(db: Database, entry: AuditEntry) -> int:
    """Insert an audit entry into the database.

    Serializes the metadata dict to a JSON string if present.

    Args:
        db: The shared database wrapper.
        entry: The audit entry to insert.

    Returns:
        The row ID of the inserted entry.
    """
    metadata_json: str | None = None
    if entry.metadata is not None:
        metadata_json = json.dumps(entry.metadata)

    cursor = db.execute(
        """
        INSERT INTO audit_log (
            timestamp, event_type, campaign_id, record_id, invite_id,
            notification_kind, recipient, metadata
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            format_timestamp(utc_now()),
            entry.event_type.value,
            entry.campaign_id,
            entry.record_id,
            entry.invite_id,
            entry.notification_kind,
            entry.recipient,
            metadata_json,
        ),
    )
    return cursor.lastrowid or 0


def query_audit_trail(
    db: Database,
    *,
    campaign_id: int | None = None,
    record_id: int | None = None,
    recipient: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    event_type: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Query the audit trail with flexible filtering.

    All filters are optional.  Results are ordered newest first.

    Args:
        db: The shared database wrapper.
        campaign_id: Filter by campaign ID.
        record_id: Filter by attestation record ID.
        recipient: Filter by recipient address (case-insensitive).
        from_date: Filter entries on or after this ISO 8601 date.
        to_date: Filter entries on or before this ISO 8601 date.
        event_type: Filter by event type (exact match).
        limit: Maximum number of results to return (default 50).

    Returns:
        A list of dicts, one per matching audit entry, newest first.
    """
    conditions: list[str] = []
    params: list[str | int] = []

    if campaign_id is not None:
        conditions.append("campaign_id = ?")
        params.append(campaign_id)

    if record_id is not None:
        conditions.append("record_id = ?")
        params.append(record_id)

    if recipient is not None:
        conditions.append("recipient = ? COLLATE NOCASE")
        params.append(recipient)

    if from_date is not None:
        conditions.append("timestamp >= ?")
        params.append(from_date)

    if to_date is not None:
        conditions.append("timestamp <= ?")
        params.append(to_date)

    if event_type is not None:
        conditions.append("event_type = ?")
        params.append(event_type)

    where_clause = ""
    if conditions:
        where_clause = "WHERE " + " AND ".join(conditions)

    query = f"SELECT * FROM audit_log {where_clause} ORDER BY timestamp DESC, id DESC LIMIT ?"
    params.append(limit)

    results = db.fetch_all(query, params)
    for row in results:
        # Deserialize metadata JSON back to dict if present
        if row.get("metadata") is not None:
            row["metadata"] = json.loads(row["metadata"])
    return results
