"""SQLite schema for campaigns, attestation records, invites, and the asset registry.

Provides ``init_attestation_db()`` which opens the database in autocommit
mode with WAL journaling and creates every table the engine touches.
Multi-statement atomicity is handled explicitly by
:meth:`attestation.store.database.Database.transaction`.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        first_name TEXT,
        last_name TEXT,
        manager_email TEXT,
        manager_first_name TEXT,
        manager_last_name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attestation_campaigns (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        start_date TEXT NOT NULL,
        end_date TEXT,
        reminder_days INTEGER NOT NULL DEFAULT 7,
        escalation_days INTEGER NOT NULL DEFAULT 10,
        unregistered_reminder_days INTEGER DEFAULT 7,
        status TEXT NOT NULL DEFAULT 'active',
        created_by INTEGER REFERENCES users (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attestation_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES attestation_campaigns (id),
        user_id INTEGER NOT NULL REFERENCES users (id),
        status TEXT NOT NULL DEFAULT 'pending',
        reminder_sent_at TEXT,
        escalation_sent_at TEXT,
        reminder_claimed_at TEXT,
        escalation_claimed_at TEXT,
        completed_at TEXT,
        UNIQUE (campaign_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attestation_pending_invites (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        campaign_id INTEGER NOT NULL REFERENCES attestation_campaigns (id),
        employee_email TEXT NOT NULL,
        employee_first_name TEXT,
        employee_last_name TEXT,
        invite_token TEXT NOT NULL UNIQUE,
        registered_at TEXT,
        reminder_sent_at TEXT,
        escalation_sent_at TEXT,
        reminder_claimed_at TEXT,
        escalation_claimed_at TEXT,
        UNIQUE (campaign_id, employee_email)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attestation_new_assets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        attestation_record_id INTEGER NOT NULL REFERENCES attestation_records (id),
        asset_type TEXT NOT NULL,
        make TEXT NOT NULL DEFAULT '',
        model TEXT NOT NULL DEFAULT '',
        serial_number TEXT,
        asset_tag TEXT,
        company_id INTEGER,
        notes TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS assets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id INTEGER REFERENCES users (id),
        employee_email TEXT NOT NULL,
        employee_first_name TEXT NOT NULL DEFAULT '',
        employee_last_name TEXT NOT NULL DEFAULT '',
        manager_email TEXT,
        manager_first_name TEXT,
        manager_last_name TEXT,
        company_id INTEGER,
        asset_type TEXT NOT NULL,
        make TEXT NOT NULL DEFAULT '',
        model TEXT NOT NULL DEFAULT '',
        serial_number TEXT UNIQUE,
        asset_tag TEXT UNIQUE,
        status TEXT NOT NULL DEFAULT 'active',
        notes TEXT NOT NULL DEFAULT ''
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_campaigns_status ON attestation_campaigns (status)",
    "CREATE INDEX IF NOT EXISTS idx_records_campaign ON attestation_records (campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_invites_campaign ON attestation_pending_invites (campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_new_assets_record "
    "ON attestation_new_assets (attestation_record_id)",
    "CREATE INDEX IF NOT EXISTS idx_assets_employee ON assets (employee_email COLLATE NOCASE)",
)


def create_tables(conn: sqlite3.Connection) -> None:
    """Create all attestation tables and indexes if they do not already exist.

    Args:
        conn: An open sqlite3.Connection.
    """
    for ddl in _TABLES:
        conn.execute(ddl)
    for ddl in _INDEXES:
        conn.execute(ddl)


def init_attestation_db(db_path: Path | str) -> sqlite3.Connection:
    """Open the attestation database and make sure its schema exists.

    The connection is opened in autocommit mode (``isolation_level=None``)
    so that every single-statement write, including the conditional claims,
    is durable on return.  ``check_same_thread`` is disabled because the
    background scheduler and the readiness probe run on worker threads; the
    :class:`~attestation.store.database.Database` wrapper serializes access.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with ``sqlite3.Row`` row factory.
    """
    conn = sqlite3.connect(str(db_path), isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if str(db_path) != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")
    create_tables(conn)
    return conn
