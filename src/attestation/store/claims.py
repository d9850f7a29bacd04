"""Conditional claim, settle, and release statements for notification flags.

A notification flag ``<flag>_sent_at`` is paired with a lease column
``<flag>_claimed_at``.  The sequence for one send is:

1. :func:`claim_flag` -- a single conditional ``UPDATE`` that only succeeds
   while the flag is unset and no live lease exists.  Exactly one caller
   can win it, whatever the number of scheduler instances.
2. :func:`settle_flag` -- after a successful send, set ``<flag>_sent_at``
   and drop the lease.
3. :func:`release_flag` -- after a failed send, drop the lease so the next
   tick can try again.

Table, flag, and condition strings are module constants chosen by the
stores, never caller input; row values are always bound parameters.
"""

from __future__ import annotations

from datetime import datetime

from attestation.store.database import Database
from attestation.timeutil import format_timestamp

FLAGS: frozenset[str] = frozenset({"reminder", "escalation"})
TABLES: frozenset[str] = frozenset({"attestation_records", "attestation_pending_invites"})


def _columns(table: str, flag: str) -> tuple[str, str]:
    if table not in TABLES:
        raise ValueError(f"Unknown claimable table: {table}")
    if flag not in FLAGS:
        raise ValueError(f"Unknown notification flag: {flag}")
    return f"{flag}_sent_at", f"{flag}_claimed_at"


def claim_flag(
    db: Database,
    table: str,
    flag: str,
    row_id: int,
    now: datetime,
    stale_before: datetime,
    extra_condition: str = "",
) -> bool:
    """Atomically take the send lease for one row.

    Args:
        db: The shared database.
        table: ``attestation_records`` or ``attestation_pending_invites``.
        flag: ``reminder`` or ``escalation``.
        row_id: Primary key of the row to claim.
        now: Timestamp written into the lease column.
        stale_before: Leases older than this are considered abandoned and
            may be taken over.
        extra_condition: Additional SQL predicate the row must still satisfy
            (for example, ``status = 'pending'``).

    Returns:
        True if this caller now holds the lease.
    """
    sent_col, claim_col = _columns(table, flag)
    condition = f" AND {extra_condition}" if extra_condition else ""
    cursor = db.execute(
        f"""
        UPDATE {table}
        SET {claim_col} = ?
        WHERE id = ?
          AND {sent_col} IS NULL
          AND ({claim_col} IS NULL OR {claim_col} < ?){condition}
        """,
        (format_timestamp(now), row_id, format_timestamp(stale_before)),
    )
    return cursor.rowcount == 1


def settle_flag(db: Database, table: str, flag: str, row_id: int, sent_at: datetime) -> bool:
    """Record a successful send and drop the lease.

    Returns:
        True if the flag was written; False if it was already set.
    """
    sent_col, claim_col = _columns(table, flag)
    cursor = db.execute(
        f"""
        UPDATE {table}
        SET {sent_col} = ?, {claim_col} = NULL
        WHERE id = ? AND {sent_col} IS NULL
        """,
        (format_timestamp(sent_at), row_id),
    )
    return cursor.rowcount == 1


def release_flag(db: Database, table: str, flag: str, row_id: int) -> None:
    """Drop the lease without setting the flag, making the row eligible again."""
    sent_col, claim_col = _columns(table, flag)
    db.execute(
        f"UPDATE {table} SET {claim_col} = NULL WHERE id = ? AND {sent_col} IS NULL",
        (row_id,),
    )
