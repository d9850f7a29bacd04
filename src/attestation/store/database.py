"""Thin wrapper around a shared SQLite connection with explicit transactions.

Every store receives the same :class:`Database`.  Outside a transaction each
statement autocommits; inside :meth:`Database.transaction` all statements
commit together or roll back together.  An ``RLock`` keeps threads from
interleaving statements on the shared connection.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger()


class Database:
    """Serialized access to one SQLite connection.

    Args:
        conn: A connection opened by ``init_attestation_db`` (autocommit mode,
              ``sqlite3.Row`` row factory).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the underlying connection."""
        return self._conn

    @property
    def in_transaction(self) -> bool:
        """Return True while a :meth:`transaction` block is open."""
        return self._depth > 0

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute one parameterized statement."""
        with self._lock:
            return self._conn.execute(sql, params)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or ``None``."""
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a query and return all rows as dicts."""
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the enclosed statements as one atomic unit.

        Uses ``BEGIN IMMEDIATE`` so the write lock is taken up front and a
        concurrent writer in another process waits instead of interleaving.
        Nested calls join the outer transaction.

        Yields:
            This database.

        Raises:
            Whatever the enclosed block raises, after rolling back.
        """
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self._conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._conn.execute("ROLLBACK")
                logger.debug("transaction_rolled_back")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth = 0

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()
