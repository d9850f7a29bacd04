"""SQLite-backed user lookups used by the scheduler and asset transfer."""

from __future__ import annotations

from attestation.domain.models import User
from attestation.store.database import Database


class UserStore:
    """Read and write ``users`` rows.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        email: str,
        *,
        name: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        manager_email: str | None = None,
        manager_first_name: str | None = None,
        manager_last_name: str | None = None,
    ) -> User:
        """Insert a user and return it."""
        cursor = self._db.execute(
            """
            INSERT INTO users (
                email, name, first_name, last_name,
                manager_email, manager_first_name, manager_last_name
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                email,
                name,
                first_name,
                last_name,
                manager_email,
                manager_first_name,
                manager_last_name,
            ),
        )
        user = self.get_by_id(cursor.lastrowid or 0)
        if user is None:
            raise RuntimeError("Inserted user could not be read back")
        return user

    def get_by_id(self, user_id: int) -> User | None:
        """Return the user with *user_id*, or ``None``."""
        row = self._db.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return User(**row) if row is not None else None
