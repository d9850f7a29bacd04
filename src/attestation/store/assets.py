"""SQLite-backed asset registry and draft new-asset stores."""

from __future__ import annotations

from attestation.domain.models import Asset, NewAssetDraft
from attestation.store.database import Database

_ASSET_COLUMNS = (
    "owner_id",
    "employee_email",
    "employee_first_name",
    "employee_last_name",
    "manager_email",
    "manager_first_name",
    "manager_last_name",
    "company_id",
    "asset_type",
    "make",
    "model",
    "serial_number",
    "asset_tag",
    "status",
    "notes",
)

_DRAFT_COLUMNS = (
    "attestation_record_id",
    "asset_type",
    "make",
    "model",
    "serial_number",
    "asset_tag",
    "company_id",
    "notes",
)


class AssetStore:
    """Read and write rows in the canonical ``assets`` registry.

    Serial numbers and asset tags are unique; :meth:`create` lets the
    resulting ``sqlite3.IntegrityError`` propagate so the caller can abort
    its transaction.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, asset: Asset) -> Asset:
        """Insert *asset* and return it with its assigned id."""
        values = asset.model_dump(include=set(_ASSET_COLUMNS))
        placeholders = ", ".join("?" for _ in _ASSET_COLUMNS)
        cursor = self._db.execute(
            f"INSERT INTO assets ({', '.join(_ASSET_COLUMNS)}) VALUES ({placeholders})",
            tuple(
                values[col].value if col == "status" else values[col] for col in _ASSET_COLUMNS
            ),
        )
        return asset.model_copy(update={"id": cursor.lastrowid})

    def get_by_id(self, asset_id: int) -> Asset | None:
        """Return the asset with *asset_id*, or ``None``."""
        row = self._db.fetch_one("SELECT * FROM assets WHERE id = ?", (asset_id,))
        return Asset(**row) if row is not None else None

    def list_by_employee_email(self, email: str) -> list[Asset]:
        """Return every asset owned by *email* (case-insensitive), ordered by id."""
        rows = self._db.fetch_all(
            "SELECT * FROM assets WHERE employee_email = ? COLLATE NOCASE ORDER BY id",
            (email,),
        )
        return [Asset(**row) for row in rows]

    def count_by_employee_email(self, email: str) -> int:
        """Return how many assets *email* currently owns."""
        row = self._db.fetch_one(
            "SELECT COUNT(*) AS n FROM assets WHERE employee_email = ? COLLATE NOCASE",
            (email,),
        )
        return int(row["n"]) if row is not None else 0


class NewAssetStore:
    """Read and write draft assets declared during an attestation.

    Args:
        db: The shared database wrapper.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, draft: NewAssetDraft) -> NewAssetDraft:
        """Insert *draft* and return it with its assigned id."""
        values = draft.model_dump(include=set(_DRAFT_COLUMNS))
        placeholders = ", ".join("?" for _ in _DRAFT_COLUMNS)
        cursor = self._db.execute(
            f"INSERT INTO attestation_new_assets ({', '.join(_DRAFT_COLUMNS)}) "
            f"VALUES ({placeholders})",
            tuple(values[col] for col in _DRAFT_COLUMNS),
        )
        return draft.model_copy(update={"id": cursor.lastrowid})

    def list_by_record(self, record_id: int) -> list[NewAssetDraft]:
        """Return the drafts attached to *record_id*, in declaration order."""
        rows = self._db.fetch_all(
            "SELECT * FROM attestation_new_assets WHERE attestation_record_id = ? ORDER BY id",
            (record_id,),
        )
        return [NewAssetDraft(**row) for row in rows]
