"""Domain-specific exception classes for the attestation engine."""

from attestation.domain.types import RecordStatus


class AttestationError(Exception):
    """Base class for all domain errors in the attestation engine."""


class RecordNotFoundError(AttestationError):
    """Raised when an attestation record id does not resolve to a row.

    Attributes:
        record_id: The id that was looked up.
    """

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Attestation record {record_id} not found")


class InvalidTransitionError(AttestationError):
    """Raised when a record status change would move backwards or skip the lifecycle.

    Attributes:
        current_status: The status the record was in.
        target_status: The status that was requested.
    """

    def __init__(self, current_status: RecordStatus, target_status: RecordStatus) -> None:
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Cannot move attestation record from '{current_status}' to '{target_status}'"
        )


class DraftAssetError(AttestationError):
    """Raised when a draft asset cannot be attached to a record."""


class AssetTransferError(AttestationError):
    """Raised when promoting draft assets into the registry fails.

    The surrounding transaction is rolled back: no assets are created and the
    record is left in its previous status.

    Attributes:
        record_id: The attestation record whose transfer was aborted.
        serial_number: Serial number of the draft that failed, if known.
    """

    def __init__(self, record_id: int, reason: str, serial_number: str | None = None) -> None:
        self.record_id = record_id
        self.serial_number = serial_number
        detail = f" (serial {serial_number})" if serial_number else ""
        super().__init__(
            f"Asset transfer for attestation record {record_id} failed{detail}: {reason}"
        )
