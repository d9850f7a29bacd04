"""Attestation record lifecycle: status transitions and completion with asset transfer."""

from attestation.lifecycle.transfer import (
    AssetTransferEngine,
    AttestationService,
    asset_from_draft,
)
from attestation.lifecycle.transitions import (
    COMPLETABLE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    is_allowed,
    validate_transition,
)

__all__ = [
    "COMPLETABLE_STATUSES",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "AssetTransferEngine",
    "AttestationService",
    "asset_from_draft",
    "is_allowed",
    "validate_transition",
]
