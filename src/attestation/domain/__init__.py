"""Domain types, models, and errors for the attestation engine."""

from attestation.domain.errors import (
    AssetTransferError,
    AttestationError,
    DraftAssetError,
    InvalidTransitionError,
    RecordNotFoundError,
)
from attestation.domain.models import (
    Asset,
    AttestationRecord,
    Campaign,
    CompletionResult,
    DispatchResult,
    NewAssetDraft,
    PendingInvite,
    ProcessorResult,
    TickResult,
    User,
)
from attestation.domain.types import (
    AssetStatus,
    CampaignStatus,
    NotificationKind,
    RecordStatus,
)

__all__ = [
    "Asset",
    "AssetStatus",
    "AssetTransferError",
    "AttestationError",
    "AttestationRecord",
    "Campaign",
    "CampaignStatus",
    "CompletionResult",
    "DispatchResult",
    "DraftAssetError",
    "InvalidTransitionError",
    "NewAssetDraft",
    "NotificationKind",
    "PendingInvite",
    "ProcessorResult",
    "RecordNotFoundError",
    "RecordStatus",
    "TickResult",
    "User",
]
