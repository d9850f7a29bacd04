"""Pydantic v2 models for attestation campaigns, records, invites, and assets.

Date and timestamp fields are kept as the ISO 8601 strings the store
persists.  Parsing happens at the point of use (see
``attestation.scheduling.threshold``) so that a malformed date on one
campaign never prevents the rest of a row set from loading.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from attestation.domain.types import (
    AssetStatus,
    CampaignStatus,
    RecordStatus,
)


def _join_name(first: str | None, last: str | None) -> str:
    return f"{first or ''} {last or ''}".strip()


class Campaign(BaseModel):
    """A time-bounded compliance exercise requiring users to attest to their assets."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str = ""
    start_date: str
    end_date: str | None = None
    reminder_days: int = 7
    escalation_days: int = 10
    unregistered_reminder_days: int | None = 7
    status: CampaignStatus = CampaignStatus.ACTIVE
    created_by: int | None = None

    @field_validator("reminder_days", "escalation_days")
    @classmethod
    def days_must_not_be_negative(cls, v: int) -> int:
        """Ensure threshold day counts are zero or positive."""
        if v < 0:
            raise ValueError("threshold days must not be negative")
        return v


class AttestationRecord(BaseModel):
    """Per-user, per-campaign tracking of attestation progress.

    ``reminder_sent_at`` and ``escalation_sent_at`` are written once, after a
    successful send.  The ``*_claimed_at`` columns are short-lived leases held
    by the scheduler instance that is currently sending.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    campaign_id: int
    user_id: int
    status: RecordStatus = RecordStatus.PENDING
    reminder_sent_at: str | None = None
    escalation_sent_at: str | None = None
    reminder_claimed_at: str | None = None
    escalation_claimed_at: str | None = None
    completed_at: str | None = None


class PendingInvite(BaseModel):
    """An asset owner who has no account yet, tracked for pre-registration notices."""

    model_config = ConfigDict(frozen=True)

    id: int
    campaign_id: int
    employee_email: str
    employee_first_name: str | None = None
    employee_last_name: str | None = None
    invite_token: str
    registered_at: str | None = None
    reminder_sent_at: str | None = None
    escalation_sent_at: str | None = None
    reminder_claimed_at: str | None = None
    escalation_claimed_at: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_name(self) -> str:
        """Full name of the invitee, falling back to the email address."""
        return (
            _join_name(self.employee_first_name, self.employee_last_name)
            or self.employee_email
        )


class User(BaseModel):
    """A registered user as seen by the scheduler."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    manager_email: str | None = None
    manager_first_name: str | None = None
    manager_last_name: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_name(self) -> str:
        """First and last name, then ``name``, then the email address."""
        return _join_name(self.first_name, self.last_name) or self.name or self.email

    @computed_field  # type: ignore[prop-decorator]
    @property
    def manager_name(self) -> str:
        """Manager first and last name, empty when unknown."""
        return _join_name(self.manager_first_name, self.manager_last_name)


class Asset(BaseModel):
    """A row in the canonical asset registry."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    owner_id: int | None = None
    employee_email: str
    employee_first_name: str = ""
    employee_last_name: str = ""
    manager_email: str | None = None
    manager_first_name: str | None = None
    manager_last_name: str | None = None
    company_id: int | None = None
    asset_type: str
    make: str = ""
    model: str = ""
    serial_number: str | None = None
    asset_tag: str | None = None
    status: AssetStatus = AssetStatus.ACTIVE
    notes: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def manager_name(self) -> str:
        """Manager first and last name, empty when unknown."""
        return _join_name(self.manager_first_name, self.manager_last_name)


class NewAssetDraft(BaseModel):
    """An asset declared by an employee during attestation.

    Drafts live outside the registry until their record completes, at which
    point each one is promoted into an :class:`Asset` exactly once.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    attestation_record_id: int
    asset_type: str
    make: str = ""
    model: str = ""
    serial_number: str | None = None
    asset_tag: str | None = None
    company_id: int | None = None
    notes: str = ""

    @field_validator("asset_type")
    @classmethod
    def asset_type_must_not_be_empty(cls, v: str) -> str:
        """Ensure the asset type is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("asset_type must not be empty")
        return v


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class DispatchResult(BaseModel):
    """Outcome of a single notification send."""

    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = None


class ProcessorResult(BaseModel):
    """Outcome of one processor pass across all active campaigns.

    ``success`` is False only when the pass itself could not run (for
    example, the campaign list could not be read).  Individual recipient
    failures are counted in ``failed`` and do not flip ``success``.
    """

    model_config = ConfigDict(frozen=True)

    processor: str
    success: bool = True
    campaigns_checked: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    closed: int = 0
    campaign_errors: int = 0
    error: str | None = None


class TickResult(BaseModel):
    """Outcome of one scheduler tick."""

    model_config = ConfigDict(frozen=True)

    started_at: str
    finished_at: str
    results: list[ProcessorResult] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        """True when every processor pass ran."""
        return all(r.success for r in self.results)


class CompletionResult(BaseModel):
    """Outcome of completing an attestation record."""

    model_config = ConfigDict(frozen=True)

    record_id: int
    already_completed: bool = False
    completed_at: str | None = None
    transferred: list[Asset] = Field(default_factory=list)

