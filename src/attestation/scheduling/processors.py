"""Reminder and escalation processors for registered and unregistered employees.

Each processor makes one pass over the active campaigns whose threshold has
been crossed and notifies every eligible recipient that still lacks the
corresponding ``*_sent_at`` flag.  A recipient is only notified after this
process wins the store-level claim for it, and the flag is only written
after the dispatcher reports success.  A failed send releases the claim so
the next tick retries it.

Processors never raise: ``run()`` returns a :class:`ProcessorResult`.  A
failure while handling one campaign or one recipient is logged and
counted, and processing continues with the next one.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Literal

import structlog

from attestation.audit.logger import AuditLogger
from attestation.domain.models import Campaign, DispatchResult, ProcessorResult
from attestation.domain.types import NotificationKind, RecordStatus
from attestation.notifications.dispatcher import NotificationDispatcher
from attestation.notifications.links import build_attestation_url, build_registration_url
from attestation.observability.metrics import (
    NOTIFICATIONS_FAILED,
    NOTIFICATIONS_SENT,
    NOTIFICATIONS_SKIPPED,
)
from attestation.scheduling.threshold import threshold_crossed
from attestation.store.protocols import (
    AssetStoreProtocol,
    CampaignStoreProtocol,
    ClaimableStoreProtocol,
    PendingInviteStoreProtocol,
    RecordStoreProtocol,
    UserStoreProtocol,
)
from attestation.timeutil import Clock, utc_now

logger = structlog.get_logger()

DEFAULT_UNREGISTERED_REMINDER_DAYS = 7


@dataclass
class _Tally:
    campaigns_checked: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    campaign_errors: int = 0


class _NotificationProcessor:
    """Shared pass structure, claim handling, and bookkeeping.

    Subclasses set ``name``, ``kind`` and ``flag`` and implement
    :meth:`_threshold_days` and :meth:`_process_campaign`.
    """

    name: str
    kind: NotificationKind
    flag: Literal["reminder", "escalation"]

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        dispatcher: NotificationDispatcher,
        *,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
        claim_lease_minutes: int = 60,
    ) -> None:
        self._campaigns = campaigns
        self._dispatcher = dispatcher
        self._clock = clock
        self._audit = audit
        self._lease = timedelta(minutes=claim_lease_minutes)

    def _threshold_days(self, campaign: Campaign) -> int | None:
        raise NotImplementedError

    def _process_campaign(self, campaign: Campaign, tally: _Tally) -> None:
        raise NotImplementedError

    def run(self) -> ProcessorResult:
        """Make one pass over all active campaigns.

        Returns:
            Counts for the pass.  ``success`` is False only if the active
            campaigns could not be listed.
        """
        now = self._clock()
        try:
            campaigns = self._campaigns.list_active()
        except Exception as exc:
            logger.exception("Could not list active campaigns", processor=self.name)
            return ProcessorResult(processor=self.name, success=False, error=str(exc))

        tally = _Tally(campaigns_checked=len(campaigns))
        for campaign in campaigns:
            if not threshold_crossed(campaign.start_date, now, self._threshold_days(campaign)):
                continue
            try:
                self._process_campaign(campaign, tally)
            except Exception as exc:
                tally.campaign_errors += 1
                logger.exception(
                    "Campaign pass failed",
                    processor=self.name,
                    campaign_id=campaign.id,
                )
                self._write_audit(
                    lambda a: a.log_error(campaign.id, str(exc), context=f"{self.name} pass")
                )

        logger.info(
            "Processor pass finished",
            processor=self.name,
            campaigns_checked=tally.campaigns_checked,
            sent=tally.sent,
            failed=tally.failed,
            skipped=tally.skipped,
            campaign_errors=tally.campaign_errors,
        )
        return ProcessorResult(
            processor=self.name,
            campaigns_checked=tally.campaigns_checked,
            sent=tally.sent,
            failed=tally.failed,
            skipped=tally.skipped,
            campaign_errors=tally.campaign_errors,
        )

    # ------------------------------------------------------------------
    # Helpers shared by all four processors
    # ------------------------------------------------------------------

    def _write_audit(self, write: Callable[[AuditLogger], Any]) -> None:
        if self._audit is None:
            return
        try:
            write(self._audit)
        except sqlite3.Error:
            logger.exception("Audit write failed", processor=self.name)

    def _skip(
        self,
        campaign: Campaign,
        reason: str,
        tally: _Tally,
        *,
        record_id: int | None = None,
        invite_id: int | None = None,
        recipient: str | None = None,
    ) -> None:
        tally.skipped += 1
        NOTIFICATIONS_SKIPPED.labels(kind=self.kind.value).inc()
        logger.info(
            "Notification skipped",
            kind=self.kind.value,
            campaign_id=campaign.id,
            record_id=record_id,
            invite_id=invite_id,
            reason=reason,
        )
        self._write_audit(
            lambda a: a.log_notification_skipped(
                self.kind,
                campaign.id,
                reason,
                record_id=record_id,
                invite_id=invite_id,
                recipient=recipient,
            )
        )

    def _deliver(
        self,
        store: ClaimableStoreProtocol,
        row_id: int,
        campaign: Campaign,
        recipient: str,
        send: Callable[[], DispatchResult],
        tally: _Tally,
        *,
        record_id: int | None = None,
        invite_id: int | None = None,
    ) -> None:
        """Claim *row_id*, send, then settle or release the claim."""
        if self.flag == "reminder":
            claim, settle, release = (
                store.claim_reminder,
                store.mark_reminder_sent,
                store.release_reminder,
            )
        else:
            claim, settle, release = (
                store.claim_escalation,
                store.mark_escalation_sent,
                store.release_escalation,
            )

        # Leases carry the claim time; the tick start may already be stale.
        claimed_at = self._clock()
        if not claim(row_id, claimed_at, claimed_at - self._lease):
            logger.debug(
                "Notification claimed elsewhere",
                kind=self.kind.value,
                campaign_id=campaign.id,
                row_id=row_id,
            )
            return

        try:
            result = send()
        except Exception as exc:
            logger.exception(
                "Dispatcher raised", kind=self.kind.value, campaign_id=campaign.id, row_id=row_id
            )
            result = DispatchResult(success=False, error=str(exc))

        if not result.success:
            release(row_id)
            tally.failed += 1
            NOTIFICATIONS_FAILED.labels(kind=self.kind.value).inc()
            logger.warning(
                "Notification send failed",
                kind=self.kind.value,
                campaign_id=campaign.id,
                recipient=recipient,
                error=result.error,
            )
            error = result.error or "unknown error"
            self._write_audit(
                lambda a: a.log_notification_failed(
                    self.kind,
                    campaign.id,
                    recipient,
                    error,
                    record_id=record_id,
                    invite_id=invite_id,
                )
            )
            return

        try:
            settle(row_id, self._clock())
        except Exception:
            # The lease stays until it goes stale, after which the row is sent again.
            logger.error(
                "Sent notification could not be recorded",
                kind=self.kind.value,
                campaign_id=campaign.id,
                record_id=record_id,
                invite_id=invite_id,
                recipient=recipient,
            )
            raise
        tally.sent += 1
        NOTIFICATIONS_SENT.labels(kind=self.kind.value).inc()
        logger.info(
            "Notification sent",
            kind=self.kind.value,
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            recipient=recipient,
        )
        self._write_audit(
            lambda a: a.log_notification_sent(
                self.kind,
                campaign.id,
                recipient,
                record_id=record_id,
                invite_id=invite_id,
            )
        )

    def _each_recipient(
        self,
        campaign: Campaign,
        rows: list[Any],
        handle: Callable[[Any], None],
        tally: _Tally,
    ) -> None:
        for row in rows:
            try:
                handle(row)
            except Exception:
                tally.failed += 1
                NOTIFICATIONS_FAILED.labels(kind=self.kind.value).inc()
                logger.exception(
                    "Recipient processing failed",
                    kind=self.kind.value,
                    campaign_id=campaign.id,
                    row_id=row.id,
                )


class _RegisteredProcessor(_NotificationProcessor):
    """Walks a campaign's pending attestation records."""

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        records: RecordStoreProtocol,
        users: UserStoreProtocol,
        assets: AssetStoreProtocol,
        dispatcher: NotificationDispatcher,
        *,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
        claim_lease_minutes: int = 60,
    ) -> None:
        super().__init__(
            campaigns,
            dispatcher,
            clock=clock,
            audit=audit,
            claim_lease_minutes=claim_lease_minutes,
        )
        self._records = records
        self._users = users
        self._assets = assets

    def _eligible(self, campaign: Campaign) -> list[Any]:
        sent_field = f"{self.flag}_sent_at"
        return [
            r
            for r in self._records.list_by_campaign(campaign.id)
            if r.status == RecordStatus.PENDING and getattr(r, sent_field) is None
        ]


class ReminderProcessor(_RegisteredProcessor):
    """Remind registered employees who have not started once ``reminder_days`` pass.

    Args:
        campaigns: Campaign store.
        records: Attestation record store.
        users: User store.
        assets: Asset store, for the asset count in the message.
        dispatcher: Notification transport.
        frontend_url: Base URL for the attestation link.
        link_secret: Secret used to sign attestation links.
        clock: Source of the current time.
        audit: Optional audit trail writer.
        claim_lease_minutes: How long an unsettled claim blocks other senders.
    """

    name = "reminder"
    kind = NotificationKind.REMINDER
    flag = "reminder"

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        records: RecordStoreProtocol,
        users: UserStoreProtocol,
        assets: AssetStoreProtocol,
        dispatcher: NotificationDispatcher,
        *,
        frontend_url: str = "http://localhost:3000",
        link_secret: str = "",
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
        claim_lease_minutes: int = 60,
    ) -> None:
        super().__init__(
            campaigns,
            records,
            users,
            assets,
            dispatcher,
            clock=clock,
            audit=audit,
            claim_lease_minutes=claim_lease_minutes,
        )
        self._frontend_url = frontend_url
        self._link_secret = link_secret

    def _threshold_days(self, campaign: Campaign) -> int | None:
        return campaign.reminder_days

    def _process_campaign(self, campaign: Campaign, tally: _Tally) -> None:
        def handle(record: Any) -> None:
            user = self._users.get_by_id(record.user_id)
            if user is None or not user.email:
                logger.warning(
                    "User not resolvable for reminder",
                    campaign_id=campaign.id,
                    record_id=record.id,
                    user_id=record.user_id,
                )
                self._skip(campaign, "user_not_found", tally, record_id=record.id)
                return

            url = build_attestation_url(self._frontend_url, record.id, self._link_secret)
            asset_count = self._assets.count_by_employee_email(user.email)
            self._deliver(
                self._records,
                record.id,
                campaign,
                user.email,
                lambda: self._dispatcher.send_reminder(user, campaign, url, asset_count),
                tally,
                record_id=record.id,
            )

        self._each_recipient(campaign, self._eligible(campaign), handle, tally)


class EscalationProcessor(_RegisteredProcessor):
    """Tell managers about reports who have not started once ``escalation_days`` pass.

    Employees without a manager email are skipped and never flagged.
    """

    name = "escalation"
    kind = NotificationKind.ESCALATION
    flag = "escalation"

    def _threshold_days(self, campaign: Campaign) -> int | None:
        return campaign.escalation_days

    def _process_campaign(self, campaign: Campaign, tally: _Tally) -> None:
        def handle(record: Any) -> None:
            user = self._users.get_by_id(record.user_id)
            if user is None or not user.email:
                logger.warning(
                    "User not resolvable for escalation",
                    campaign_id=campaign.id,
                    record_id=record.id,
                    user_id=record.user_id,
                )
                self._skip(campaign, "user_not_found", tally, record_id=record.id)
                return
            if not user.manager_email:
                self._skip(
                    campaign, "no_manager_email", tally, record_id=record.id, recipient=user.email
                )
                return

            manager_email = user.manager_email
            asset_count = self._assets.count_by_employee_email(user.email)
            self._deliver(
                self._records,
                record.id,
                campaign,
                manager_email,
                lambda: self._dispatcher.send_escalation(
                    manager_email,
                    user.manager_name,
                    user.email,
                    user.display_name,
                    campaign,
                    asset_count,
                ),
                tally,
                record_id=record.id,
            )

        self._each_recipient(campaign, self._eligible(campaign), handle, tally)


class _UnregisteredProcessor(_NotificationProcessor):
    """Walks a campaign's pending invites that have not registered."""

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        invites: PendingInviteStoreProtocol,
        assets: AssetStoreProtocol,
        dispatcher: NotificationDispatcher,
        *,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
        claim_lease_minutes: int = 60,
    ) -> None:
        super().__init__(
            campaigns,
            dispatcher,
            clock=clock,
            audit=audit,
            claim_lease_minutes=claim_lease_minutes,
        )
        self._invites = invites
        self._assets = assets

    def _eligible(self, campaign: Campaign) -> list[Any]:
        sent_field = f"{self.flag}_sent_at"
        return [
            invite
            for invite in self._invites.list_by_campaign(campaign.id)
            if invite.registered_at is None and getattr(invite, sent_field) is None
        ]


class UnregisteredReminderProcessor(_UnregisteredProcessor):
    """Remind asset owners without an account to register.

    The threshold is the campaign's ``unregistered_reminder_days``, falling
    back to *default_reminder_days* when it is unset or zero.
    """

    name = "unregistered_reminder"
    kind = NotificationKind.UNREGISTERED_REMINDER
    flag = "reminder"

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        invites: PendingInviteStoreProtocol,
        assets: AssetStoreProtocol,
        dispatcher: NotificationDispatcher,
        *,
        frontend_url: str = "http://localhost:3000",
        default_reminder_days: int = DEFAULT_UNREGISTERED_REMINDER_DAYS,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
        claim_lease_minutes: int = 60,
    ) -> None:
        super().__init__(
            campaigns,
            invites,
            assets,
            dispatcher,
            clock=clock,
            audit=audit,
            claim_lease_minutes=claim_lease_minutes,
        )
        self._frontend_url = frontend_url
        self._default_reminder_days = default_reminder_days

    def _threshold_days(self, campaign: Campaign) -> int | None:
        return campaign.unregistered_reminder_days or self._default_reminder_days

    def _process_campaign(self, campaign: Campaign, tally: _Tally) -> None:
        def handle(invite: Any) -> None:
            asset_count = self._assets.count_by_employee_email(invite.employee_email)
            url = build_registration_url(self._frontend_url, invite.invite_token)
            self._deliver(
                self._invites,
                invite.id,
                campaign,
                invite.employee_email,
                lambda: self._dispatcher.send_unregistered_reminder(
                    invite, campaign, url, asset_count
                ),
                tally,
                invite_id=invite.id,
            )

        self._each_recipient(campaign, self._eligible(campaign), handle, tally)


class UnregisteredEscalationProcessor(_UnregisteredProcessor):
    """Tell managers about asset owners who still have not registered.

    Uses the campaign's ``escalation_days``.  The manager is read from the
    employee's first asset (lowest id); owners with no assets, or whose
    first asset has no manager email, are skipped and never flagged.
    """

    name = "unregistered_escalation"
    kind = NotificationKind.UNREGISTERED_ESCALATION
    flag = "escalation"

    def _threshold_days(self, campaign: Campaign) -> int | None:
        return campaign.escalation_days

    def _process_campaign(self, campaign: Campaign, tally: _Tally) -> None:
        def handle(invite: Any) -> None:
            owned = self._assets.list_by_employee_email(invite.employee_email)
            if not owned:
                self._skip(
                    campaign,
                    "no_assets",
                    tally,
                    invite_id=invite.id,
                    recipient=invite.employee_email,
                )
                return

            first = owned[0]
            if not first.manager_email:
                self._skip(
                    campaign,
                    "no_manager_email",
                    tally,
                    invite_id=invite.id,
                    recipient=invite.employee_email,
                )
                return

            managers = {a.manager_email.lower() for a in owned if a.manager_email}
            if len(managers) > 1:
                logger.warning(
                    "Assets disagree on manager, using first asset",
                    campaign_id=campaign.id,
                    invite_id=invite.id,
                    employee_email=invite.employee_email,
                    manager_email=first.manager_email,
                    manager_count=len(managers),
                )

            manager_email = first.manager_email
            self._deliver(
                self._invites,
                invite.id,
                campaign,
                manager_email,
                lambda: self._dispatcher.send_unregistered_escalation(
                    manager_email,
                    first.manager_name,
                    invite.employee_email,
                    invite.display_name,
                    campaign,
                    len(owned),
                ),
                tally,
                invite_id=invite.id,
            )

        self._each_recipient(campaign, self._eligible(campaign), handle, tally)
