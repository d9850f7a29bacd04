"""Notification dispatcher interface and the fallback used when email is not configured.

Every send method returns a :class:`DispatchResult` instead of raising; the
scheduler only writes a ``*_sent_at`` flag when ``success`` is True.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from attestation.domain.models import Campaign, DispatchResult, PendingInvite, User

logger = structlog.get_logger()


class NotificationDispatcher(Protocol):
    """Sends the four scheduler notifications."""

    def send_reminder(
        self,
        user: User,
        campaign: Campaign,
        url: str,
        asset_count: int,
    ) -> DispatchResult: ...

    def send_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult: ...

    def send_unregistered_reminder(
        self,
        invite: PendingInvite,
        campaign: Campaign,
        register_url: str,
        asset_count: int,
    ) -> DispatchResult: ...

    def send_unregistered_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult: ...


class DisabledDispatcher:
    """Dispatcher used when no email transport is configured.

    Every send fails, so no notification flag is ever written and the
    scheduler will deliver everything once a real transport is configured.
    """

    _ERROR = "email delivery is not configured"

    def _refuse(self, kind: str, recipient: str) -> DispatchResult:
        logger.warning("Email disabled, notification not sent", kind=kind, recipient=recipient)
        return DispatchResult(success=False, error=self._ERROR)

    def send_reminder(
        self,
        user: User,
        campaign: Campaign,
        url: str,
        asset_count: int,
    ) -> DispatchResult:
        return self._refuse("reminder", user.email)

    def send_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult:
        return self._refuse("escalation", manager_email)

    def send_unregistered_reminder(
        self,
        invite: PendingInvite,
        campaign: Campaign,
        register_url: str,
        asset_count: int,
    ) -> DispatchResult:
        return self._refuse("unregistered_reminder", invite.employee_email)

    def send_unregistered_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult:
        return self._refuse("unregistered_escalation", manager_email)
