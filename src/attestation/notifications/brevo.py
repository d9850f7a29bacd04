"""Brevo transactional email dispatcher.

Posts rendered messages to the Brevo ``/v3/smtp/email`` endpoint with
``httpx``.  Transport errors and non-2xx responses are retried with the
shared tenacity policy; once retries are exhausted the failure is returned
as ``DispatchResult(success=False)`` so the scheduler leaves the
notification flag unset and tries again next tick.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from attestation.domain.models import Campaign, DispatchResult, PendingInvite, User
from attestation.notifications.messages import (
    EmailContent,
    escalation_message,
    reminder_message,
    unregistered_escalation_message,
    unregistered_reminder_message,
)
from attestation.resilience.retry import resilient_api_call

logger = structlog.get_logger()

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoDispatcher:
    """Send scheduler notifications through the Brevo HTTP API.

    Args:
        api_key: Brevo API key.
        sender_email: ``From`` address.
        sender_name: ``From`` display name.
        client: Optional pre-built ``httpx.Client`` (tests inject a mock
            transport here).
        retry_attempts: Attempts per message before giving up.
        retry_initial_wait: First backoff interval in seconds.
        retry_jitter: Maximum random jitter per backoff interval.
    """

    def __init__(
        self,
        api_key: str,
        sender_email: str,
        sender_name: str,
        *,
        client: httpx.Client | None = None,
        retry_attempts: int = 3,
        retry_initial_wait: float = 1,
        retry_jitter: float = 5,
    ) -> None:
        if not api_key:
            raise ValueError("Brevo API key is required")
        self._sender = {"name": sender_name, "email": sender_email}
        self._headers = {"api-key": api_key, "Accept": "application/json"}
        self._client = client or httpx.Client(timeout=30.0)
        self._post = resilient_api_call(
            "brevo",
            attempts=retry_attempts,
            initial_wait=retry_initial_wait,
            jitter=retry_jitter,
        )(self._post_once)

    def _post_once(self, payload: dict[str, Any]) -> httpx.Response:
        response = self._client.post(BREVO_API_URL, json=payload, headers=self._headers)
        response.raise_for_status()
        return response

    def _send(self, to_email: str, to_name: str, content: EmailContent) -> DispatchResult:
        payload: dict[str, Any] = {
            "sender": self._sender,
            "to": [{"email": to_email, "name": to_name or to_email}],
            "subject": content.subject,
            "htmlContent": content.html,
            "textContent": content.text,
        }
        try:
            response = self._post(payload)
        except httpx.HTTPError as exc:
            logger.warning("Brevo send failed", recipient=to_email, error=str(exc))
            return DispatchResult(success=False, error=str(exc))

        logger.debug(
            "Brevo send accepted",
            recipient=to_email,
            status_code=response.status_code,
        )
        return DispatchResult(success=True)

    def send_reminder(
        self,
        user: User,
        campaign: Campaign,
        url: str,
        asset_count: int,
    ) -> DispatchResult:
        content = reminder_message(user.display_name, campaign, url, asset_count)
        return self._send(user.email, user.display_name, content)

    def send_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult:
        content = escalation_message(
            manager_name, employee_name, employee_email, campaign, asset_count
        )
        return self._send(manager_email, manager_name, content)

    def send_unregistered_reminder(
        self,
        invite: PendingInvite,
        campaign: Campaign,
        register_url: str,
        asset_count: int,
    ) -> DispatchResult:
        content = unregistered_reminder_message(
            invite.display_name, campaign, register_url, asset_count
        )
        return self._send(invite.employee_email, invite.display_name, content)

    def send_unregistered_escalation(
        self,
        manager_email: str,
        manager_name: str,
        employee_email: str,
        employee_name: str,
        campaign: Campaign,
        asset_count: int,
    ) -> DispatchResult:
        content = unregistered_escalation_message(
            manager_name, employee_name, employee_email, campaign, asset_count
        )
        return self._send(manager_email, manager_name, content)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
