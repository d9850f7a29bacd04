"""Plain subject and body text for the four scheduler notifications.

Branding and admin-editable templates live outside this service; these are
the fixed messages the dispatcher sends.
"""

from __future__ import annotations

import html

from pydantic import BaseModel, ConfigDict

from attestation.domain.models import Campaign
from attestation.timeutil import parse_timestamp


class EmailContent(BaseModel):
    """Rendered subject with text and HTML bodies."""

    model_config = ConfigDict(frozen=True)

    subject: str
    text: str
    html: str


def _assets_phrase(count: int) -> str:
    return "1 asset" if count == 1 else f"{count} assets"


def _end_date_line(campaign: Campaign) -> str:
    end = parse_timestamp(campaign.end_date)
    if end is None:
        return ""
    return f"Please complete it by {end:%A, %d %B %Y}."


def _to_html(text: str) -> str:
    paragraphs = [p for p in text.split("\n\n") if p.strip()]
    body = "".join(
        f"<p>{html.escape(p).replace(chr(10), '<br>')}</p>" for p in paragraphs
    )
    return f'<div style="font-family: Arial, sans-serif; max-width: 600px;">{body}</div>'


def _content(subject: str, lines: list[str]) -> EmailContent:
    text = "\n\n".join(line for line in lines if line)
    return EmailContent(subject=subject, text=text, html=_to_html(text))


def reminder_message(
    employee_name: str,
    campaign: Campaign,
    url: str,
    asset_count: int,
) -> EmailContent:
    """Reminder to a registered employee who has not started their attestation."""
    return _content(
        f"Reminder: Asset attestation required - {campaign.name}",
        [
            f"Hello {employee_name},",
            f'You have not yet completed the asset attestation "{campaign.name}". '
            f"Our records show {_assets_phrase(asset_count)} registered to you.",
            _end_date_line(campaign),
            f"Review and confirm your assets here:\n{url}",
        ],
    )


def escalation_message(
    manager_name: str,
    employee_name: str,
    employee_email: str,
    campaign: Campaign,
    asset_count: int,
) -> EmailContent:
    """Notice to a manager that a direct report has not attested."""
    greeting = f"Hello {manager_name}," if manager_name else "Hello,"
    return _content(
        f"Action needed: {employee_name} has not completed {campaign.name}",
        [
            greeting,
            f"{employee_name} ({employee_email}) has not completed the asset attestation "
            f'"{campaign.name}". They have {_assets_phrase(asset_count)} registered.',
            "Please follow up with them to complete it.",
        ],
    )


def unregistered_reminder_message(
    employee_name: str,
    campaign: Campaign,
    register_url: str,
    asset_count: int,
) -> EmailContent:
    """Reminder to an asset owner who still has no account."""
    return _content(
        f"Reminder: Register to complete asset attestation - {campaign.name}",
        [
            f"Hello {employee_name},",
            f"{_assets_phrase(asset_count).capitalize()} registered to you "
            f'need{"s" if asset_count == 1 else ""} to be confirmed for "{campaign.name}".',
            campaign.description,
            _end_date_line(campaign),
            f"Create your account to get started:\n{register_url}",
        ],
    )


def unregistered_escalation_message(
    manager_name: str,
    employee_name: str,
    employee_email: str,
    campaign: Campaign,
    asset_count: int,
) -> EmailContent:
    """Notice to a manager that a direct report has not registered."""
    greeting = f"Hello {manager_name}," if manager_name else "Hello,"
    return _content(
        f"Action needed: {employee_name} has not registered for {campaign.name}",
        [
            greeting,
            f"{employee_name} ({employee_email}) has {_assets_phrase(asset_count)} "
            f'that must be attested for "{campaign.name}" but has not created an account yet.',
            "Please ask them to register and complete the attestation.",
        ],
    )
