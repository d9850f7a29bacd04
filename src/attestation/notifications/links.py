"""Signed attestation links and registration links for notification emails.

Attestation links carry an HMAC-SHA256 signature over the record id so the
frontend can confirm a link was issued by this service before showing the
record.  Signatures are compared with ``hmac.compare_digest``.
"""

from __future__ import annotations

import hashlib
import hmac
from urllib.parse import quote, urlencode


def _base(frontend_url: str) -> str:
    return frontend_url.rstrip("/")


def sign_record(record_id: int, secret: str) -> str:
    """Return the hex HMAC-SHA256 signature for *record_id*."""
    message = f"attestation-record:{record_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_record_signature(record_id: int, signature: str, secret: str) -> bool:
    """Return True if *signature* was produced by :func:`sign_record` with *secret*."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign_record(record_id, secret), signature)


def build_attestation_url(frontend_url: str, record_id: int, secret: str) -> str:
    """Build the link an employee follows to complete their attestation.

    When *secret* is empty (development) the link is returned unsigned.

    Args:
        frontend_url: Base URL of the web frontend.
        record_id: The attestation record the link opens.
        secret: Link-signing secret.

    Returns:
        The absolute attestation URL.
    """
    params: dict[str, str | int] = {"record": record_id}
    if secret:
        params["signature"] = sign_record(record_id, secret)
    return f"{_base(frontend_url)}/my-attestations?{urlencode(params)}"


def build_registration_url(frontend_url: str, invite_token: str) -> str:
    """Build the account registration link carried by unregistered reminders."""
    return f"{_base(frontend_url)}/register?invite={quote(invite_token, safe='')}"
