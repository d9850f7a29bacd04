"""Notification delivery: dispatcher interface, Brevo transport, message text, and links."""

from attestation.notifications.brevo import BrevoDispatcher
from attestation.notifications.dispatcher import DisabledDispatcher, NotificationDispatcher
from attestation.notifications.links import (
    build_attestation_url,
    build_registration_url,
    sign_record,
    verify_record_signature,
)
from attestation.notifications.messages import EmailContent

__all__ = [
    "BrevoDispatcher",
    "DisabledDispatcher",
    "EmailContent",
    "NotificationDispatcher",
    "build_attestation_url",
    "build_registration_url",
    "sign_record",
    "verify_record_signature",
]
