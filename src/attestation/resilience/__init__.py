"""Resilience infrastructure for API calls with retry and a final-failure hook."""

from attestation.resilience.retry import configure_failure_hook, resilient_api_call

__all__ = [
    "configure_failure_hook",
    "resilient_api_call",
]
