"""Prometheus metrics instrumentation for the attestation scheduler.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus the business
  counters below.
- ``NOTIFICATIONS_SENT`` / ``NOTIFICATIONS_FAILED`` / ``NOTIFICATIONS_SKIPPED``:
  Counters labelled by notification kind.
- ``CAMPAIGNS_AUTO_CLOSED``: Counter of campaigns closed by end date.
- ``ASSETS_TRANSFERRED``: Counter of draft assets promoted into the registry.
- ``TICK_DURATION``: Histogram of scheduler tick wall time.

Counters are updated where the event happens (not by polling the database).
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

NOTIFICATIONS_SENT: Counter = Counter(
    "attestation_notifications_sent_total",
    "Notifications delivered, by kind",
    ["kind"],
)

NOTIFICATIONS_FAILED: Counter = Counter(
    "attestation_notifications_failed_total",
    "Notification sends that failed and will be retried next tick, by kind",
    ["kind"],
)

NOTIFICATIONS_SKIPPED: Counter = Counter(
    "attestation_notifications_skipped_total",
    "Eligible recipients skipped without a send, by kind",
    ["kind"],
)

CAMPAIGNS_AUTO_CLOSED: Counter = Counter(
    "attestation_campaigns_auto_closed_total",
    "Campaigns moved to completed because their end date passed",
)

ASSETS_TRANSFERRED: Counter = Counter(
    "attestation_assets_transferred_total",
    "Draft assets promoted into the asset registry",
)

TICK_DURATION: Histogram = Histogram(
    "attestation_scheduler_tick_seconds",
    "Wall time of one scheduler tick",
    buckets=(0.1, 0.5, 1, 5, 15, 60, 300, 900),
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
