"""Command-line entry points for running the scheduler from cron or by hand.

Usage::

    attestation-scheduler tick
    attestation-scheduler complete 42
    attestation-scheduler serve

``tick`` runs one full scheduler pass and exits non-zero if any processor
pass failed.  ``complete`` completes one attestation record and transfers
its draft assets.  ``serve`` runs the long-lived service with health
endpoints and, when enabled, the background scheduler.
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from typing import Any

import structlog

from attestation.app import configure_logging, initialize_services, shutdown_services
from attestation.app import main as serve_main
from attestation.config import get_settings, validate_credentials
from attestation.domain.errors import AttestationError
from attestation.observability.sentry import init_sentry

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the scheduler commands."""
    parser = argparse.ArgumentParser(
        prog="attestation-scheduler",
        description="Attestation campaign scheduler",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("tick", help="Run one scheduler pass and exit")

    complete = subparsers.add_parser(
        "complete", help="Complete an attestation record and transfer its new assets"
    )
    complete.add_argument("record_id", type=int, help="Attestation record ID")

    subparsers.add_parser("serve", help="Run the service with health endpoints")
    return parser


def _run_tick(services: dict[str, Any]) -> int:
    result = services["driver"].run_tick()
    print(result.model_dump_json(indent=2))
    return 0 if result.success else 1


def _run_complete(services: dict[str, Any], record_id: int) -> int:
    try:
        result = services["attestation_service"].complete_attestation(record_id)
    except AttestationError as exc:
        logger.error("Attestation completion failed", record_id=record_id, error=str(exc))
        print(json.dumps({"record_id": record_id, "error": str(exc)}))
        return 1
    print(result.model_dump_json(indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the selected command.

    Returns:
        Process exit code: 0 on success, 1 on failure.
    """
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        serve_main()
        return 0

    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn, "production" if settings.production else "development"
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    validate_credentials(settings)

    services = initialize_services(settings)
    try:
        if args.command == "tick":
            return _run_tick(services)
        return _run_complete(services, args.record_id)
    finally:
        shutdown_services(services)


if __name__ == "__main__":
    raise SystemExit(main())
