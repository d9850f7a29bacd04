"""Application entry point: attestation scheduler service with health and metrics.

Runs a small FastAPI app (``/health``, ``/ready``, ``/metrics``) under
uvicorn.  When ``SCHEDULER_ENABLED`` is set, the app lifespan also starts
the background scheduler that runs one tick at startup and then every
``SCHEDULER_INTERVAL_HOURS``.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error capture through structlog-sentry when a DSN is set
- **Audit logging** of notifications, auto-closes, and completions
- **Retry exhaustion** reported to the audit trail
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from attestation.audit.logger import AuditLogger
from attestation.audit.store import init_audit_table
from attestation.config import Settings, get_settings, validate_credentials
from attestation.health import register_health_routes
from attestation.lifecycle.transfer import AttestationService
from attestation.notifications.brevo import BrevoDispatcher
from attestation.notifications.dispatcher import DisabledDispatcher, NotificationDispatcher
from attestation.observability.metrics import setup_metrics
from attestation.observability.sentry import get_sentry_processor, init_sentry
from attestation.resilience.retry import configure_failure_hook
from attestation.scheduling.autoclose import CampaignAutoCloser
from attestation.scheduling.background import start_scheduler, stop_scheduler
from attestation.scheduling.driver import SchedulerDriver
from attestation.scheduling.processors import (
    EscalationProcessor,
    ReminderProcessor,
    UnregisteredEscalationProcessor,
    UnregisteredReminderProcessor,
)
from attestation.store.assets import AssetStore, NewAssetStore
from attestation.store.campaigns import CampaignStore
from attestation.store.database import Database
from attestation.store.invites import PendingInviteStore
from attestation.store.records import RecordStore
from attestation.store.schema import init_attestation_db
from attestation.store.users import UserStore

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="attestation-scheduler")


def _build_dispatcher(settings: Settings) -> NotificationDispatcher:
    api_key = settings.brevo_api_key.get_secret_value()
    if not api_key:
        logger.info("BREVO_API_KEY not set, email delivery disabled")
        return DisabledDispatcher()
    logger.info("Brevo dispatcher initialized", sender=settings.sender_email)
    return BrevoDispatcher(api_key, settings.sender_email, settings.sender_name)


def initialize_services(
    settings: Settings | None = None,
    *,
    dispatcher: NotificationDispatcher | None = None,
) -> dict[str, Any]:
    """Set up all shared services for the application.

    Opens the attestation database (creating the schema and the audit
    table), builds the stores, the notification dispatcher, the audit
    logger, the five scheduler processors with their driver, and the
    attestation completion service.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        dispatcher: Overrides the dispatcher chosen from settings.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. Attestation database, shared by every store and the audit trail
    db_path = settings.database_path
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_attestation_db(db_path)
    init_audit_table(conn)
    db = Database(conn)
    services["db"] = db

    campaigns = CampaignStore(db)
    records = RecordStore(db)
    invites = PendingInviteStore(db)
    users = UserStore(db)
    assets = AssetStore(db)
    new_assets = NewAssetStore(db)
    services.update(
        campaign_store=campaigns,
        record_store=records,
        invite_store=invites,
        user_store=users,
        asset_store=assets,
        new_asset_store=new_assets,
    )

    # b. Audit trail, also notified when API retries are exhausted
    audit_logger = AuditLogger(db)
    services["audit_logger"] = audit_logger

    def _report_retry_exhaustion(
        api_name: str, attempts: int, exception: BaseException | None
    ) -> None:
        audit_logger.log_error(
            None,
            str(exception),
            context=f"{api_name} failed after {attempts} attempts",
        )

    configure_failure_hook(_report_retry_exhaustion)

    # c. Notification dispatcher
    if dispatcher is None:
        dispatcher = _build_dispatcher(settings)
    services["dispatcher"] = dispatcher

    # d. Scheduler processors in tick order
    link_secret = settings.attestation_link_secret.get_secret_value()
    common: dict[str, Any] = {
        "audit": audit_logger,
        "claim_lease_minutes": settings.claim_lease_minutes,
    }
    processors = [
        ReminderProcessor(
            campaigns,
            records,
            users,
            assets,
            dispatcher,
            frontend_url=settings.frontend_url,
            link_secret=link_secret,
            **common,
        ),
        EscalationProcessor(campaigns, records, users, assets, dispatcher, **common),
        UnregisteredReminderProcessor(
            campaigns,
            invites,
            assets,
            dispatcher,
            frontend_url=settings.frontend_url,
            default_reminder_days=settings.default_unregistered_reminder_days,
            **common,
        ),
        UnregisteredEscalationProcessor(campaigns, invites, assets, dispatcher, **common),
        CampaignAutoCloser(campaigns, audit=audit_logger),
    ]
    services["driver"] = SchedulerDriver(processors)

    # e. Attestation completion with atomic asset transfer
    services["attestation_service"] = AttestationService(
        db, records, users, assets, new_assets, audit=audit_logger
    )

    services["scheduler_enabled"] = settings.scheduler_enabled
    services["scheduler"] = None
    return services


def shutdown_services(services: dict[str, Any]) -> None:
    """Stop the scheduler and release the dispatcher and database."""
    stop_scheduler(services.get("scheduler"))
    services["scheduler"] = None

    dispatcher = services.get("dispatcher")
    close = getattr(dispatcher, "close", None)
    if callable(close):
        close()

    configure_failure_hook(None)
    db = services.get("db")
    if db is not None:
        db.close()
        logger.info("Attestation database connection closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On startup: starts the background scheduler if enabled.
    On shutdown: stops the scheduler and closes the database.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    services = app.state.services
    settings: Settings = app.state.settings
    if services.get("scheduler_enabled"):
        services["scheduler"] = await asyncio.to_thread(
            start_scheduler, services["driver"], settings.scheduler_interval_hours
        )
    else:
        logger.info("Background scheduler disabled (SCHEDULER_ENABLED=false)")
    logger.info("FastAPI application starting")
    yield
    shutdown_services(services)


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, health routes, and metrics.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Attestation Scheduler", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings", get_settings())
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


def main() -> None:
    """Main entry point: run the service under uvicorn.

    1. Configure logging and Sentry
    2. Validate credentials
    3. Initialize services
    4. Serve the FastAPI app (the lifespan starts the scheduler)
    """
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn, "production" if settings.production else "development"
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    uvicorn.run(
        fastapi_app,
        host="0.0.0.0",
        port=settings.service_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
