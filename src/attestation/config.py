"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``attestation`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    service_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # -- Storage ---------------------------------------------------------------
    database_path: Path = Path("data/attestation.db")

    # -- Scheduler -------------------------------------------------------------
    scheduler_enabled: bool = False
    scheduler_interval_hours: float = Field(default=24.0, gt=0)
    claim_lease_minutes: int = Field(default=60, gt=0)
    default_unregistered_reminder_days: int = Field(default=7, ge=0)

    # -- Links -----------------------------------------------------------------
    attestation_link_secret: SecretStr = SecretStr("")

    # -- Brevo -----------------------------------------------------------------
    brevo_api_key: SecretStr = SecretStr("")
    sender_email: str = "noreply@localhost"
    sender_name: str = "Asset Registry"

    # -- Sentry ----------------------------------------------------------------
    sentry_dsn: str = ""


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list, never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode the process exits with a clear error block if a
    required credential is missing.  In **development** mode each missing
    credential is logged as a warning and startup continues.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.brevo_api_key.get_secret_value():
        errors.append("BREVO_API_KEY is empty or not set")

    if not settings.attestation_link_secret.get_secret_value():
        errors.append("ATTESTATION_LINK_SECRET is empty or not set")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
