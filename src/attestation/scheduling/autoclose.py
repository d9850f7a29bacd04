"""Close active campaigns whose end date has passed."""

from __future__ import annotations

import sqlite3

import structlog

from attestation.audit.logger import AuditLogger
from attestation.domain.models import ProcessorResult
from attestation.observability.metrics import CAMPAIGNS_AUTO_CLOSED
from attestation.store.protocols import CampaignStoreProtocol
from attestation.timeutil import Clock, parse_timestamp, utc_now

logger = structlog.get_logger()


class CampaignAutoCloser:
    """Move expired ``active`` campaigns to ``completed``.

    A campaign is expired once the current time is strictly after its
    ``end_date``.  Campaigns without an end date, or with one that does not
    parse, stay open.  The status change is conditional on the campaign
    still being active, so overlapping passes close each campaign once.

    Args:
        campaigns: Campaign store.
        clock: Source of the current time.
        audit: Optional audit trail writer.
    """

    name = "auto_close"

    def __init__(
        self,
        campaigns: CampaignStoreProtocol,
        *,
        clock: Clock = utc_now,
        audit: AuditLogger | None = None,
    ) -> None:
        self._campaigns = campaigns
        self._clock = clock
        self._audit = audit

    def run(self) -> ProcessorResult:
        """Close every expired campaign and report how many were closed."""
        now = self._clock()
        try:
            campaigns = self._campaigns.list_active()
        except Exception as exc:
            logger.exception("Could not list active campaigns", processor=self.name)
            return ProcessorResult(processor=self.name, success=False, error=str(exc))

        closed = 0
        errors = 0
        for campaign in campaigns:
            if not campaign.end_date:
                continue
            end = parse_timestamp(campaign.end_date)
            if end is None:
                logger.warning(
                    "Campaign end date unparseable",
                    campaign_id=campaign.id,
                    end_date=campaign.end_date,
                )
                continue
            if now <= end:
                continue

            try:
                changed = self._campaigns.complete_if_active(campaign.id)
            except Exception:
                errors += 1
                logger.exception("Campaign auto-close failed", campaign_id=campaign.id)
                continue
            if not changed:
                continue

            closed += 1
            CAMPAIGNS_AUTO_CLOSED.inc()
            logger.info(
                "Campaign auto-closed",
                campaign_id=campaign.id,
                campaign_name=campaign.name,
                end_date=campaign.end_date,
            )
            if self._audit is not None:
                try:
                    self._audit.log_campaign_auto_closed(
                        campaign.id, campaign.name, campaign.end_date
                    )
                except sqlite3.Error:
                    logger.exception("Audit write failed", processor=self.name)

        return ProcessorResult(
            processor=self.name,
            campaigns_checked=len(campaigns),
            closed=closed,
            campaign_errors=errors,
        )
