"""In-process periodic trigger for the scheduler tick.

An APScheduler ``BackgroundScheduler`` calls ``SchedulerDriver.run_tick``
on a fixed interval.  The job runs once immediately at startup and then
every ``interval_hours``.  ``max_instances=1`` keeps ticks from
overlapping and ``coalesce=True`` merges runs missed while the process
was down into one.
"""

from __future__ import annotations

import structlog
from apscheduler.schedulers.background import BackgroundScheduler

from attestation.scheduling.driver import SchedulerDriver
from attestation.timeutil import utc_now

logger = structlog.get_logger()

TICK_JOB_ID = "attestation_scheduler_tick"


def _run_tick_job(driver: SchedulerDriver) -> None:
    result = driver.run_tick()
    if not result.success:
        logger.error(
            "Scheduled tick had failed processors",
            failed=[r.processor for r in result.results if not r.success],
        )


def start_scheduler(driver: SchedulerDriver, interval_hours: float) -> BackgroundScheduler:
    """Start a background scheduler that runs *driver* every *interval_hours*.

    Args:
        driver: The tick driver to run.
        interval_hours: Hours between ticks.

    Returns:
        The started scheduler.  Call :func:`stop_scheduler` on shutdown.
    """
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        _run_tick_job,
        trigger="interval",
        hours=interval_hours,
        args=[driver],
        id=TICK_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=utc_now(),
    )
    scheduler.start()
    logger.info("Attestation scheduler started", interval_hours=interval_hours)
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler | None) -> None:
    """Shut down *scheduler* without waiting for a running tick to finish."""
    if scheduler is None or not scheduler.running:
        return
    scheduler.shutdown(wait=False)
    logger.info("Attestation scheduler stopped")
