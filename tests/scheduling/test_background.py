"""Tests for the APScheduler-driven periodic tick."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import structlog

from attestation.domain.models import ProcessorResult, TickResult
from attestation.scheduling.background import (
    TICK_JOB_ID,
    _run_tick_job,
    start_scheduler,
    stop_scheduler,
)


def _driver(*results: ProcessorResult) -> MagicMock:
    driver = MagicMock()
    driver.run_tick.return_value = TickResult(
        started_at="2026-03-02T09:00:00.000Z",
        finished_at="2026-03-02T09:00:01.000Z",
        results=list(results),
    )
    return driver


class TestStartScheduler:
    def test_registers_one_non_overlapping_job(self):
        scheduler = start_scheduler(_driver(), 12)
        try:
            job = scheduler.get_job(TICK_JOB_ID)
            assert scheduler.running is True
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.trigger.interval == timedelta(hours=12)
            assert len(scheduler.get_jobs()) == 1
        finally:
            stop_scheduler(scheduler)

        assert scheduler.running is False

    def test_stop_tolerates_missing_or_stopped_scheduler(self):
        stop_scheduler(None)

        scheduler = MagicMock(running=False)
        stop_scheduler(scheduler)

        scheduler.shutdown.assert_not_called()


class TestRunTickJob:
    def test_failed_pass_is_logged(self):
        driver = _driver(
            ProcessorResult(processor="reminder"),
            ProcessorResult(processor="auto_close", success=False, error="locked"),
        )

        with structlog.testing.capture_logs() as logs:
            _run_tick_job(driver)

        driver.run_tick.assert_called_once_with()
        errors = [e for e in logs if e["log_level"] == "error"]
        assert errors[0]["failed"] == ["auto_close"]

    def test_successful_tick_logs_no_error(self):
        with structlog.testing.capture_logs() as logs:
            _run_tick_job(_driver(ProcessorResult(processor="reminder")))

        assert not [e for e in logs if e["log_level"] == "error"]
