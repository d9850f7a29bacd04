"""One scheduler tick: every processor, in order, each isolated from the others."""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Protocol

import structlog

from attestation.domain.models import ProcessorResult, TickResult
from attestation.observability.metrics import TICK_DURATION
from attestation.timeutil import Clock, format_timestamp, utc_now

logger = structlog.get_logger()


class Processor(Protocol):
    name: str

    def run(self) -> ProcessorResult: ...


class SchedulerDriver:
    """Run the scheduler processors one after another.

    The driver keeps no state between ticks; everything is re-read from the
    stores on each pass.  Overlap between ticks is prevented by the caller
    (the APScheduler job runs with ``max_instances=1``) and, across
    processes, by the store-level notification claims.

    Args:
        processors: Processors in execution order (reminders, escalations,
            unregistered reminders, unregistered escalations, auto-close).
        clock: Source of the tick start and finish timestamps.
    """

    def __init__(self, processors: Sequence[Processor], *, clock: Clock = utc_now) -> None:
        self._processors = list(processors)
        self._clock = clock

    @property
    def processors(self) -> list[Processor]:
        return list(self._processors)

    def run_tick(self) -> TickResult:
        """Run every processor once and collect their results.

        Never raises.  A processor that raises is recorded as a failed
        result and the remaining processors still run.
        """
        started_at = self._clock()
        started = time.perf_counter()
        logger.info("Scheduler tick started", processors=len(self._processors))

        results: list[ProcessorResult] = []
        for processor in self._processors:
            try:
                result = processor.run()
            except Exception as exc:
                logger.exception("Processor raised", processor=processor.name)
                result = ProcessorResult(processor=processor.name, success=False, error=str(exc))
            results.append(result)

        TICK_DURATION.observe(time.perf_counter() - started)
        tick = TickResult(
            started_at=format_timestamp(started_at),
            finished_at=format_timestamp(self._clock()),
            results=results,
        )
        log = logger.info if tick.success else logger.error
        log(
            "Scheduler tick finished",
            success=tick.success,
            sent=sum(r.sent for r in results),
            failed=sum(r.failed for r in results),
            closed=sum(r.closed for r in results),
            failed_processors=[r.processor for r in results if not r.success],
        )
        return tick
