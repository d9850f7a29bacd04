"""Elapsed-day arithmetic for campaign notification thresholds.

Pure functions with no side effects.  A day is a fixed 86,400,000 ms span
counted from the campaign's ``start_date``; the elapsed count is the floor
of the millisecond delta divided by that span.  Malformed or missing start
dates are never due.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from attestation.timeutil import parse_timestamp

MS_PER_DAY = 24 * 60 * 60 * 1000


class ThresholdCheck(BaseModel):
    """Result of evaluating one threshold for one campaign."""

    model_config = ConfigDict(frozen=True)

    elapsed_days: int | None
    threshold_days: int | None
    due: bool


def elapsed_days(start_date: datetime | str | None, now: datetime) -> int | None:
    """Return whole days elapsed since *start_date*, or ``None`` if it is unusable.

    The result is negative when the campaign starts in the future.
    """
    start = parse_timestamp(start_date)
    current = parse_timestamp(now)
    if start is None or current is None:
        return None

    delta = current - start
    delta_ms = delta.days * MS_PER_DAY + delta.seconds * 1000 + delta.microseconds // 1000
    return delta_ms // MS_PER_DAY


def evaluate_threshold(
    start_date: datetime | str | None,
    now: datetime,
    threshold_days: int | None,
) -> ThresholdCheck:
    """Check whether *threshold_days* have elapsed since *start_date*.

    Args:
        start_date: Campaign start as a datetime or ISO 8601 string.
        now: The current time.
        threshold_days: Day count to compare against; ``None`` is never due.

    Returns:
        A :class:`ThresholdCheck` with the elapsed days and ``due`` flag.
    """
    elapsed = elapsed_days(start_date, now)
    due = elapsed is not None and threshold_days is not None and elapsed >= threshold_days
    return ThresholdCheck(elapsed_days=elapsed, threshold_days=threshold_days, due=due)


def threshold_crossed(
    start_date: datetime | str | None,
    now: datetime,
    threshold_days: int | None,
) -> bool:
    """Return True once *threshold_days* whole days have elapsed since *start_date*."""
    return evaluate_threshold(start_date, now, threshold_days).due
