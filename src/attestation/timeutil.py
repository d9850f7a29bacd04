"""UTC clock and timestamp helpers shared by the stores and the scheduler.

Timestamps are persisted as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` strings.  The fixed
width and UTC suffix make lexicographic comparison in SQL agree with
chronological order, which the claim leases rely on.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def format_timestamp(value: datetime) -> str:
    """Render *value* in the persisted UTC millisecond format.

    Naive datetimes are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse an ISO 8601 date or timestamp into an aware UTC datetime.

    Accepts ``datetime`` objects, full timestamps with a ``Z`` or numeric
    offset, and bare ``YYYY-MM-DD`` dates.  Naive values are treated as UTC.

    Returns:
        The parsed datetime, or ``None`` when *value* is empty or malformed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
