"""Allowed attestation record status changes.

Records only move forward: ``pending -> in_progress -> completed``, with a
direct ``pending -> completed`` for employees who finish in one sitting.
``completed`` is terminal.
"""

from attestation.domain.errors import InvalidTransitionError
from attestation.domain.types import RecordStatus

# Any (current, target) pair not listed here is rejected.
TRANSITIONS: frozenset[tuple[RecordStatus, RecordStatus]] = frozenset(
    {
        (RecordStatus.PENDING, RecordStatus.IN_PROGRESS),
        (RecordStatus.PENDING, RecordStatus.COMPLETED),
        (RecordStatus.IN_PROGRESS, RecordStatus.COMPLETED),
    }
)

TERMINAL_STATUSES: frozenset[RecordStatus] = frozenset({RecordStatus.COMPLETED})

# Statuses a record may be in when it is completed.
COMPLETABLE_STATUSES: tuple[RecordStatus, ...] = tuple(
    current for current, target in sorted(TRANSITIONS) if target == RecordStatus.COMPLETED
)


def is_allowed(current: RecordStatus, target: RecordStatus) -> bool:
    """Return True if a record may move from *current* to *target*."""
    return (current, target) in TRANSITIONS


def validate_transition(current: RecordStatus, target: RecordStatus) -> None:
    """Raise if a record may not move from *current* to *target*.

    Args:
        current: The record's present status.
        target: The requested status.

    Raises:
        InvalidTransitionError: If the move is backwards, a no-op, or out of
            a terminal status.
    """
    if not is_allowed(current, target):
        raise InvalidTransitionError(current, target)
