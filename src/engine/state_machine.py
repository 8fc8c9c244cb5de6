"""
Finite state machine for booking status changes.

Every status change a booking may go through is listed explicitly in
``TRANSITIONS``. Anything not listed is rejected, so a completed or
cancelled booking can never be revived by a stray update. The history of
changes lives on the booking's audit trail.

Usage:
    booking.status = validate_transition(booking.status, BookingStatus.CONFIRMED)
"""

from dataclasses import dataclass

from src.errors import InvalidStatusTransitionError
from src.schemas.booking_schema import BookingStatus

TERMINAL_STATES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.DECLINED}
)


@dataclass(frozen=True)
class Transition:
    """A single valid status change."""
    from_state: BookingStatus
    to_state: BookingStatus


TRANSITIONS: list[Transition] = [
    # --- Pending ---
    Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED),
    Transition(BookingStatus.PENDING, BookingStatus.CANCELLED),
    Transition(BookingStatus.PENDING, BookingStatus.MISSED),
    Transition(BookingStatus.PENDING, BookingStatus.RESCHEDULED),
    Transition(BookingStatus.PENDING, BookingStatus.DECLINED),
    Transition(BookingStatus.PENDING, BookingStatus.NEGOTIATION),

    # --- Negotiation ---
    Transition(BookingStatus.NEGOTIATION, BookingStatus.PENDING),
    Transition(BookingStatus.NEGOTIATION, BookingStatus.DECLINED),
    Transition(BookingStatus.NEGOTIATION, BookingStatus.RESCHEDULED),

    # --- Confirmed ---
    Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
    Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    Transition(BookingStatus.CONFIRMED, BookingStatus.MISSED),
    Transition(BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED),

    # --- Rescheduled ---
    Transition(BookingStatus.RESCHEDULED, BookingStatus.CONFIRMED),
    Transition(BookingStatus.RESCHEDULED, BookingStatus.COMPLETED),
    Transition(BookingStatus.RESCHEDULED, BookingStatus.CANCELLED),
    Transition(BookingStatus.RESCHEDULED, BookingStatus.MISSED),
    Transition(BookingStatus.RESCHEDULED, BookingStatus.RESCHEDULED),

    # --- Missed ---
    Transition(BookingStatus.MISSED, BookingStatus.RESCHEDULED),
]

_ALLOWED: dict[BookingStatus, frozenset[BookingStatus]] = {
    status: frozenset(t.to_state for t in TRANSITIONS if t.from_state == status)
    for status in BookingStatus
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in _ALLOWED[current]


def valid_targets(current: BookingStatus) -> list[BookingStatus]:
    """Statuses reachable from ``current`` in one step, in declaration order."""
    return [t.to_state for t in TRANSITIONS if t.from_state == current]


def validate_transition(current: BookingStatus, target: BookingStatus) -> BookingStatus:
    """
    Check a single status change.

    Returns:
        The target status.

    Raises:
        InvalidStatusTransitionError: If the change is not listed.
    """
    if can_transition(current, target):
        return target
    allowed = [s.value for s in valid_targets(current)]
    raise InvalidStatusTransitionError(
        f"Cannot change booking status from '{current.value}' to '{target.value}'. "
        f"Allowed: {allowed}"
    )
