"""Booking duration bounds and minute-level placement inside effective windows."""

import logging
from datetime import datetime, timedelta
from typing import Iterable

from src.availability.time_windows import ONE_DAY, normalize
from src.errors import InvalidBookingDurationError
from src.schemas.policy_schema import BookingPolicy, TimeWindow

logger = logging.getLogger(__name__)

SAMPLE_STEP = timedelta(minutes=1)


def booking_duration_minutes(start: datetime, end: datetime) -> float:
    """Wall-clock minutes from start to end; ``end <= start`` crosses midnight."""
    if end <= start:
        end += ONE_DAY
    return (end - start).total_seconds() / 60


def check_duration_bounds(minutes: float, policy: BookingPolicy) -> bool:
    """
    Check a duration against the policy's minimum and maximum.

    Raises:
        InvalidBookingDurationError: bounds unset or non-positive, zero
            duration, or duration outside ``[min, max]``.
    """
    min_minutes = policy.min_booking_minutes
    max_minutes = policy.max_booking_minutes

    if min_minutes <= 0 or max_minutes <= 0:
        raise InvalidBookingDurationError(
            "Minimum and maximum booking times are not configured for this creator."
        )

    if minutes == 0:
        logger.info("Rejected zero-minute booking (allowed %d-%d)", min_minutes, max_minutes)
        raise InvalidBookingDurationError(
            "The booking duration is zero minutes, which does not fall within the "
            "allowed minimum and maximum time limits set by the creator."
        )

    if minutes < min_minutes or minutes > max_minutes:
        logger.info(
            "Duration %.1f minutes outside allowed range (%d-%d)",
            minutes, min_minutes, max_minutes,
        )
        raise InvalidBookingDurationError()

    return True


def validate_duration(start: datetime, end: datetime, policy: BookingPolicy) -> bool:
    """Validate the wall-clock duration of ``[start, end]`` against the policy."""
    return check_duration_bounds(booking_duration_minutes(start, end), policy)


def _within_any_window(instant: datetime, windows: Iterable[TimeWindow]) -> bool:
    for window in windows:
        window_start, window_end = normalize(window, instant.date())
        if window_start <= instant <= window_end:
            return True
    return False


def is_time_fully_within_effective_windows(
    start: datetime, end: datetime, windows: list[TimeWindow]
) -> bool:
    """
    Check that every minute of ``[start, end)`` lies inside some window.

    Each sampled instant is tested against the windows anchored on its own
    date. Bookings are made in whole minutes, so one-minute sampling is
    equivalent to continuous containment for them.
    """
    instant = start
    while instant < end:
        if not _within_any_window(instant, windows):
            logger.debug("Instant %s outside effective windows", instant)
            return False
        instant += SAMPLE_STEP
    return True
