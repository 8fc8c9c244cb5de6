"""
Crossover split and price calculation for a booking.

A booking is split into minutes billed at the regular rate (inside default
working hours) and minutes billed at the surcharge rate (inside after-hours).
The case analysis below determines billed amounts, so each branch is kept
exactly as specified, including the gap fallback (Case D).
"""

import logging
from datetime import date, time, timedelta

from src.availability.time_windows import ONE_DAY, anchor, is_within_offline_hours
from src.errors import MissingBookingSettingsError, MissingTokenPriceFieldsError
from src.schemas.booking_schema import CrossoverResult, PriceBreakdown
from src.schemas.policy_schema import BookingPolicy

logger = logging.getLogger(__name__)


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


def compute_crossover(
    on_date: date, start: time, end: time, policy: BookingPolicy
) -> CrossoverResult:
    """
    Split a booking on ``on_date`` into regular and after-hours minutes.

    Cases:
        offline: start or end inside an offline gap -> nothing billed.
        A: fully inside working hours -> all regular.
        B: fully inside after-hours -> all surcharge.
        C: straddles the working-end / after-start boundary -> split at the
           working-hours end (shifting a day when both ends precede it).
        D: anything else -> gap, next-day or same-day fallback.
    """
    if not policy.has_hours():
        raise MissingBookingSettingsError("Working hours and after-hours must both be configured.")

    working = policy.default_working_hours
    after = policy.after_hours

    if is_within_offline_hours(on_date, start, end, working, after):
        logger.debug("Booking %s-%s on %s is offline; nothing billed", start, end, on_date)
        return CrossoverResult()

    booking_start = anchor(on_date, start)
    booking_end = anchor(on_date, end)
    working_start = anchor(on_date, working.start)
    working_end = anchor(on_date, working.end)
    after_start = anchor(on_date, after.start)
    after_end = anchor(on_date, after.end)

    if working_end < working_start:
        working_end += ONE_DAY
    if after_end < after_start:
        after_end += ONE_DAY
    if booking_end < booking_start:
        booking_end += ONE_DAY

    # Case A
    if booking_start >= working_start and booking_end <= working_end:
        return CrossoverResult(regular_minutes=_minutes(booking_end - booking_start))

    # Case B
    if booking_start >= after_start and booking_end <= after_end:
        return CrossoverResult(after_hours_minutes=_minutes(booking_end - booking_start))

    # Case C
    if booking_start < working_end and booking_end > after_start:
        if booking_start < working_end and booking_end < working_end:
            booking_start += ONE_DAY
            booking_end += ONE_DAY
        return CrossoverResult(
            regular_minutes=_minutes(working_end - booking_start),
            after_hours_minutes=_minutes(booking_end - working_end),
        )

    # Case D
    if working.end < start < after.start:
        return CrossoverResult()

    target_date = on_date
    if start < working.start and start < working.end:
        target_date = on_date + timedelta(days=1)

    booking_start = anchor(target_date, start)
    booking_end = anchor(target_date, end)

    if target_date != on_date:
        return CrossoverResult(after_hours_minutes=_minutes(booking_end - booking_start))
    return CrossoverResult(
        regular_minutes=_minutes(working_end - booking_start),
        after_hours_minutes=_minutes(booking_end - working_end),
    )


def price_breakdown(
    crossover: CrossoverResult, default_rate: float, surcharge_rate: float
) -> PriceBreakdown:
    """Price a crossover split at the given per-minute rates."""
    regular_price = crossover.regular_minutes * default_rate
    surcharge_price = crossover.after_hours_minutes * surcharge_rate
    return PriceBreakdown(
        regular_minutes=crossover.regular_minutes,
        after_hours_minutes=crossover.after_hours_minutes,
        regular_price=regular_price,
        surcharge_price=surcharge_price,
        total_price=regular_price + surcharge_price,
    )


def calculate_price(
    on_date: date, start: time, end: time, policy: BookingPolicy
) -> PriceBreakdown:
    """
    Compute the price breakdown of a booking under a creator's policy.

    Raises:
        MissingTokenPriceFieldsError: if either per-minute rate is unset.
    """
    if not policy.has_price_fields():
        raise MissingTokenPriceFieldsError(
            f"Token price fields are missing in the booking settings for creator ID: "
            f"{policy.creator_id}"
        )
    crossover = compute_crossover(on_date, start, end, policy)
    breakdown = price_breakdown(
        crossover, policy.default_rate_per_minute, policy.surcharge_rate_per_minute
    )
    logger.debug(
        "Price for %s %s-%s: %s regular + %s surcharge minutes = %s",
        on_date, start, end,
        breakdown.regular_minutes, breakdown.after_hours_minutes, breakdown.total_price,
    )
    return breakdown

