"""
Time-of-day interval algebra for creator working hours.

Pure functions, no I/O. A ``TimeWindow`` is a time-of-day pair whose end may
be earlier than its start, meaning it wraps past midnight; it only becomes
an absolute interval once anchored on a date.

Usage:
    windows = merge_effective_windows(policy.after_hours, policy.default_working_hours)
    gaps = complement(policy.default_working_hours, policy.after_hours)
"""

import logging
from datetime import date, datetime, time, timedelta

from src.schemas.policy_schema import BookingPolicy, TimeWindow
from src.utils import parse_time_of_day

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
END_OF_DAY = time(23, 59, 59)
START_OF_DAY = time(0, 0, 0)

# Configured end time read as midnight when building effective windows.
LEGACY_MIDNIGHT_END = time(0, 20)

__all__ = [
    "TimeWindow",
    "parse_time_of_day",
    "normalize",
    "booking_interval",
    "merge_effective_windows",
    "resolve_effective_hours",
    "complement",
    "offline_hours",
    "is_within_offline_hours",
]


def anchor(on_date: date, value: time) -> datetime:
    """Combine a date and a time of day into a naive local datetime."""
    return datetime.combine(on_date, value)


def normalize(window: TimeWindow, anchor_date: date) -> tuple[datetime, datetime]:
    """Convert a window into absolute instants on ``anchor_date``.

    A wraparound window (end before start) ends exactly one day later.
    """
    start = anchor(anchor_date, window.start)
    end = anchor(anchor_date, window.end)
    if end < start:
        end += ONE_DAY
    return start, end


def _split_wraparound(window: TimeWindow) -> list[TimeWindow]:
    end = START_OF_DAY if window.end == LEGACY_MIDNIGHT_END else window.end
    if end < window.start:
        return [
            TimeWindow(start=window.start, end=END_OF_DAY),
            TimeWindow(start=START_OF_DAY, end=end),
        ]
    return [TimeWindow(start=window.start, end=end)]


def merge_effective_windows(after_hours: TimeWindow, default_hours: TimeWindow) -> list[TimeWindow]:
    """
    Build the minimal sorted, non-overlapping cover of a day's bookable time.

    Wraparound windows are split at midnight into ``[start, 23:59:59]`` and
    ``[00:00:00, end]``. Fragments are sorted by start and swept left to
    right; a fragment starting at or before the running end is absorbed.
    """
    fragments: list[TimeWindow] = []
    for window in (after_hours, default_hours):
        fragments.extend(_split_wraparound(window))

    fragments.sort(key=lambda w: w.start)

    merged: list[TimeWindow] = []
    current = fragments[0]
    for nxt in fragments[1:]:
        if current.end >= nxt.start:
            current = TimeWindow(start=current.start, end=max(current.end, nxt.end))
        else:
            merged.append(current)
            current = nxt
    merged.append(current)

    logger.debug("Effective windows: %s", [(w.start, w.end) for w in merged])
    return merged


def resolve_effective_hours(policy: BookingPolicy) -> list[TimeWindow]:
    """Effective windows for a policy's after-hours and working hours."""
    return merge_effective_windows(policy.after_hours, policy.default_working_hours)


def complement(working_hours: TimeWindow, after_hours: TimeWindow) -> list[TimeWindow]:
    """
    Offline hours: the two fixed gaps between the configured ranges.

    Always returns ``[working.end, after.start]`` followed by
    ``[after.end, working.start]``. This is not a true interval complement
    of the merged windows; pricing and availability depend on this exact
    shape.
    """
    return [
        TimeWindow(start=working_hours.end, end=after_hours.start),
        TimeWindow(start=after_hours.end, end=working_hours.start),
    ]


def offline_hours(policy: BookingPolicy) -> list[TimeWindow]:
    return complement(policy.default_working_hours, policy.after_hours)


def is_within_offline_hours(
    on_date: date,
    start: time,
    end: time,
    working_hours: TimeWindow,
    after_hours: TimeWindow,
) -> bool:
    """
    Check whether a booking's start or end falls strictly inside a gap.

    Gaps are anchored on ``on_date`` (wrapping to the next day when needed);
    the booking's own start and end are anchored on the same date as given.
    """
    booking_start = anchor(on_date, start)
    booking_end = anchor(on_date, end)

    for gap in complement(working_hours, after_hours):
        gap_start, gap_end = normalize(gap, on_date)
        start_inside = gap_start < booking_start < gap_end
        end_inside = gap_start < booking_end < gap_end
        if start_inside or end_inside:
            return True
    return False


def booking_interval(on_date: date, start: time, end: time) -> tuple[datetime, datetime]:
    """Absolute interval of a booking; an end at or before the start is next day."""
    booking_start = anchor(on_date, start)
    booking_end = anchor(on_date, end)
    if booking_end <= booking_start:
        booking_end += ONE_DAY
    return booking_start, booking_end
