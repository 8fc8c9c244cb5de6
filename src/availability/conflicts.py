"""
Buffered overlap detection between a candidate booking and existing ones.

The buffer pads existing bookings symmetrically, so a candidate must start
at least ``buffer`` minutes after an existing booking ends, or end at least
``buffer`` minutes before it starts.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, TypedDict

from src.availability.time_windows import ONE_DAY
from src.schemas.booking_schema import Booking, BookingStatus
from src.tools.storage import BOOKINGS, StorageBackend

logger = logging.getLogger(__name__)

# Bookings that hold their slot against new requests.
BLOCKING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.NEGOTIATION,
    BookingStatus.RESCHEDULED,
})


class BookedInterval(TypedDict):
    """A booked start/end pair on a day."""

    start: datetime
    end: datetime


class DaySchedule(TypedDict):
    """Bookings grouped under their start date."""

    date: date
    booked: list[BookedInterval]


class FreeSlot(TypedDict):
    start: datetime
    end: datetime


def intervals_conflict(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
    buffer_minutes: int,
) -> bool:
    """Buffered overlap test; symmetric in its two intervals."""
    buffer = timedelta(minutes=buffer_minutes)
    return a_start < b_end + buffer and a_end > b_start - buffer


def has_conflict(
    candidate_start: datetime,
    candidate_end: datetime,
    existing: Iterable[tuple[datetime, datetime]],
    buffer_minutes: int,
) -> bool:
    """Check a candidate interval against existing ``(start, end)`` pairs."""
    for existing_start, existing_end in existing:
        if existing_end <= existing_start:
            existing_end += ONE_DAY
        if intervals_conflict(
            candidate_start, candidate_end, existing_start, existing_end, buffer_minutes
        ):
            logger.debug(
                "Candidate %s-%s conflicts with %s-%s (buffer %d)",
                candidate_start, candidate_end, existing_start, existing_end, buffer_minutes,
            )
            return True
    return False


def bookings_by_date(bookings: Iterable[Booking]) -> list[DaySchedule]:
    """Group slot-holding bookings by the date they start on, ordered by date."""
    days: dict[date, list[BookedInterval]] = defaultdict(list)
    for booking in bookings:
        if booking.status not in BLOCKING_STATUSES:
            continue
        days[booking.start_time.date()].append(
            {"start": booking.start_time, "end": booking.end_time}
        )
    return [{"date": day, "booked": days[day]} for day in sorted(days)]


def free_slots(
    range_start: datetime,
    range_end: datetime,
    bookings: Iterable[tuple[datetime, datetime]],
    buffer_minutes: int,
) -> list[FreeSlot]:
    """Open windows inside ``[range_start, range_end]`` around buffered bookings."""
    buffer = timedelta(minutes=abs(buffer_minutes))
    slots: list[FreeSlot] = []
    cursor = range_start

    for booked_start, booked_end in sorted(bookings):
        padded_start = booked_start - buffer
        padded_end = booked_end + buffer
        if cursor < padded_start:
            slots.append({"start": cursor, "end": min(padded_start, range_end)})
        cursor = max(cursor, padded_end)

    if cursor < range_end:
        slots.append({"start": cursor, "end": range_end})
    return [slot for slot in slots if slot["start"] < slot["end"]]


class ConflictChecker:
    """Loads a creator's bookings from storage and applies the overlap test."""

    def __init__(self, store: StorageBackend) -> None:
        self._store = store

    async def load_bookings(self, creator_id: str) -> list[Booking]:
        rows = await self._store.query(BOOKINGS, "creator_id", str(creator_id))
        return [Booking.model_validate(row) for row in rows]

    async def has_conflict(
        self,
        creator_id: str,
        candidate_start: datetime,
        candidate_end: datetime,
        buffer_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Check the candidate against the creator's bookings on the same date."""
        bookings = [
            b for b in await self.load_bookings(creator_id)
            if b.booking_id != exclude_booking_id
        ]
        for day in bookings_by_date(bookings):
            if day["date"] != candidate_start.date():
                continue
            existing = [(slot["start"], slot["end"]) for slot in day["booked"]]
            if has_conflict(candidate_start, candidate_end, existing, buffer_minutes):
                return True
        return False
