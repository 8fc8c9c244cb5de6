"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any, Optional

import pytest

from src.cache import TTLCache
from src.engine.lifecycle_manager import BookingLifecycleManager
from src.engine.settings_resolver import SettingsResolver
from src.schemas.booking_schema import Booking, BookingStatus
from src.schemas.policy_schema import BookingPolicy
from src.tools.identity import InMemoryIdentityDirectory
from src.tools.ledger import InMemoryLedger
from src.tools.notifier import LoggingNotifier
from src.tools.storage import BOOKING_SETTINGS, BOOKINGS, InMemoryStore

CREATOR_ID = "42"
FAN_ID = "7"
FIXED_NOW = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


def make_settings_document(creator_id: str = CREATOR_ID, **overrides: Any) -> dict[str, Any]:
    """A stored settings document with sensible bookable defaults."""
    document = {
        "id": creator_id,
        "timezone": "UTC",
        "default_working_hours": {"start": "08:00", "end": "16:00"},
        "after_hours": {"start": "16:00", "end": "22:00"},
        "min_booking_time": 15,
        "max_booking_time": 240,
        "booking_buffer": 10,
        "default_working_hour_token_price_per_minute": 2,
        "after_hour_token_price_per_minute": 3,
        "advance_booking": True,
        "negotiation_phase": False,
        "suspensions": [],
        "no_show_count": 0,
    }
    document.update(overrides)
    return document


def make_policy(
    working: Optional[tuple[str, str]] = ("08:00", "16:00"),
    after: Optional[tuple[str, str]] = ("16:00", "22:00"),
    **overrides: Any,
) -> BookingPolicy:
    """Helper to create a BookingPolicy from time-of-day pairs."""
    fields: dict[str, Any] = {
        "id": CREATOR_ID,
        "timezone": "UTC",
        "min_booking_time": 15,
        "max_booking_time": 240,
        "default_working_hour_token_price_per_minute": 2,
        "after_hour_token_price_per_minute": 3,
    }
    if working:
        fields["default_working_hours"] = {"start": working[0], "end": working[1]}
    if after:
        fields["after_hours"] = {"start": after[0], "end": after[1]}
    fields.update(overrides)
    return BookingPolicy.model_validate(fields)


def make_booking(
    booking_id: str = "BK-TEST",
    start: str = "2025-07-12 10:00:00",
    end: str = "2025-07-12 11:00:00",
    status: BookingStatus = BookingStatus.PENDING,
    fan_id: str = FAN_ID,
    creator_id: str = CREATOR_ID,
    **overrides: Any,
) -> Booking:
    """Helper to create a Booking with sensible defaults."""
    return Booking(
        booking_id=booking_id,
        fan_id=fan_id,
        creator_id=creator_id,
        start_time=datetime.fromisoformat(start),
        end_time=datetime.fromisoformat(end),
        timezone="UTC",
        status=status,
        **overrides,
    )


def seed_booking(store: InMemoryStore, booking: Booking) -> Booking:
    store.seed(BOOKINGS, booking.booking_id, booking.to_storage())
    return booking


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    store = InMemoryStore()
    store.seed(BOOKING_SETTINGS, CREATOR_ID, make_settings_document())
    return store


@pytest.fixture
def resolver(store):
    return SettingsResolver(store, TTLCache(300, name="policy"))


@pytest.fixture
def directory():
    directory = InMemoryIdentityDirectory()
    directory.add_user(CREATOR_ID, display_name="Creator Casey", role="creator")
    directory.add_user(FAN_ID, display_name="Fan Frankie", role="fan")
    return directory


@pytest.fixture
def ledger():
    return InMemoryLedger({FAN_ID: 10_000})


@pytest.fixture
def notifier(directory):
    return LoggingNotifier(directory)


@pytest.fixture
def manager(store, directory, ledger, notifier, clock):
    ids = count(1)
    return BookingLifecycleManager(
        store,
        directory,
        ledger,
        notifier,
        clock=clock,
        id_factory=lambda: f"BK-{next(ids):04d}",
    )
