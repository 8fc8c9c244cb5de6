"""
Booking engine demo entry point.

Seeds the in-memory collaborators with one creator and one fan, then walks
a booking through creation, pricing, rescheduling and a no-show.

Usage:
    Scripted demo:   python main.py demo
    Price a booking: python main.py quote 2025-07-12 15:00 17:00
"""

import asyncio
import json
import logging
import sys

from src.config import settings
from src.engine.lifecycle_manager import BookingLifecycleManager
from src.tools.identity import InMemoryIdentityDirectory
from src.tools.ledger import InMemoryLedger
from src.tools.notifier import LoggingNotifier
from src.tools.storage import BOOKING_SETTINGS, InMemoryStore

logger = logging.getLogger(__name__)

DEMO_CREATOR = "42"
DEMO_FAN = "7"

DEMO_SETTINGS = {
    "id": DEMO_CREATOR,
    "timezone": "UTC",
    "default_working_hours": {"start": "08:00", "end": "16:00"},
    "after_hours": {"start": "16:00", "end": "22:00"},
    "min_booking_time": 15,
    "max_booking_time": 180,
    "booking_buffer": 10,
    "default_working_hour_token_price_per_minute": 2,
    "after_hour_token_price_per_minute": 3,
    "advance_booking": True,
    "negotiation_phase": False,
    "suspensions": [],
    "no_show_count": 0,
}


def _build_manager() -> BookingLifecycleManager:
    """Wire the engine to seeded in-memory collaborators."""
    store = InMemoryStore()
    store.seed(BOOKING_SETTINGS, DEMO_CREATOR, DEMO_SETTINGS)

    directory = InMemoryIdentityDirectory()
    directory.add_user(DEMO_CREATOR, display_name="Demo Creator", role="creator")
    directory.add_user(DEMO_FAN, display_name="Demo Fan", role="fan")

    ledger = InMemoryLedger({DEMO_FAN: 5000})
    return BookingLifecycleManager(store, directory, ledger, LoggingNotifier(directory))


def _show(title: str, payload: dict) -> None:
    print(f"\n== {title} ==")
    print(json.dumps(payload, indent=2, default=str))


async def _run_demo() -> None:
    manager = _build_manager()

    _show("Effective hours", await manager.resolve_effective_hours(DEMO_CREATOR))
    _show("Offline hours", await manager.get_offline_hours(DEMO_CREATOR))
    _show("Quote 15:00-17:00", await manager.quote_price(DEMO_CREATOR, "2030-07-12", "15:00", "17:00"))

    created = await manager.create_booking(DEMO_FAN, DEMO_CREATOR, "2030-07-12", "15:00", "17:00")
    _show("Create booking", created)
    if "error" in created:
        return

    booking_id = created["booking_id"]
    _show(
        "Overlapping request",
        await manager.create_booking(DEMO_FAN, DEMO_CREATOR, "2030-07-12", "17:05", "17:30"),
    )
    _show(
        "Reschedule (partial)",
        await manager.reschedule_booking(DEMO_CREATOR, booking_id, "partial", new_time="09:00"),
    )
    _show("No-show check (before start)", await manager.handle_no_show(booking_id))
    _show("Booking status", await manager.get_booking_status(booking_id))


async def _run_quote(booking_date: str, start: str, end: str) -> None:
    manager = _build_manager()
    _show(f"Quote {booking_date} {start}-{end}", await manager.quote_price(DEMO_CREATOR, booking_date, start, end))


if __name__ == "__main__":
    logger.info("Starting %s", settings.service_name)
    if len(sys.argv) > 4 and sys.argv[1] == "quote":
        asyncio.run(_run_quote(*sys.argv[2:5]))
    else:
        asyncio.run(_run_demo())
