"""
Notification conditions, recipients and message templates.

Rendering only; delivery belongs to the ``Notifier`` collaborator.

Usage:
    for target in expand_targets("success_booking"):
        subject = subject_for("success_booking", target)
        body = build_email_body(booking, "Alex", "success_booking")
"""

from src.schemas.booking_schema import Booking
from src.utils import format_time

# Condition -> who is told about it. "both" expands to fan and creator.
NOTIFY_CONDITIONS: dict[str, list[str]] = {
    "request_reschedule": ["fan", "creator"],
    "approve_reschedule": ["fan", "creator"],
    "success_reschedule": ["both"],
    "decline_reschedule": ["fan", "creator"],
    "success_booking": ["both"],
    "cancel_booking": ["both"],
    "booking_reminder": ["both"],
    "session_start": ["both"],
}

SUBJECTS: dict[str, dict[str, str]] = {
    "request_reschedule": {
        "fan": "Reschedule Request Received",
        "creator": "New Reschedule Request",
    },
    "approve_reschedule": {
        "fan": "Reschedule Approved",
        "creator": "Reschedule Approved",
    },
    "success_reschedule": {
        "fan": "Reschedule Successful",
        "creator": "Reschedule Successful",
    },
    "decline_reschedule": {
        "fan": "Reschedule Request Declined",
        "creator": "Reschedule Declined",
    },
    "success_booking": {
        "fan": "Booking Confirmed",
        "creator": "New Booking Confirmed",
    },
    "cancel_booking": {
        "fan": "Booking Canceled",
        "creator": "Booking Canceled",
    },
    "booking_reminder": {
        "fan": "Upcoming Session Reminder",
        "creator": "Upcoming Session Reminder",
    },
    "session_start": {
        "fan": "Your Session Has Started",
        "creator": "Your Session Has Started",
    },
}

DEFAULT_SUBJECT = "Booking Notification"

BODY_TEMPLATE = """\
<h2>Booking Notification</h2>
<p>Dear {recipient_name},</p>
<p>Your booking (No: {booking_id}) has been updated based on the following status: {status}.</p>
<p>Date: {date}</p>
<p>Time: {time}</p>
<p>Thank you,</p>
<p>Fansocial Team</p>
"""


def capitalize_condition(condition: str) -> str:
    """``"success_booking"`` -> ``"Success booking"``."""
    text = condition.replace("_", " ")
    return text[:1].upper() + text[1:]


def expand_targets(condition: str) -> list[str]:
    """Concrete recipients ("fan"/"creator") for a condition; unknown -> []."""
    targets: list[str] = []
    for target in NOTIFY_CONDITIONS.get(condition, []):
        if target == "both":
            targets.extend(["fan", "creator"])
        else:
            targets.append(target)
    return targets


def subject_for(condition: str, target: str) -> str:
    return SUBJECTS.get(condition, {}).get(target, DEFAULT_SUBJECT)


def build_notice(booking_id: str, condition: str) -> str:
    """In-app notice text, e.g. "Cancel booking for Booking ID 42"."""
    return f"{capitalize_condition(condition)} for Booking ID {booking_id}"


def build_email_body(booking: Booking, recipient_name: str, condition: str) -> str:
    return BODY_TEMPLATE.format(
        recipient_name=recipient_name,
        booking_id=booking.booking_id,
        status=capitalize_condition(condition),
        date=booking.start_time.date().isoformat(),
        time=format_time(booking.start_time.time()),
    )
