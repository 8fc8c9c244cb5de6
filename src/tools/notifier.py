"""
Mock notification delivery.

In production, this would hand rendered emails to a mail provider (SES,
SendGrid) and push an in-app notice to the recipient's account.
"""

import logging
from typing import Optional, Protocol, TypedDict

from src.notifications import build_email_body, build_notice, subject_for
from src.schemas.booking_schema import Booking
from src.tools.identity import InMemoryIdentityDirectory

logger = logging.getLogger(__name__)


class OutboundMessage(TypedDict):
    """A notification as it would be handed to the mail provider."""

    booking_id: str
    user_id: str
    target: str
    condition: str
    recipient: str
    subject: str
    body: str
    notice: str


class Notifier(Protocol):
    async def send(self, booking: Booking, target: str, condition: str) -> None: ...


class LoggingNotifier:
    """Renders notifications, logs them and keeps them in ``sent``."""

    def __init__(self, directory: Optional[InMemoryIdentityDirectory] = None) -> None:
        self._directory = directory
        self.sent: list[OutboundMessage] = []

    def _recipient(self, user_id: str) -> tuple[str, str]:
        if self._directory is not None:
            user = self._directory.get_user(user_id)
            if user is not None:
                return user["display_name"], user["email"]
        return f"User {user_id}", ""

    async def send(self, booking: Booking, target: str, condition: str) -> None:
        user_id = booking.fan_id if target == "fan" else booking.creator_id
        name, email = self._recipient(user_id)
        message: OutboundMessage = {
            "booking_id": booking.booking_id,
            "user_id": user_id,
            "target": target,
            "condition": condition,
            "recipient": email,
            "subject": subject_for(condition, target),
            "body": build_email_body(booking, name, condition),
            "notice": build_notice(booking.booking_id, condition),
        }
        self.sent.append(message)
        logger.info(
            "Notification '%s' queued for %s %s (booking %s)",
            message["subject"], target, user_id, booking.booking_id,
        )
