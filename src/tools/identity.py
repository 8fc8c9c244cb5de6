"""
Mock user directory.

In production, this would query the platform's user service for account
existence and the role-specific activity status of fans and creators.
"""

import logging
from typing import Protocol, TypedDict, Union

from src.errors import UserNotActiveError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserRecord(TypedDict):
    """User record stored in the directory."""

    user_id: str
    display_name: str
    email: str
    role: str
    activity_status: str


class IdentityService(Protocol):
    async def is_user_exists_and_valid(self, user_id: str) -> Union[bool, dict]:
        """True for an existing active user, else an ``{error, message}`` dict."""
        ...


class InMemoryIdentityDirectory:
    """Dict-backed user directory used by tests and the demo entry point."""

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}
        self.lookups = 0

    def add_user(
        self,
        user_id: str,
        display_name: str = "",
        role: str = "fan",
        activity_status: str = "active",
        email: str = "",
    ) -> UserRecord:
        record: UserRecord = {
            "user_id": str(user_id),
            "display_name": display_name or f"User {user_id}",
            "email": email or f"user{user_id}@example.com",
            "role": role,
            "activity_status": activity_status,
        }
        self._users[str(user_id)] = record
        logger.debug("Directory user added: %s (%s)", user_id, role)
        return record

    def get_user(self, user_id: str) -> UserRecord | None:
        return self._users.get(str(user_id))

    def display_name(self, user_id: str) -> str:
        user = self.get_user(user_id)
        return user["display_name"] if user else f"User {user_id}"

    async def is_user_exists_and_valid(self, user_id: str) -> Union[bool, dict]:
        self.lookups += 1
        user = self.get_user(user_id)
        if user is None:
            return UserNotFoundError("User does not exist.").to_dict()
        if user["activity_status"] != "active":
            return UserNotActiveError(
                "User is either inactive or does not exist in the role-specific table."
            ).to_dict()
        return True
