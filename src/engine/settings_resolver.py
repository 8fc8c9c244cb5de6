"""
Per-creator booking policy access.

Reads go through an injected ``TTLCache``; every write made through the
resolver invalidates the creator's entry, so a write followed by a read
always sees the new policy.

Usage:
    resolver = SettingsResolver(store, TTLCache(300, name="policy"))
    policy = await resolver.get_policy("42")
    await resolver.update_policy("42", {"booking_buffer": 15})
"""

import logging
from datetime import datetime, tzinfo
from typing import Any, Optional

from dateutil import tz

from src.cache import TTLCache
from src.config import settings
from src.errors import (
    BookingSettingNotFoundError,
    ConditionFailedError,
    MissingBookingSettingsError,
    SettingsConflictError,
    TimezoneError,
)
from src.schemas.policy_schema import SETTINGS_KEYS, BookingPolicy
from src.tools.storage import BOOKING_SETTINGS, StorageBackend

logger = logging.getLogger(__name__)

_FIELD_TO_KEY = {name: key for key, name in SETTINGS_KEYS.items()}


def sanitize_settings(changes: dict[str, Any]) -> dict[str, Any]:
    """
    Keep only known settings keys, renamed to their stored form.

    Both stored keys (``min_booking_time``) and attribute names
    (``min_booking_minutes``) are accepted. Type coercion happens when the
    merged document is validated as a ``BookingPolicy``.
    """
    sanitized: dict[str, Any] = {}
    for key, value in changes.items():
        if key in SETTINGS_KEYS:
            sanitized[key] = value
        elif key in _FIELD_TO_KEY:
            sanitized[_FIELD_TO_KEY[key]] = value
        else:
            logger.debug("Ignoring unknown settings key %r", key)
    return sanitized


def get_zone(name: str, creator_id: str = "") -> tzinfo:
    """
    Look up an IANA zone, falling back to the configured default for "".

    Raises:
        TimezoneError: If the name is not a known zone.
    """
    name = name or settings.policy.timezone
    zone = tz.gettz(name)
    if zone is None:
        raise TimezoneError(
            f"Error setting timezone for creator ID: {creator_id} ({name!r})"
        )
    return zone


def resolve_timezone(policy: BookingPolicy) -> tzinfo:
    """The creator's timezone."""
    return get_zone(policy.timezone, policy.creator_id)


def local_now(zone: tzinfo, now: datetime) -> datetime:
    """Convert an aware instant to naive wall-clock time in ``zone``."""
    return now.astimezone(zone).replace(tzinfo=None)


class SettingsResolver:
    """Loads, caches and writes ``BookingPolicy`` documents."""

    def __init__(self, store: StorageBackend, cache: Optional[TTLCache] = None) -> None:
        self._store = store
        self._cache = cache or TTLCache(settings.cache.policy_ttl_seconds, name="policy")

    async def get_policy(self, creator_id: str) -> BookingPolicy:
        """
        Fetch a creator's policy, cached.

        Raises:
            MissingBookingSettingsError: If ``creator_id`` is empty.
            BookingSettingNotFoundError: If the creator has no settings.
            StorageError: If the store fails.
        """
        if not creator_id:
            raise MissingBookingSettingsError("Creator ID is required to load booking settings.")
        creator_id = str(creator_id)

        cached = self._cache.get(creator_id)
        if cached is not None:
            return cached.model_copy(deep=True)

        document = await self._store.get_item(BOOKING_SETTINGS, creator_id)
        if not document:
            raise BookingSettingNotFoundError(
                f"Booking settings not found for creator ID: {creator_id}"
            )

        policy = BookingPolicy.model_validate({**document, "id": creator_id})
        self._cache.set(creator_id, policy)
        return policy.model_copy(deep=True)

    async def get_document(self, creator_id: str) -> dict[str, Any]:
        """The stored settings document exactly as persisted, uncached; {} if absent."""
        return await self._store.get_item(BOOKING_SETTINGS, str(creator_id)) or {}

    async def find_policy(self, creator_id: str) -> Optional[BookingPolicy]:
        """Like ``get_policy`` but returns None when the creator has no settings."""
        try:
            return await self.get_policy(creator_id)
        except (BookingSettingNotFoundError, MissingBookingSettingsError):
            return None

    async def save_policy(
        self,
        creator_id: str,
        policy: BookingPolicy,
        expected: Optional[dict[str, Any]] = None,
    ) -> BookingPolicy:
        """Write a whole policy document, conditionally on ``expected``."""
        creator_id = str(creator_id)
        document = {**policy.to_storage(), "id": creator_id}
        try:
            await self._store.put_item(BOOKING_SETTINGS, creator_id, document, expected=expected)
        except ConditionFailedError as exc:
            raise SettingsConflictError(exc.field) from None
        finally:
            self._cache.invalidate(creator_id)
        logger.info("Booking settings saved for creator %s", creator_id)
        return BookingPolicy.model_validate(document)

    async def update_policy(
        self,
        creator_id: str,
        changes: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> BookingPolicy:
        """
        Merge sanitized ``changes`` over the stored settings and write them.

        Each ``expected`` key must equal the currently stored value.

        Raises:
            SettingsConflictError: If an expected value no longer matches.
        """
        if not creator_id:
            raise MissingBookingSettingsError("Creator ID is required to update booking settings.")
        creator_id = str(creator_id)

        existing = await self.get_document(creator_id)
        merged = {**existing, **sanitize_settings(changes), "id": creator_id}
        policy = BookingPolicy.model_validate(merged)
        return await self.save_policy(creator_id, policy, expected=expected)

    # --- Feature checks ---

    async def has_enabled_booking(self, creator_id: str) -> bool:
        policy = await self.find_policy(creator_id)
        return bool(policy and policy.advance_booking_enabled)

    async def has_enabled_negotiation(self, creator_id: str) -> bool:
        policy = await self.find_policy(creator_id)
        return bool(policy and policy.negotiation_phase_enabled)

    async def get_buffer_minutes(self, creator_id: str) -> Optional[int]:
        """The creator's buffer, the configured default when unset, None without settings."""
        policy = await self.find_policy(creator_id)
        if policy is None:
            return None
        return buffer_minutes(policy)

    async def get_min_booking_minutes(self, creator_id: str) -> Optional[int]:
        policy = await self.find_policy(creator_id)
        return policy.min_booking_minutes if policy and policy.min_booking_minutes else None

    async def get_max_booking_minutes(self, creator_id: str) -> Optional[int]:
        policy = await self.find_policy(creator_id)
        return policy.max_booking_minutes if policy and policy.max_booking_minutes else None


def buffer_minutes(policy: BookingPolicy) -> int:
    if policy.booking_buffer_minutes is None:
        return settings.policy.buffer_minutes
    return policy.booking_buffer_minutes
