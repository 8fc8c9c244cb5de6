"""
Creator suspension state: checking, adding, lifting and revoking periods.

Suspensions live inside the creator's policy document. Writes to the list
are conditional on the list as it was read, so two concurrent edits cannot
silently drop each other's changes.
"""

import logging
from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.config import SuspensionConfig, settings
from src.engine.settings_resolver import SettingsResolver
from src.errors import MissingRequiredFieldsError, SuspensionsFoundError
from src.schemas.policy_schema import BookingPolicy, Suspension, SuspensionStatus
from src.tools.storage import BOOKINGS, StorageBackend

logger = logging.getLogger(__name__)

NOT_SUSPENDED = "not_suspended"


def is_suspended(policy: BookingPolicy, on_date: date) -> str:
    """
    Check whether bookings on ``on_date`` are blocked by an active suspension.

    Returns:
        ``"not_suspended"``.

    Raises:
        SuspensionsFoundError: For the first active suspension containing the date.
    """
    for suspension in policy.suspensions:
        if suspension.status == SuspensionStatus.ACTIVE and suspension.contains(on_date):
            raise SuspensionsFoundError(
                f"Suspensions found for creator ID: {policy.creator_id}. "
                "Please try another date."
            )
    return NOT_SUSPENDED


def _dump_suspensions(suspensions: list[Suspension]) -> list[dict]:
    return [s.model_dump(mode="json", by_alias=True, exclude_none=True) for s in suspensions]


class SuspensionGuard:
    """Reads and writes a creator's suspension periods."""

    def __init__(
        self,
        resolver: SettingsResolver,
        store: StorageBackend,
        config: SuspensionConfig = settings.suspension,
    ) -> None:
        self._resolver = resolver
        self._store = store
        self._config = config

    async def _write_suspensions(
        self, creator_id: str, suspensions: list[Suspension], read_list: Optional[list]
    ) -> None:
        await self._resolver.update_policy(
            creator_id,
            {"suspensions": _dump_suspensions(suspensions)},
            expected={"suspensions": read_list},
        )

    async def add_suspension_period(
        self,
        creator_id: str,
        start_date: date,
        end_date: date,
        no_show_booking_ids: Optional[list[str]] = None,
        status: SuspensionStatus = SuspensionStatus.ACTIVE,
    ) -> Suspension:
        """Append a suspension to the creator's policy and persist it."""
        if not creator_id or not start_date or not end_date:
            raise MissingRequiredFieldsError(
                "Creator ID, start date and end date are required to add a suspension."
            )

        document = await self._resolver.get_document(creator_id)
        policy = await self._resolver.get_policy(creator_id)

        suspension = Suspension(
            start_date=start_date,
            end_date=end_date,
            status=status,
            no_show_booking_ids=no_show_booking_ids,
        )
        await self._write_suspensions(
            creator_id, [*policy.suspensions, suspension], document.get("suspensions")
        )
        logger.info(
            "Suspension %s..%s (%s) added for creator %s",
            suspension.start_date, suspension.end_date, suspension.status.value, creator_id,
        )
        return suspension

    async def lift_expired_suspensions(self, creator_id: str, today: date) -> bool:
        """
        Lift every active suspension that ended on or before ``today``.

        The creator's no-show count is reset to 0 either way.

        Returns:
            True if at least one suspension was lifted.
        """
        await self._resolver.update_policy(creator_id, {"no_show_count": 0})

        document = await self._resolver.get_document(creator_id)
        policy = await self._resolver.get_policy(creator_id)

        changed = False
        for suspension in policy.suspensions:
            if suspension.status == SuspensionStatus.ACTIVE and suspension.end_date <= today:
                suspension.status = SuspensionStatus.SUSPENSION_LIFTED
                changed = True

        if not changed:
            logger.debug("No expired suspensions for creator %s", creator_id)
            return False

        await self._write_suspensions(creator_id, policy.suspensions, document.get("suspensions"))
        logger.info("Expired suspensions lifted for creator %s", creator_id)
        return True

    async def revoke_suspension(self, creator_id: str, on_date: date) -> bool:
        """Remove every suspension whose range contains ``on_date``; False if none did."""
        document = await self._resolver.get_document(creator_id)
        policy = await self._resolver.get_policy(creator_id)

        remaining = [s for s in policy.suspensions if not s.contains(on_date)]
        if len(remaining) == len(policy.suspensions):
            return False

        await self._write_suspensions(creator_id, remaining, document.get("suspensions"))
        logger.info(
            "Revoked %d suspension(s) covering %s for creator %s",
            len(policy.suspensions) - len(remaining), on_date, creator_id,
        )
        return True

    async def apply_no_show_suspension(self, creator_id: str, today: date) -> Suspension:
        """
        Suspend the creator from ``today`` for the configured number of months.

        The new suspension is tagged with the creator's no-show bookings,
        except those already covered by a lifted suspension.
        """
        policy = await self._resolver.get_policy(creator_id)

        lifted_ids: set[str] = set()
        for suspension in policy.suspensions:
            if suspension.status == SuspensionStatus.SUSPENSION_LIFTED and suspension.no_show_booking_ids:
                lifted_ids.update(suspension.no_show_booking_ids)

        rows = await self._store.query(BOOKINGS, "creator_id", str(creator_id))
        missed_ids = [
            row["booking_id"]
            for row in rows
            if row.get("call_status") == "no_show" and row["booking_id"] not in lifted_ids
        ]

        end_date = today + relativedelta(months=self._config.suspension_length_months)
        logger.info(
            "Applying no-show suspension for creator %s until %s (%d bookings)",
            creator_id, end_date, len(missed_ids),
        )
        return await self.add_suspension_period(
            creator_id, today, end_date, missed_ids, SuspensionStatus.ACTIVE
        )
