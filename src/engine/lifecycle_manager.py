"""
Booking lifecycle orchestration.

``BookingLifecycleManager`` is the public surface of the engine. Each public
coroutine validates its request by consulting the settings resolver,
suspension guard, availability rules, pricing and conflict checker, then
writes at most once. Validation failures come back as
``{"error": kind, "message": ...}`` payloads; infrastructure failures come
back as ``internal_error``. No exception crosses this boundary.

Usage:
    manager = BookingLifecycleManager(store, directory, ledger, notifier)
    result = await manager.create_booking("7", "42", "2025-07-12", "09:00", "10:00")
    if "error" in result:
        ...
"""

import asyncio
import functools
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Optional, Union

from src.availability.conflicts import BLOCKING_STATUSES, ConflictChecker
from src.availability.duration import is_time_fully_within_effective_windows, validate_duration
from src.availability.pricing import calculate_price
from src.availability.recurrence import expand_occurrences, has_occurrence_between
from src.availability.time_windows import (
    booking_interval,
    is_within_offline_hours,
    offline_hours,
    resolve_effective_hours,
)
from src.cache import TTLCache, make_key
from src.config import AppConfig, settings
from src.engine.settings_resolver import (
    SettingsResolver,
    buffer_minutes,
    get_zone,
    local_now,
    resolve_timezone,
)
from src.engine.state_machine import can_transition, validate_transition
from src.engine.suspension_guard import SuspensionGuard, is_suspended
from src.errors import (
    AdminNoteNotFoundError,
    BookingEngineError,
    BookingInsertionFailedError,
    BookingNotFoundError,
    BookingWithinOfflineHoursError,
    ConditionFailedError,
    InsufficientTokenError,
    InvalidBookingDurationError,
    InvalidMissedByError,
    InvalidPriceBreakdownError,
    InvalidRescheduleTypeError,
    InvalidStatusTransitionError,
    MissingBookingSettingsError,
    MissingRequiredFieldsError,
    UnavailableTimeSlotError,
    UserNotActiveError,
    UserNotFoundError,
    internal_error,
)
from src.logging_context import get_request_logger, new_request_id
from src.notifications import expand_targets
from src.schemas.booking_schema import AdminNote, AuditEntry, Booking, BookingStatus, Party
from src.schemas.policy_schema import BookingPolicy, SuspensionStatus, TimeWindow
from src.tools.identity import IdentityService
from src.tools.ledger import Ledger
from src.tools.notifier import Notifier
from src.tools.storage import BOOKING_VERSIONS, BOOKINGS, StorageBackend
from src.utils import parse_date, parse_datetime, parse_time_of_day, sanitize_text_field

logger = get_request_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def boundary(action: str) -> Callable:
    """
    Turn a public coroutine's exceptions into error payloads.

    Tags the call with a fresh request id so every log line it produces can
    be correlated.
    """

    def decorator(operation: Callable) -> Callable:
        @functools.wraps(operation)
        async def wrapper(self, *args, **kwargs) -> dict[str, Any]:
            new_request_id()
            logger.debug("%s started", operation.__name__)
            try:
                return await operation(self, *args, **kwargs)
            except BookingEngineError as exc:
                logger.info("%s rejected: %s: %s", operation.__name__, exc.kind.value, exc.message)
                return exc.to_dict()
            except Exception:
                logger.exception("%s failed", operation.__name__)
                return internal_error(f"An internal error occurred while {action}.")

        return wrapper

    return decorator


def _windows_payload(windows: list[TimeWindow]) -> list[dict[str, str]]:
    return [w.model_dump(mode="json") for w in windows]


def _parse_request_date(value: Union[str, date]) -> date:
    try:
        return parse_date(sanitize_text_field(value) if isinstance(value, str) else value)
    except ValueError:
        raise MissingRequiredFieldsError(f"Invalid date: {value!r}. Use YYYY-MM-DD.") from None


def _parse_request_time(value: Union[str, time]) -> time:
    try:
        return parse_time_of_day(sanitize_text_field(value) if isinstance(value, str) else value)
    except ValueError:
        raise MissingRequiredFieldsError(f"Invalid time: {value!r}. Use HH:MM or HH:MM:SS.") from None


def _parse_request_datetime(value: Union[str, datetime]) -> datetime:
    try:
        return parse_datetime(sanitize_text_field(value) if isinstance(value, str) else value)
    except ValueError:
        raise MissingRequiredFieldsError(
            f"Invalid date-time: {value!r}. Use YYYY-MM-DD HH:MM:SS."
        ) from None


def _require_hours(policy: BookingPolicy) -> None:
    if not policy.has_hours():
        raise MissingBookingSettingsError(
            f"Working hours and after-hours are not configured for creator ID: {policy.creator_id}"
        )


class BookingLifecycleManager:
    """Creates, prices, reschedules and closes out creator bookings."""

    def __init__(
        self,
        store: StorageBackend,
        identity: IdentityService,
        ledger: Ledger,
        notifier: Notifier,
        config: AppConfig = settings,
        policy_cache: Optional[TTLCache] = None,
        existence_cache: Optional[TTLCache] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self._ledger = ledger
        self._notifier = notifier
        self._config = config
        self._clock = clock
        self._id_factory = id_factory or (lambda: f"BK-{uuid.uuid4().hex[:10].upper()}")
        self._existence_cache = existence_cache or TTLCache(
            config.cache.existence_ttl_seconds, name="existence"
        )
        self.resolver = SettingsResolver(
            store, policy_cache or TTLCache(config.cache.policy_ttl_seconds, name="policy")
        )
        self.suspensions = SuspensionGuard(self.resolver, store, config.suspension)
        self.conflicts = ConflictChecker(store)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _local_now(self, policy: BookingPolicy) -> datetime:
        return local_now(resolve_timezone(policy), self._clock())

    async def _ensure_user(self, user_id: str) -> None:
        key = make_key("user", user_id)
        status = self._existence_cache.get(key)
        if status is None:
            status = await self._identity.is_user_exists_and_valid(user_id)
            self._existence_cache.set(key, status)
        if status is True:
            return
        error = status if isinstance(status, dict) else {}
        if error.get("error") == UserNotFoundError.kind.value:
            raise UserNotFoundError(error.get("message"))
        raise UserNotActiveError(error.get("message"))

    async def _load_booking(self, booking_id: str) -> Booking:
        if not booking_id:
            raise MissingRequiredFieldsError("Booking ID is required.")
        row = await self._store.get_item(BOOKINGS, str(booking_id))
        if not row:
            raise BookingNotFoundError(f"Booking not found for booking ID: {booking_id}")
        return Booking.model_validate(row)

    async def _save_booking(self, booking: Booking) -> None:
        await self._store.update_item(BOOKINGS, booking.booking_id, booking.to_storage())

    def _audit(self, booking: Booking, action: str, actor: str, **metadata: Any) -> None:
        booking.audit_trail.append(AuditEntry(
            at=self._clock(),
            action=action,
            actor=str(actor),
            metadata=metadata,
        ))

    async def _notify(self, booking: Booking, condition: str) -> None:
        for target in expand_targets(condition):
            try:
                await self._notifier.send(booking, target, condition)
            except Exception:
                logger.exception(
                    "Notification '%s' to %s failed for booking %s",
                    condition, target, booking.booking_id,
                )

    async def _read_booking_version(self, creator_id: str) -> Optional[int]:
        record = await self._store.get_item(BOOKING_VERSIONS, creator_id)
        return record.get("version") if record else None

    async def _claim_booking_version(self, creator_id: str, version: Optional[int]) -> None:
        """Bump the creator's booking version if nobody else has since ``version`` was read."""
        try:
            await self._store.put_item(
                BOOKING_VERSIONS,
                creator_id,
                {"creator_id": creator_id, "version": (version or 0) + 1},
                expected={"version": version},
            )
        except ConditionFailedError:
            logger.info("Concurrent booking for creator %s detected; rejecting", creator_id)
            raise UnavailableTimeSlotError(
                "The requested time slot was taken while your booking was being processed."
            ) from None

    async def _is_slot_available(
        self,
        policy: BookingPolicy,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        try:
            validate_duration(start, end, policy)
        except InvalidBookingDurationError:
            return False

        if not is_time_fully_within_effective_windows(start, end, resolve_effective_hours(policy)):
            logger.debug("%s-%s is outside effective windows", start, end)
            return False

        return not await self.conflicts.has_conflict(
            policy.creator_id, start, end, buffer_minutes(policy),
            exclude_booking_id=exclude_booking_id,
        )

    async def _is_available(
        self,
        policy: BookingPolicy,
        start: datetime,
        end: datetime,
        recurrence_rule: Optional[str],
        now: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        _require_hours(policy)
        if recurrence_rule:
            occurrences = expand_occurrences(
                recurrence_rule, start, end, now,
                horizon_months=self._config.availability.recurrence_horizon_months,
            )
            for occ_start, occ_end in occurrences:
                if not await self._is_slot_available(
                    policy, occ_start, occ_end, exclude_booking_id
                ):
                    logger.info("Recurring occurrence %s-%s is unavailable", occ_start, occ_end)
                    return False
        return await self._is_slot_available(policy, start, end, exclude_booking_id)

    async def _register_missed(self, booking: Booking, missed_by: Party) -> dict[str, Any]:
        booking.call_status = "no_show"
        booking.missed_by = missed_by
        previous = booking.status
        if can_transition(booking.status, BookingStatus.MISSED):
            booking.status = BookingStatus.MISSED
        self._audit(
            booking, "missed", "system",
            missed_by=missed_by.value, previous_status=previous.value,
        )
        await self._save_booking(booking)

        result: dict[str, Any] = {
            "booking_id": booking.booking_id,
            "missed_by": missed_by.value,
            "status": booking.status.value,
        }
        if missed_by in (Party.CREATOR, Party.BOTH):
            policy = await self.resolver.get_policy(booking.creator_id)
            updated = await self.resolver.update_policy(
                booking.creator_id, {"no_show_count": policy.no_show_count + 1}
            )
            result["no_show_count"] = updated.no_show_count
        if missed_by in (Party.FAN, Party.BOTH):
            result["deposit_released"] = await self._ledger.release_deposit_tokens(
                booking.booking_id
            )
        logger.info("Booking %s missed by %s", booking.booking_id, missed_by.value)
        return result

    async def _handle_creator_suspension(self, creator_id: str) -> dict[str, Any]:
        policy = await self.resolver.get_policy(creator_id)
        threshold = self._config.suspension.no_show_threshold
        if policy.no_show_count < threshold:
            return {"suspended": False, "no_show_count": policy.no_show_count}

        today = self._local_now(policy).date()
        suspension = await self.suspensions.apply_no_show_suspension(creator_id, today)
        logger.info(
            "Creator %s reached %d no-shows; suspended until %s",
            creator_id, policy.no_show_count, suspension.end_date,
        )
        return {
            "suspended": True,
            "no_show_count": policy.no_show_count,
            "suspension": suspension.model_dump(mode="json", exclude_none=True),
        }

    async def _change_status(
        self,
        booking_id: str,
        target: BookingStatus,
        action: str,
        actor: str,
        condition: Optional[str] = None,
        **metadata: Any,
    ) -> Booking:
        booking = await self._load_booking(booking_id)
        previous = booking.status
        booking.status = validate_transition(previous, target)
        self._audit(booking, action, actor, previous_status=previous.value, **metadata)
        await self._save_booking(booking)
        logger.info("Booking %s: %s -> %s", booking.booking_id, previous.value, target.value)
        if condition:
            await self._notify(booking, condition)
        return booking

    # ------------------------------------------------------------------
    # Booking creation and availability
    # ------------------------------------------------------------------

    @boundary("creating the booking")
    async def create_booking(
        self,
        fan_id: str,
        creator_id: str,
        booking_date: Union[str, date],
        booking_start: Union[str, time],
        booking_end: Union[str, time],
        negotiation_phase: bool = False,
        initial_token_charge: Optional[list[Any]] = None,
        recurrence_rule: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Validate a booking request and write it as ``pending`` (or ``negotiation``).

        Checks run in order and the first failure is returned: required
        fields, fan balance, fan and creator accounts, policy, timezone,
        suspension, duration, offline hours, availability, price fields,
        price, and balance against the total.
        """
        if not all([fan_id, creator_id, booking_date, booking_start, booking_end]):
            raise MissingRequiredFieldsError()

        fan_id, creator_id = str(fan_id), str(creator_id)
        on_date = _parse_request_date(booking_date)
        start_tod = _parse_request_time(booking_start)
        end_tod = _parse_request_time(booking_end)
        recurrence_rule = sanitize_text_field(recurrence_rule) or None

        balance = await self._ledger.get_balance(fan_id)
        if balance <= 0:
            raise InsufficientTokenError()

        await self._ensure_user(fan_id)
        await self._ensure_user(creator_id)

        policy = await self.resolver.get_policy(creator_id)
        now = self._local_now(policy)
        is_suspended(policy, on_date)

        start, end = booking_interval(on_date, start_tod, end_tod)
        validate_duration(start, end, policy)

        _require_hours(policy)
        if is_within_offline_hours(
            on_date, start_tod, end_tod, policy.default_working_hours, policy.after_hours
        ):
            raise BookingWithinOfflineHoursError(
                f"The booking falls within offline hours for creator ID: {creator_id}"
            )

        version = await self._read_booking_version(creator_id)
        if not await self._is_available(policy, start, end, recurrence_rule, now):
            raise UnavailableTimeSlotError()

        breakdown = calculate_price(on_date, start_tod, end_tod, policy)
        if breakdown.total_price <= 0:
            raise InvalidPriceBreakdownError(
                f"Invalid price breakdown for creator ID: {creator_id}"
            )
        if balance < breakdown.total_price:
            raise InsufficientTokenError("You do not have enough tokens to complete the booking.")

        booking = Booking(
            booking_id=self._id_factory(),
            fan_id=fan_id,
            creator_id=creator_id,
            start_time=start,
            end_time=end,
            timezone=policy.timezone or self._config.policy.timezone,
            status=BookingStatus.NEGOTIATION if negotiation_phase else BookingStatus.PENDING,
            negotiation_phase=bool(negotiation_phase),
            default_fee=breakdown.regular_price,
            surcharge_fee=breakdown.surcharge_price,
            recurrence_rule=recurrence_rule,
            initial_token_charge=initial_token_charge if isinstance(initial_token_charge, list) else [],
            created_at=self._clock(),
        )
        self._audit(booking, "created", fan_id, status=booking.status.value)

        await self._claim_booking_version(creator_id, version)
        try:
            await self._store.put_item(
                BOOKINGS, booking.booking_id, booking.to_storage(), expected={"booking_id": None}
            )
        except ConditionFailedError:
            raise BookingInsertionFailedError(
                f"Failed to insert booking for fan ID: {fan_id} and creator ID: {creator_id}"
            ) from None

        logger.info(
            "Booking %s created: fan %s, creator %s, %s-%s, total %s",
            booking.booking_id, fan_id, creator_id, start, end, breakdown.total_price,
        )
        await self._notify(booking, "success_booking")
        return {
            "booking_id": booking.booking_id,
            "status": booking.status.value,
            "price": breakdown.model_dump(),
            "booking": booking.to_storage(),
        }

    @boundary("checking availability")
    async def is_requested_time_available(
        self,
        creator_id: str,
        requested_start: Union[str, datetime],
        requested_end: Union[str, datetime],
        recurrence_rule: Optional[str] = None,
    ) -> dict[str, Any]:
        """Placement, conflict and recurrence check for ``[start, end]``."""
        if not creator_id or not requested_start or not requested_end:
            raise MissingRequiredFieldsError()
        start = _parse_request_datetime(requested_start)
        end = _parse_request_datetime(requested_end)
        if end <= start:
            end += timedelta(days=1)

        policy = await self.resolver.get_policy(str(creator_id))
        available = await self._is_available(
            policy, start, end, sanitize_text_field(recurrence_rule) or None,
            self._local_now(policy),
        )
        return {"creator_id": policy.creator_id, "available": available}

    @boundary("calculating the price")
    async def quote_price(
        self,
        creator_id: str,
        booking_date: Union[str, date],
        booking_start: Union[str, time],
        booking_end: Union[str, time],
    ) -> dict[str, Any]:
        if not all([creator_id, booking_date, booking_start, booking_end]):
            raise MissingRequiredFieldsError()
        policy = await self.resolver.get_policy(str(creator_id))
        breakdown = calculate_price(
            _parse_request_date(booking_date),
            _parse_request_time(booking_start),
            _parse_request_time(booking_end),
            policy,
        )
        return {
            **breakdown.model_dump(),
            "cross_over": breakdown.regular_minutes > 0 and breakdown.after_hours_minutes > 0,
        }

    @boundary("resolving effective hours")
    async def resolve_effective_hours(self, creator_id: str) -> dict[str, Any]:
        policy = await self.resolver.get_policy(str(creator_id))
        _require_hours(policy)
        return {"windows": _windows_payload(resolve_effective_hours(policy))}

    @boundary("resolving offline hours")
    async def get_offline_hours(self, creator_id: str) -> dict[str, Any]:
        policy = await self.resolver.get_policy(str(creator_id))
        _require_hours(policy)
        return {"windows": _windows_payload(offline_hours(policy))}

    # ------------------------------------------------------------------
    # Rescheduling
    # ------------------------------------------------------------------

    @boundary("rescheduling the booking")
    async def reschedule_booking(
        self,
        creator_id: str,
        booking_id: str,
        reschedule_type: str,
        new_date: Optional[Union[str, date]] = None,
        new_time: Optional[Union[str, time]] = None,
    ) -> dict[str, Any]:
        """
        Move a booking, keeping its duration.

        ``partial`` changes the time of day on the same date; ``full``
        changes both date and time. The new interval goes through the same
        suspension, duration, offline-hours and availability checks as a
        new booking, ignoring the booking being moved, and is repriced.
        """
        if not creator_id or not booking_id or not reschedule_type:
            raise MissingRequiredFieldsError()
        creator_id = str(creator_id)
        reschedule_type = str(reschedule_type).strip()

        booking = await self._load_booking(booking_id)
        if booking.creator_id != creator_id:
            raise BookingNotFoundError(
                f"Booking {booking_id} not found for creator ID: {creator_id}"
            )
        policy = await self.resolver.get_policy(creator_id)
        now = self._local_now(policy)
        duration = booking.end_time - booking.start_time

        if reschedule_type == "partial" and new_time:
            new_start = datetime.combine(booking.start_time.date(), _parse_request_time(new_time))
        elif reschedule_type == "full" and new_date and new_time:
            new_start = datetime.combine(
                _parse_request_date(new_date), _parse_request_time(new_time)
            )
        else:
            raise InvalidRescheduleTypeError()
        new_end = new_start + duration

        previous = booking.status
        validate_transition(previous, BookingStatus.RESCHEDULED)

        on_date, start_tod, end_tod = new_start.date(), new_start.time(), new_end.time()
        is_suspended(policy, on_date)
        validate_duration(new_start, new_end, policy)
        _require_hours(policy)
        if is_within_offline_hours(
            on_date, start_tod, end_tod, policy.default_working_hours, policy.after_hours
        ):
            raise BookingWithinOfflineHoursError(
                f"The new time falls within offline hours for creator ID: {creator_id}"
            )

        version = await self._read_booking_version(creator_id)
        if not await self._is_available(
            policy, new_start, new_end, booking.recurrence_rule, now,
            exclude_booking_id=booking.booking_id,
        ):
            raise UnavailableTimeSlotError()

        breakdown = calculate_price(on_date, start_tod, end_tod, policy)
        if breakdown.total_price <= 0:
            raise InvalidPriceBreakdownError(
                f"Invalid price breakdown for creator ID: {creator_id}"
            )

        booking.status = BookingStatus.RESCHEDULED
        booking.start_time, booking.end_time = new_start, new_end
        booking.default_fee = breakdown.regular_price
        booking.surcharge_fee = breakdown.surcharge_price
        self._audit(
            booking, "rescheduled", creator_id,
            reschedule_type=reschedule_type,
            previous_status=previous.value,
            start_time=new_start.isoformat(),
            end_time=new_end.isoformat(),
            total_price=breakdown.total_price,
        )
        await self._claim_booking_version(creator_id, version)
        await self._save_booking(booking)
        logger.info("Booking %s rescheduled (%s) to %s", booking.booking_id, reschedule_type, new_start)
        await self._notify(booking, "success_reschedule")
        return {
            "booking_id": booking.booking_id,
            "price": breakdown.model_dump(),
            "booking": booking.to_storage(),
        }

    @boundary("requesting a reschedule")
    async def request_reschedule(
        self, creator_id: str, booking_id: str, percent_base: float
    ) -> dict[str, Any]:
        """Log a reschedule request covering ``percent_base`` percent of the session."""
        if not creator_id or not booking_id or not percent_base:
            raise MissingRequiredFieldsError()
        policy = await self.resolver.get_policy(str(creator_id))
        booking = await self._load_booking(booking_id)

        request = {
            "percent_base": float(percent_base),
            "request_time": self._local_now(policy).isoformat(sep=" ", timespec="seconds"),
        }
        booking.reschedule_history.append(request)
        self._audit(booking, "request_reschedule", creator_id, percent_base=float(percent_base))
        await self._save_booking(booking)
        await self._notify(booking, "request_reschedule")
        return {"booking_id": booking.booking_id, "request": request}

    @boundary("accepting the reschedule")
    async def accept_reschedule(self, booking_id: str, actor: str = "fan") -> dict[str, Any]:
        booking = await self._change_status(
            booking_id, BookingStatus.RESCHEDULED, "accept_reschedule", actor,
            condition="approve_reschedule",
        )
        return {"booking_id": booking.booking_id, "status": booking.status.value}

    @boundary("declining the reschedule")
    async def decline_reschedule(
        self, creator_id: str, booking_id: str, reason: str
    ) -> dict[str, Any]:
        reason = sanitize_text_field(reason)
        if not creator_id or not booking_id or not reason:
            raise MissingRequiredFieldsError()
        policy = await self.resolver.get_policy(str(creator_id))
        booking = await self._load_booking(booking_id)

        previous = booking.status
        booking.status = validate_transition(previous, BookingStatus.DECLINED)
        booking.reschedule_history.append({
            "decline_reason": reason,
            "decline_time": self._local_now(policy).isoformat(sep=" ", timespec="seconds"),
        })
        self._audit(
            booking, "decline_reschedule", creator_id,
            reason=reason, previous_status=previous.value,
        )
        await self._save_booking(booking)
        await self._notify(booking, "decline_reschedule")
        return {"booking_id": booking.booking_id, "status": booking.status.value}

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    @boundary("cancelling the booking")
    async def cancel_booking(self, booking_id: str, actor: str = "fan") -> dict[str, Any]:
        booking = await self._change_status(
            booking_id, BookingStatus.CANCELLED, "cancelled", actor, condition="cancel_booking"
        )
        return {"booking_id": booking.booking_id, "status": booking.status.value}

    @boundary("updating the booking status")
    async def update_booking_status(
        self, booking_id: str, new_status: str, actor: str = "system"
    ) -> dict[str, Any]:
        try:
            target = BookingStatus(str(new_status).strip())
        except ValueError:
            raise InvalidStatusTransitionError(f"Unknown booking status: {new_status!r}") from None
        booking = await self._change_status(booking_id, target, "status_changed", actor)
        return {"booking_id": booking.booking_id, "status": booking.status.value}

    @boundary("registering the ready state")
    async def register_ready_state(self, booking_id: str, user_type: str) -> dict[str, Any]:
        """Record that the fan or creator is ready to start the session."""
        if user_type not in (Party.FAN.value, Party.CREATOR.value):
            raise MissingRequiredFieldsError("user_type must be 'fan' or 'creator'.")
        booking = await self._load_booking(booking_id)

        party = Party(user_type)
        if booking.ready_by not in (None, party):
            party = Party.BOTH
        booking.ready_by = party
        booking.ready_state_time = self._local_now(
            await self.resolver.get_policy(booking.creator_id)
        )
        self._audit(booking, "ready_state", user_type, ready_by=party.value)
        await self._save_booking(booking)
        return {
            "booking_id": booking.booking_id,
            "ready_by": party.value,
            "ready_state_time": booking.ready_state_time.isoformat(sep=" ", timespec="seconds"),
        }

    @boundary("registering the missed booking")
    async def register_missed_booking(self, booking_id: str, missed_by: str) -> dict[str, Any]:
        """
        Mark a booking as a no-show.

        A creator miss increments the creator's no-show count; a fan miss
        releases the fan's deposit tokens; ``both`` does both.
        """
        try:
            party = Party(sanitize_text_field(missed_by))
        except ValueError:
            raise InvalidMissedByError() from None
        booking = await self._load_booking(booking_id)
        return await self._register_missed(booking, party)

    @boundary("handling the no-show")
    async def handle_no_show(self, booking_id: str) -> dict[str, Any]:
        """
        Register whichever party did not mark ready in time as missed.

        A party is on time when ``ready_by`` covers it and the ready mark
        is no later than the start plus the configured grace period. Nothing
        is registered before that deadline has passed in the creator's
        timezone, or when the booking is already recorded as a no-show.
        """
        booking = await self._load_booking(booking_id)
        if booking.call_status == "no_show":
            logger.info("Booking %s already registered as missed", booking.booking_id)
            return {
                "booking_id": booking.booking_id,
                "missed_by": booking.missed_by.value if booking.missed_by else None,
                "status": booking.status.value,
                "already_registered": True,
            }

        deadline = booking.start_time + timedelta(
            minutes=self._config.suspension.ready_grace_minutes
        )
        policy = await self.resolver.get_policy(booking.creator_id)
        if self._local_now(policy) < deadline:
            logger.debug("Ready deadline for booking %s not reached yet", booking.booking_id)
            return {"booking_id": booking.booking_id, "missed_by": None, "pending": True}

        on_time: set[Party] = set()
        if booking.ready_by and booking.ready_state_time and booking.ready_state_time <= deadline:
            if booking.ready_by == Party.BOTH:
                on_time = {Party.FAN, Party.CREATOR}
            else:
                on_time = {booking.ready_by}

        late = [party for party in (Party.FAN, Party.CREATOR) if party not in on_time]
        if not late:
            return {"booking_id": booking.booking_id, "missed_by": None}

        missed_by = Party.BOTH if len(late) == 2 else late[0]
        result = await self._register_missed(booking, missed_by)
        if missed_by in (Party.CREATOR, Party.BOTH):
            result["creator_suspension"] = await self._handle_creator_suspension(
                booking.creator_id
            )
        return result

    @boundary("checking the creator suspension")
    async def handle_creator_suspension(self, creator_id: str) -> dict[str, Any]:
        if not creator_id:
            raise MissingRequiredFieldsError()
        return await self._handle_creator_suspension(str(creator_id))

    # ------------------------------------------------------------------
    # Admin notes
    # ------------------------------------------------------------------

    @boundary("adding the admin note")
    async def add_admin_note(self, booking_id: str, note: str) -> dict[str, Any]:
        note = sanitize_text_field(note)
        if not booking_id or not note:
            raise MissingRequiredFieldsError()
        booking = await self._load_booking(booking_id)
        booking.admin_notes.append(AdminNote(at=self._clock(), note=note))
        self._audit(booking, "add_admin_note", "admin")
        await self._save_booking(booking)
        return {"booking_id": booking.booking_id, "note_index": len(booking.admin_notes) - 1}

    @boundary("editing the admin note")
    async def edit_admin_note(
        self, booking_id: str, note_index: int, new_note: str
    ) -> dict[str, Any]:
        new_note = sanitize_text_field(new_note)
        if not booking_id or note_index is None or not new_note:
            raise MissingRequiredFieldsError()
        booking = await self._load_booking(booking_id)
        index = int(note_index)
        if index < 0 or index >= len(booking.admin_notes):
            raise AdminNoteNotFoundError(f"No admin note at index {index}.")
        booking.admin_notes[index] = AdminNote(at=self._clock(), note=new_note)
        self._audit(booking, "edit_admin_note", "admin", index=index)
        await self._save_booking(booking)
        return {"booking_id": booking.booking_id, "note_index": index}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @boundary("retrieving the booking")
    async def get_booking_details(self, booking_id: str) -> dict[str, Any]:
        booking = await self._load_booking(booking_id)
        return booking.to_storage()

    @boundary("retrieving the booking status")
    async def get_booking_status(self, booking_id: str) -> dict[str, Any]:
        booking = await self._load_booking(booking_id)
        return {"booking_id": booking.booking_id, "status": booking.status.value}

    async def _bookings_for_user(self, user_id: str) -> list[Booking]:
        as_fan, as_creator = await asyncio.gather(
            self._store.query(BOOKINGS, "fan_id", user_id),
            self._store.query(BOOKINGS, "creator_id", user_id),
        )
        rows = {row["booking_id"]: row for row in [*as_fan, *as_creator]}
        bookings = [Booking.model_validate(row) for row in rows.values()]
        return sorted(bookings, key=lambda b: b.start_time)

    @boundary("retrieving user bookings")
    async def get_user_bookings(self, user_id: str) -> dict[str, Any]:
        """Bookings where the user is the fan or the creator, by start time."""
        if not user_id:
            raise MissingRequiredFieldsError("User ID is required.")
        bookings = await self._bookings_for_user(str(user_id))
        return {"bookings": [b.to_storage() for b in bookings]}

    @boundary("retrieving upcoming bookings")
    async def get_upcoming_bookings(
        self, user_id: str, window_minutes: Optional[int] = None
    ) -> dict[str, Any]:
        """
        Pending and confirmed bookings starting within the next ``window_minutes``.

        Recurring bookings count when any occurrence starts inside the window.
        """
        if not user_id:
            raise MissingRequiredFieldsError("User ID is required.")
        window = timedelta(
            minutes=int(window_minutes or self._config.availability.upcoming_window_minutes)
        )

        upcoming = []
        for booking in await self._bookings_for_user(str(user_id)):
            if booking.status not in BLOCKING_STATUSES:
                continue
            now = local_now(get_zone(booking.timezone, booking.creator_id), self._clock())
            window_end = now + window
            if now <= booking.start_time <= window_end:
                upcoming.append(booking)
            elif booking.recurrence_rule and has_occurrence_between(
                booking.recurrence_rule, booking.start_time, now, window_end
            ):
                upcoming.append(booking)
        return {"bookings": [b.to_storage() for b in upcoming]}

    # ------------------------------------------------------------------
    # Suspensions
    # ------------------------------------------------------------------

    @boundary("adding the suspension period")
    async def add_suspension_period(
        self,
        creator_id: str,
        start_date: Union[str, date],
        end_date: Union[str, date],
        no_show_booking_ids: Optional[list[str]] = None,
        status: str = SuspensionStatus.ACTIVE.value,
    ) -> dict[str, Any]:
        if not creator_id or not start_date or not end_date:
            raise MissingRequiredFieldsError()
        try:
            suspension_status = SuspensionStatus(status)
        except ValueError:
            raise MissingRequiredFieldsError(f"Unknown suspension status: {status!r}") from None
        suspension = await self.suspensions.add_suspension_period(
            str(creator_id),
            _parse_request_date(start_date),
            _parse_request_date(end_date),
            no_show_booking_ids,
            suspension_status,
        )
        return {"suspension": suspension.model_dump(mode="json", exclude_none=True)}

    @boundary("lifting expired suspensions")
    async def lift_expired_suspensions(
        self, creator_id: str, today: Optional[Union[str, date]] = None
    ) -> dict[str, Any]:
        if not creator_id:
            raise MissingRequiredFieldsError()
        creator_id = str(creator_id)
        if today is None:
            today = self._local_now(await self.resolver.get_policy(creator_id)).date()
        lifted = await self.suspensions.lift_expired_suspensions(
            creator_id, _parse_request_date(today)
        )
        return {"lifted": lifted}

    @boundary("revoking the suspension")
    async def revoke_suspension(
        self, creator_id: str, on_date: Optional[Union[str, date]] = None
    ) -> dict[str, Any]:
        if not creator_id:
            raise MissingRequiredFieldsError()
        creator_id = str(creator_id)
        if on_date is None:
            on_date = self._local_now(await self.resolver.get_policy(creator_id)).date()
        revoked = await self.suspensions.revoke_suspension(
            creator_id, _parse_request_date(on_date)
        )
        return {"revoked": revoked}

    @boundary("checking suspensions")
    async def is_suspended(self, creator_id: str, on_date: Union[str, date]) -> dict[str, Any]:
        if not creator_id or not on_date:
            raise MissingRequiredFieldsError()
        policy = await self.resolver.get_policy(str(creator_id))
        resolve_timezone(policy)
        return {"status": is_suspended(policy, _parse_request_date(on_date))}

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @boundary("retrieving booking settings")
    async def get_policy(self, creator_id: str) -> dict[str, Any]:
        policy = await self.resolver.get_policy(str(creator_id) if creator_id else "")
        return policy.to_storage()

    @boundary("updating booking settings")
    async def update_booking_settings(
        self,
        creator_id: str,
        changes: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Merge ``changes`` into the creator's settings.

        ``expected`` maps stored keys to the values the caller last saw; a
        mismatch returns ``settings_conflict`` with the stale ``conflictField``.
        """
        if not creator_id or not isinstance(changes, dict):
            raise MissingRequiredFieldsError()
        creator_id = str(creator_id)
        await self._ensure_user(creator_id)
        policy = await self.resolver.update_policy(creator_id, changes, expected=expected)
        return {"updated": True, "settings": policy.to_storage()}
