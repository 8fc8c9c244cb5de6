"""
Typed error taxonomy for the booking engine.

Validation failures are raised as ``BookingEngineError`` subclasses inside
the engine and converted to ``{"error": kind, "message": ...}`` payloads at
the public boundary, so callers can branch on the machine-readable kind.
Infrastructure failures (``StorageError``) never reach callers as-is; the
boundary reports them as ``internal_error``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Machine-readable error kinds returned across the public boundary."""

    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    USER_NOT_ACTIVE = "user_not_active"
    USER_NOT_FOUND = "user_not_found"
    TIMEZONE_ERROR = "timezone_error"
    SUSPENSIONS_FOUND = "suspensions_found"
    INVALID_BOOKING_DURATION = "invalid_booking_duration"
    BOOKING_WITHIN_OFFLINE_HOURS = "booking_within_offline_hours"
    UNAVAILABLE_TIME_SLOT = "unavailable_time_slot"
    MISSING_BOOKING_SETTINGS = "missing_booking_settings"
    BOOKING_SETTING_NOT_FOUND = "booking_setting_not_found"
    MISSING_TOKEN_PRICE_FIELDS = "missing_token_price_fields"
    INVALID_PRICE_BREAKDOWN = "invalid_price_breakdown"
    INSUFFICIENT_TOKEN = "insufficient_token"
    BOOKING_INSERTION_FAILED = "booking_insertion_failed"
    BOOKING_NOT_FOUND = "booking_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    INVALID_RESCHEDULE_TYPE = "invalid_reschedule_type"
    INVALID_RECURRENCE_RULE = "invalid_recurrence_rule"
    INVALID_MISSED_BY = "invalid_missed_by"
    ADMIN_NOTE_NOT_FOUND = "admin_note_not_found"
    SETTINGS_CONFLICT = "settings_conflict"
    INTERNAL_ERROR = "internal_error"


class BookingEngineError(Exception):
    """Base class for every validation failure the engine reports."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    default_message: str = "An internal error occurred."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "message": self.message}


class MissingRequiredFieldsError(BookingEngineError):
    kind = ErrorKind.MISSING_REQUIRED_FIELDS
    default_message = "One or more required fields are missing."


class UserNotActiveError(BookingEngineError):
    kind = ErrorKind.USER_NOT_ACTIVE
    default_message = "User is either inactive or not found."


class UserNotFoundError(BookingEngineError):
    kind = ErrorKind.USER_NOT_FOUND
    default_message = "User not found."


class TimezoneError(BookingEngineError):
    kind = ErrorKind.TIMEZONE_ERROR
    default_message = "Time zone could not be resolved."


class SuspensionsFoundError(BookingEngineError):
    kind = ErrorKind.SUSPENSIONS_FOUND
    default_message = "Bookings are suspended on this date. Please try another date."


class InvalidBookingDurationError(BookingEngineError):
    kind = ErrorKind.INVALID_BOOKING_DURATION
    default_message = (
        "The booking duration does not fall within the allowed minimum and "
        "maximum time limits set by the creator."
    )


class BookingWithinOfflineHoursError(BookingEngineError):
    kind = ErrorKind.BOOKING_WITHIN_OFFLINE_HOURS
    default_message = "The booking falls within offline hours."


class UnavailableTimeSlotError(BookingEngineError):
    kind = ErrorKind.UNAVAILABLE_TIME_SLOT
    default_message = "The requested time slot is not available for the selected creator."


class MissingBookingSettingsError(BookingEngineError):
    kind = ErrorKind.MISSING_BOOKING_SETTINGS
    default_message = "No booking settings found."


class BookingSettingNotFoundError(BookingEngineError):
    kind = ErrorKind.BOOKING_SETTING_NOT_FOUND
    default_message = "Booking settings not found."


class MissingTokenPriceFieldsError(BookingEngineError):
    kind = ErrorKind.MISSING_TOKEN_PRICE_FIELDS
    default_message = "Token price fields are missing in the booking settings."


class InvalidPriceBreakdownError(BookingEngineError):
    kind = ErrorKind.INVALID_PRICE_BREAKDOWN
    default_message = "Invalid price breakdown."


class InsufficientTokenError(BookingEngineError):
    kind = ErrorKind.INSUFFICIENT_TOKEN
    default_message = "You do not have enough tokens to create the booking."


class BookingInsertionFailedError(BookingEngineError):
    kind = ErrorKind.BOOKING_INSERTION_FAILED
    default_message = "Failed to insert booking."


class BookingNotFoundError(BookingEngineError):
    kind = ErrorKind.BOOKING_NOT_FOUND
    default_message = "Booking not found."


class InvalidStatusTransitionError(BookingEngineError):
    kind = ErrorKind.INVALID_STATUS_TRANSITION
    default_message = "The requested status change is not allowed."


class InvalidRescheduleTypeError(BookingEngineError):
    kind = ErrorKind.INVALID_RESCHEDULE_TYPE
    default_message = (
        "Reschedule type must be 'partial' (with a new time) or "
        "'full' (with a new date and time)."
    )


class InvalidRecurrenceRuleError(BookingEngineError):
    kind = ErrorKind.INVALID_RECURRENCE_RULE
    default_message = "The recurrence rule could not be parsed."


class InvalidMissedByError(BookingEngineError):
    kind = ErrorKind.INVALID_MISSED_BY
    default_message = "missed_by must be one of 'fan', 'creator' or 'both'."


class AdminNoteNotFoundError(BookingEngineError):
    kind = ErrorKind.ADMIN_NOTE_NOT_FOUND
    default_message = "Admin note not found."


class SettingsConflictError(BookingEngineError):
    """Optimistic-concurrency rejection of a settings write."""

    kind = ErrorKind.SETTINGS_CONFLICT
    default_message = "Booking settings have changed since you last fetched them. Try again."

    def __init__(self, conflict_field: str, message: Optional[str] = None) -> None:
        self.conflict_field = conflict_field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["conflictField"] = self.conflict_field
        return payload


class StorageError(Exception):
    """Raised by storage backends when the store is unavailable or fails."""


class ConditionFailedError(StorageError):
    """Raised when a conditional write finds an unexpected stored value."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Conditional check failed on '{field}'")


def internal_error(message: str = "An internal error occurred.") -> dict[str, Any]:
    """Build the generic infrastructure-failure payload."""
    return {"error": ErrorKind.INTERNAL_ERROR.value, "message": message}
