"""Creator booking policy models with explicit per-field coercion rules.

Stored settings documents use the original snake_case keys
(``min_booking_time``, ``after_hour_token_price_per_minute`` ...). Each
model field carries that key as its alias, so documents load directly and
``to_storage()`` writes them back in the same shape.
"""

from datetime import date, time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils import parse_date, parse_time_of_day, sanitize_text_field

INT_FIELDS = (
    "min_booking_minutes",
    "max_booking_minutes",
    "booking_window_minutes",
    "default_rate_per_minute",
    "surcharge_rate_per_minute",
    "min_charge",
    "no_show_count",
)
BOOL_FIELDS = (
    "advance_booking_enabled",
    "instant_booking_enabled",
    "negotiation_phase_enabled",
    "after_hour_surcharge_enabled",
)
STRING_FIELDS = ("timezone", "activity_status")
HOUR_FIELDS = ("default_working_hours", "after_hours")

_TRUTHY = (True, "true", 1, "1")


def coerce_int(value: Any) -> int:
    """Integer coercion: unparseable or empty input becomes 0."""
    if value is None or isinstance(value, bool):
        return int(bool(value))
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def coerce_bool(value: Any) -> bool:
    """Boolean coercion: only True, "true", 1 and "1" are truthy."""
    return any(value == truthy and type(value) is type(truthy) for truthy in _TRUTHY)


class SuspensionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENSION_LIFTED = "suspension_lifted"


class TimeWindow(BaseModel):
    """A time-of-day interval; ``end`` earlier than ``start`` wraps past midnight."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> time:
        return parse_time_of_day(value)

    @property
    def wraps(self) -> bool:
        return self.end < self.start


class Suspension(BaseModel):
    """A date range (inclusive) during which new bookings are refused."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: date
    end_date: date
    status: SuspensionStatus = SuspensionStatus.ACTIVE
    no_show_booking_ids: Optional[list[str]] = Field(
        default=None, alias="no_shows_booking_ids"
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> date:
        return parse_date(value)

    def contains(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


class BookingPolicy(BaseModel):
    """Per-creator booking policy as stored in the settings collection."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    creator_id: str = Field(default="", alias="id")
    timezone: str = ""
    activity_status: str = "active"
    default_working_hours: Optional[TimeWindow] = None
    after_hours: Optional[TimeWindow] = None
    min_booking_minutes: int = Field(default=0, alias="min_booking_time")
    max_booking_minutes: int = Field(default=0, alias="max_booking_time")
    booking_buffer_minutes: Optional[int] = Field(default=None, alias="booking_buffer")
    booking_window_minutes: int = Field(default=0, alias="booking_window_in_minutes")
    default_rate_per_minute: int = Field(
        default=0, alias="default_working_hour_token_price_per_minute"
    )
    surcharge_rate_per_minute: int = Field(
        default=0, alias="after_hour_token_price_per_minute"
    )
    min_charge: int = 0
    suspensions: list[Suspension] = Field(default_factory=list)
    no_show_count: int = 0
    advance_booking_enabled: bool = Field(default=False, alias="advance_booking")
    instant_booking_enabled: bool = Field(default=False, alias="instant_booking")
    negotiation_phase_enabled: bool = Field(default=False, alias="negotiation_phase")
    after_hour_surcharge_enabled: bool = Field(default=False, alias="after_hour_surcharge")

    @field_validator("creator_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator(*INT_FIELDS, mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        return coerce_int(value)

    @field_validator("booking_buffer_minutes", mode="before")
    @classmethod
    def _coerce_buffer(cls, value: Any) -> Optional[int]:
        return None if value is None else coerce_int(value)

    @field_validator(*BOOL_FIELDS, mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        return coerce_bool(value)

    @field_validator(*STRING_FIELDS, mode="before")
    @classmethod
    def _coerce_string(cls, value: Any) -> str:
        return sanitize_text_field(value)

    @field_validator("suspensions", mode="before")
    @classmethod
    def _coerce_suspensions(cls, value: Any) -> list:
        return value if isinstance(value, list) else []

    @field_validator(*HOUR_FIELDS, mode="before")
    @classmethod
    def _coerce_hours(cls, value: Any) -> Any:
        if isinstance(value, TimeWindow):
            return value
        if isinstance(value, dict) and "start" in value and "end" in value:
            return value
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return {"start": value[0], "end": value[1]}
        return None

    def has_hours(self) -> bool:
        return self.default_working_hours is not None and self.after_hours is not None

    def has_price_fields(self) -> bool:
        return self.default_rate_per_minute > 0 and self.surcharge_rate_per_minute > 0

    def to_storage(self) -> dict[str, Any]:
        """Serialize with the stored key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Keys accepted by settings updates, mapped storage-key -> field name.
SETTINGS_KEYS: dict[str, str] = {
    (info.alias or name): name
    for name, info in BookingPolicy.model_fields.items()
    if name != "creator_id"
}
