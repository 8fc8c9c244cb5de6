"""Booking, audit trail and pricing data models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    """Lifecycle status of a booking."""

    PENDING = "pending"
    NEGOTIATION = "negotiation"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"
    RESCHEDULED = "rescheduled"
    DECLINED = "declined"


class Party(str, Enum):
    FAN = "fan"
    CREATOR = "creator"
    BOTH = "both"


class AuditEntry(BaseModel):
    """One append-only history record on a booking."""

    at: datetime
    action: str
    actor: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class AdminNote(BaseModel):
    at: datetime
    note: str


class Booking(BaseModel):
    """Booking record stored in the bookings collection."""

    booking_id: str
    fan_id: str
    creator_id: str
    start_time: datetime
    end_time: datetime
    timezone: str
    status: BookingStatus = BookingStatus.PENDING
    negotiation_phase: bool = False
    default_fee: float = 0.0
    surcharge_fee: float = 0.0
    recurrence_rule: Optional[str] = None
    initial_token_charge: list[Any] = Field(default_factory=list)
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    admin_notes: list[AdminNote] = Field(default_factory=list)
    reschedule_history: list[dict[str, Any]] = Field(default_factory=list)
    ready_by: Optional[Party] = None
    ready_state_time: Optional[datetime] = None
    missed_by: Optional[Party] = None
    call_status: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CrossoverResult(BaseModel):
    """Split of a booking's minutes between regular and after-hours rates."""

    regular_minutes: float = 0.0
    after_hours_minutes: float = 0.0

    @property
    def cross_over(self) -> bool:
        return self.regular_minutes > 0 and self.after_hours_minutes > 0


class PriceBreakdown(BaseModel):
    """Derived price of a booking; recomputed on every query."""

    regular_minutes: float
    after_hours_minutes: float
    regular_price: float
    surcharge_price: float
    total_price: float
