"""Reservation domain model."""

import re
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from hotel_booking.models.availability import count_nights
from hotel_booking.models.clock import utcnow

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PaymentState(str, Enum):
    """Payment state of a reservation."""

    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"
    REFUNDED = "Refunded"


# Business-rule transitions. Admin override bypasses this table.
ALLOWED_TRANSITIONS: dict[PaymentState, frozenset[PaymentState]] = {
    PaymentState.PENDING: frozenset({PaymentState.SUCCESS, PaymentState.FAILED}),
    PaymentState.SUCCESS: frozenset({PaymentState.REFUNDED}),
    PaymentState.FAILED: frozenset(),
    PaymentState.REFUNDED: frozenset(),
}


def can_transition(current: PaymentState, target: PaymentState) -> bool:
    """Check whether a normal (non-override) transition is allowed."""
    return target in ALLOWED_TRANSITIONS[current]


class GuestInfo(BaseModel):
    """Guest contact snapshot copied into the reservation at creation."""

    full_name: str = Field(min_length=2, max_length=200)
    email: str = Field(max_length=254)
    phone: str = Field(min_length=10, max_length=20)
    country: str = Field(min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic address shape check."""
        v = v.strip()
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class StayRequest(BaseModel):
    """Room type, stay interval and party size as submitted by a guest."""

    room_type: str = Field(min_length=1, description="Room type key")
    check_in_date: date
    check_in_time: time
    check_out_date: date
    check_out_time: time
    room_count: int = Field(gt=0, description="Number of units requested")
    adult_count: int = Field(default=1, ge=1)
    child_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_interval(self) -> "StayRequest":
        """Ensure check-out is strictly after check-in."""
        if self.check_out <= self.check_in:
            raise ValueError("Check-out date and time must be after check-in date and time")
        return self

    @property
    def check_in(self) -> datetime:
        return datetime.combine(self.check_in_date, self.check_in_time)

    @property
    def check_out(self) -> datetime:
        return datetime.combine(self.check_out_date, self.check_out_time)


class BookingRequest(StayRequest):
    """Pre-booking request: a stay plus the guest's details."""

    guest_info: GuestInfo
    user_id: Optional[str] = Field(default=None, max_length=64)


class ReservationInput(BaseModel):
    """Input model for reservation persistence.

    ``total_amount`` always comes from the availability calculator, never
    from client input.
    """

    room_type_id: UUID
    room_type: str
    room_count: int = Field(gt=0)
    adult_count: int = Field(default=1, ge=1)
    child_count: int = Field(default=0, ge=0)
    check_in: datetime
    check_out: datetime
    total_amount: Decimal = Field(gt=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    guest_info: GuestInfo
    user_id: Optional[str] = None

    @field_validator("check_out")
    @classmethod
    def validate_interval(cls, v: datetime, info) -> datetime:
        """Ensure check_in < check_out."""
        values = info.data
        if "check_in" in values and v <= values["check_in"]:
            raise ValueError("check_out must be after check_in")
        return v


class Reservation(BaseModel):
    """Reservation entity."""

    id: UUID = Field(default_factory=uuid4)
    reference_number: str = Field(min_length=12, max_length=12, description="Customer-facing reference (e.g., AMC-A3F2B8C1)")
    room_type_id: UUID
    room_type: str
    room_count: int = Field(gt=0)
    adult_count: int = Field(default=1, ge=1)
    child_count: int = Field(default=0, ge=0)
    check_in: datetime
    check_out: datetime
    total_amount: Decimal = Field(ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    guest_info: GuestInfo
    user_id: Optional[str] = None
    payment_state: PaymentState = Field(default=PaymentState.PENDING)
    payment_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def nights(self) -> int:
        return count_nights(self.check_in, self.check_out)

    def public_view(self) -> dict:
        """Fields exposed to customer-facing reference lookups."""
        return {
            "reference_number": self.reference_number,
            "room_type": self.room_type,
            "room_count": self.room_count,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "total_amount": str(self.total_amount),
            "currency": self.currency,
            "payment_state": self.payment_state.value,
            "guest_name": self.guest_info.full_name,
        }
