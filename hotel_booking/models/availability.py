"""Availability result model and stay pricing helpers."""

import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

ONE_DAY = timedelta(days=1)


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """Billable nights: ceil of the interval in days, at least one."""
    return max(1, math.ceil((check_out - check_in) / ONE_DAY))


class AvailabilityResult(BaseModel):
    """Free capacity of a room type over a half-open interval."""

    room_type: str
    check_in: datetime
    check_out: datetime
    capacity: int = Field(ge=0)
    booked_units: int = Field(ge=0)
    available_units: int = Field(description="capacity - booked_units; may be negative")
    price_per_night: Decimal = Field(ge=0)
    nights: int = Field(ge=1)
    reason: Optional[str] = Field(default=None, description="Why the room type is unbookable")

    @property
    def display_units(self) -> int:
        """Available units clamped at zero for display."""
        return max(0, self.available_units)

    def is_available(self, requested_units: int) -> bool:
        """Check whether ``requested_units`` can be booked."""
        if requested_units < 1 or self.reason is not None:
            return False
        return self.available_units >= requested_units

    def total_price(self, requested_units: int) -> Decimal:
        """Stay price: rate x units x nights."""
        return self.price_per_night * requested_units * self.nights

    def message(self, requested_units: int) -> str:
        """Human-readable summary for the requested unit count."""
        if self.reason is not None:
            return self.reason
        if self.is_available(requested_units):
            return f"Success: {self.display_units} room(s) available."
        return f"Conflict: Only {self.display_units} room(s) available."

    def to_dict(self, requested_units: int) -> dict:
        """Serialize for a response body."""
        available = self.is_available(requested_units)
        return {
            "room_type": self.room_type,
            "is_available": available,
            "available_units": self.display_units,
            "price_per_night": str(self.price_per_night),
            "nights": self.nights,
            "total_amount": str(self.total_price(requested_units)) if available else "0",
            "message": self.message(requested_units),
        }
