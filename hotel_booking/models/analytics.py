"""Admin listing filters and analytics models."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from hotel_booking.models.reservation import PaymentState, Reservation


class AnalyticsPeriod(str, Enum):
    """Look-back window for analytics queries."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class ReservationFilter(BaseModel):
    """Admin reservation listing filter."""

    status: Optional[PaymentState] = None
    search: Optional[str] = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ReservationPage(BaseModel):
    """One page of reservations with pagination metadata."""

    data: list[Reservation]
    total: int
    page: int
    limit: int
    pages: int


class BookingSummary(BaseModel):
    """Reservation counts by payment state plus revenue."""

    total_bookings: int = 0
    successful_bookings: int = 0
    failed_bookings: int = 0
    pending_bookings: int = 0
    refunded_bookings: int = 0
    total_revenue: Decimal = Decimal("0")


class RevenuePoint(BaseModel):
    day: date
    revenue: Decimal


class RevenueAnalytics(BaseModel):
    total_revenue: Decimal
    booking_count: int
    chart_data: list[RevenuePoint]


class OccupancyStats(BaseModel):
    """Booked (Success) units against total capacity."""

    occupancy_rate: float
    total_capacity: int
    occupied_rooms: int
    available_rooms: int


class TopRoomType(BaseModel):
    room_type: str
    bookings: int
    revenue: Decimal
