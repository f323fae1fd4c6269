"""Models package - Pydantic domain models."""

from .analytics import (
    AnalyticsPeriod,
    BookingSummary,
    OccupancyStats,
    ReservationFilter,
    ReservationPage,
    RevenueAnalytics,
    RevenuePoint,
    TopRoomType,
)
from .availability import AvailabilityResult, count_nights
from .payment import PaymentEventPayload, WebhookEnvelope, WebhookPayment
from .reservation import (
    BookingRequest,
    GuestInfo,
    PaymentState,
    Reservation,
    ReservationInput,
    StayRequest,
    can_transition,
)
from .room_type import RoomType, RoomTypeInput, RoomTypeStatus, RoomTypeUpdate

__all__ = [
    "AnalyticsPeriod",
    "BookingSummary",
    "OccupancyStats",
    "ReservationFilter",
    "ReservationPage",
    "RevenueAnalytics",
    "RevenuePoint",
    "TopRoomType",
    "AvailabilityResult",
    "count_nights",
    "PaymentEventPayload",
    "WebhookEnvelope",
    "WebhookPayment",
    "BookingRequest",
    "GuestInfo",
    "PaymentState",
    "Reservation",
    "ReservationInput",
    "StayRequest",
    "can_transition",
    "RoomType",
    "RoomTypeInput",
    "RoomTypeStatus",
    "RoomTypeUpdate",
]
