"""Guest-facing booking handlers: availability, pre-booking, lookups."""

from datetime import date, datetime, time
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status

from hotel_booking.api.context import AppContext
from hotel_booking.handlers import ok
from hotel_booking.handlers.dependencies import get_availability, get_context, get_reservations
from hotel_booking.logging import get_logger
from hotel_booking.models.reservation import BookingRequest, StayRequest
from hotel_booking.services.availability import AvailabilityCalculator
from hotel_booking.services.reservation_flow import ReservationFlowService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/booking", tags=["booking"])

CREATE_BOOKING_ACTION = "create_booking"


@router.post("/check-availability")
async def check_availability(
    stay: StayRequest,
    availability: AvailabilityCalculator = Depends(get_availability),
) -> dict[str, Any]:
    result = await availability.check(stay)
    return ok(result.to_dict(stay.room_count))


@router.get("/availability-status")
async def availability_status(
    check_in_date: date,
    check_out_date: date,
    check_in_time: Optional[time] = None,
    check_out_time: Optional[time] = None,
    ctx: AppContext = Depends(get_context),
) -> dict[str, Any]:
    """Availability of every active room type.

    Times default to the configured check-in and check-out times.
    """
    settings = ctx.settings
    check_in = datetime.combine(
        check_in_date, check_in_time or time.fromisoformat(settings.default_check_in_time)
    )
    check_out = datetime.combine(
        check_out_date, check_out_time or time.fromisoformat(settings.default_check_out_time)
    )

    results = await ctx.availability.status_for_all(check_in, check_out)

    return ok(
        [
            {
                "room_type": r.room_type,
                "capacity": r.capacity,
                "available_units": r.display_units,
                "price_per_night": str(r.price_per_night),
                "nights": r.nights,
            }
            for r in results
        ]
    )


@router.post("/pre-book", status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking: BookingRequest,
    request: Request,
    ctx: AppContext = Depends(get_context),
) -> dict[str, Any]:
    """Create a Pending reservation that holds capacity for the hold window."""
    if ctx.rate_limiter is not None:
        client_address = request.client.host if request.client else "unknown"
        identity = booking.user_id or booking.guest_info.email or client_address
        await ctx.rate_limiter.enforce(identity, CREATE_BOOKING_ACTION)

    reservation = await ctx.reservations.create_reservation(booking)

    return ok(
        {
            "reservation_id": str(reservation.id),
            "reference_number": reservation.reference_number,
            "payment_state": reservation.payment_state.value,
            "total_amount": str(reservation.total_amount),
            "currency": reservation.currency,
            "nights": reservation.nights,
            "hold_expires_at": (reservation.created_at + ctx.reservations.hold_window).isoformat(),
        },
        message="Booking created. Complete payment to confirm.",
    )


@router.get("/reference/{reference_number}")
async def get_booking_by_reference(
    reference_number: str,
    reservations: ReservationFlowService = Depends(get_reservations),
) -> dict[str, Any]:
    reservation = await reservations.get_by_reference(reference_number)
    return ok(reservation.public_view())


@router.get("/order/{order_id}")
async def get_booking_by_order(
    order_id: str,
    reservations: ReservationFlowService = Depends(get_reservations),
) -> dict[str, Any]:
    reservation = await reservations.get_by_order_id(order_id)
    return ok(reservation.public_view())
