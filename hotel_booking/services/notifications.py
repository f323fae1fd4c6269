"""Booking confirmation notifications."""

from typing import Protocol

from hotel_booking.logging import get_logger
from hotel_booking.models.reservation import Reservation

logger = get_logger(__name__)


class BookingNotifier(Protocol):
    """Sends the confirmation for a reservation that just became Success."""

    async def send_booking_confirmation(self, reservation: Reservation) -> None:
        ...


def confirmation_details(reservation: Reservation) -> dict:
    """Stay details included in a confirmation message."""
    return {
        "reference_number": reservation.reference_number,
        "guest_name": reservation.guest_info.full_name,
        "room_type": reservation.room_type,
        "room_count": reservation.room_count,
        "check_in": reservation.check_in.isoformat(),
        "check_out": reservation.check_out.isoformat(),
        "nights": reservation.nights,
        "total_amount": str(reservation.total_amount),
        "currency": reservation.currency,
    }


class LoggingBookingNotifier:
    """Records confirmations in the log; delivery is handled downstream."""

    async def send_booking_confirmation(self, reservation: Reservation) -> None:
        logger.info(
            "booking_confirmation_sent",
            recipient=reservation.guest_info.email,
            **confirmation_details(reservation),
        )
