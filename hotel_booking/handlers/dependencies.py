"""Shared FastAPI dependency providers for the handler layer."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from hotel_booking.api.context import AppContext
from hotel_booking.services.admin import AdminService
from hotel_booking.services.availability import AvailabilityCalculator
from hotel_booking.services.reservation_flow import ReservationFlowService


def get_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking services are not initialized",
        )
    return ctx


def get_availability(ctx: AppContext = Depends(get_context)) -> AvailabilityCalculator:
    return ctx.availability


def get_reservations(ctx: AppContext = Depends(get_context)) -> ReservationFlowService:
    return ctx.reservations


def get_admin(ctx: AppContext = Depends(get_context)) -> AdminService:
    return ctx.admin


def get_identity(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity token used for the admin role check."""
    return x_user_id
