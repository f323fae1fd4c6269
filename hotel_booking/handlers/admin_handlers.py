"""Admin handlers: room type inventory, reservation management, analytics.

The caller identity comes from the ``X-User-Id`` header; the admin
service performs the role check.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from hotel_booking.handlers import ok
from hotel_booking.handlers.dependencies import get_admin, get_identity
from hotel_booking.models.analytics import AnalyticsPeriod, ReservationFilter
from hotel_booking.models.room_type import RoomTypeInput, RoomTypeUpdate
from hotel_booking.services.admin import AdminService

router = APIRouter(prefix="/api/admin", tags=["admin"])

ALL_STATUSES = "All"


class StatusOverrideBody(BaseModel):
    status: str


@router.get("/inventory/room-types")
async def list_room_types(
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    rooms = await admin.list_room_types(identity)
    return ok(rooms)


@router.post("/inventory/room-types", status_code=status.HTTP_201_CREATED)
async def create_room_type(
    data: RoomTypeInput,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    room = await admin.create_room_type(identity, data)
    return ok(room, message="Room type created successfully.")


@router.put("/inventory/room-types/{room_type_id}")
async def update_room_type(
    room_type_id: UUID,
    data: RoomTypeUpdate,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    room = await admin.update_room_type(identity, room_type_id, data)
    return ok(room, message="Room type updated successfully.")


@router.delete("/inventory/room-types/{room_type_id}")
async def deactivate_room_type(
    room_type_id: UUID,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    room = await admin.deactivate_room_type(identity, room_type_id)
    return ok(room, message="Room type deactivated successfully.")


@router.get("/bookings")
async def list_reservations(
    request: Request,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    """Query: status (or "All"), search, page, limit."""
    query = dict(request.query_params)
    if query.get("status") in (None, "", ALL_STATUSES):
        query.pop("status", None)
    filters = ReservationFilter.model_validate(query)
    page = await admin.list_reservations(identity, filters)
    return ok(page)


@router.get("/bookings/{lookup}")
async def reservation_details(
    lookup: str,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    """``lookup`` is a reservation id or a reference number."""
    reservation = await admin.reservation_details(identity, lookup)
    return ok(reservation)


@router.put("/bookings/{reservation_id}/status")
async def override_reservation_state(
    reservation_id: UUID,
    body: StatusOverrideBody,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    reservation = await admin.override_state(identity, reservation_id, body.status)
    return ok(reservation, message="Booking status updated.")


@router.get("/analytics")
async def booking_analytics(
    period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    summary = await admin.booking_summary(identity, period)
    return ok(summary)


@router.get("/analytics/revenue")
async def revenue_analytics(
    period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    revenue = await admin.revenue_analytics(identity, period)
    return ok(revenue)


@router.get("/analytics/occupancy")
async def occupancy_stats(
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    stats = await admin.occupancy(identity)
    return ok(stats)


@router.get("/analytics/top-rooms")
async def top_room_types(
    identity: Optional[str] = Depends(get_identity),
    admin: AdminService = Depends(get_admin),
) -> dict[str, Any]:
    top = await admin.top_room_types(identity)
    return ok(top)
