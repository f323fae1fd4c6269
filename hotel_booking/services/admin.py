"""Administrative operations: inventory, reservation management, analytics.

Every public method takes the caller identity first and checks the admin
role before touching storage.
"""

import calendar
import math
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from hotel_booking.errors import BookingValidationError, ReservationNotFound, RoomTypeNotFound
from hotel_booking.logging import get_logger
from hotel_booking.logging.audit import AuditEventType, AuditLogger
from hotel_booking.models.analytics import (
    AnalyticsPeriod,
    BookingSummary,
    OccupancyStats,
    ReservationFilter,
    ReservationPage,
    RevenueAnalytics,
    RevenuePoint,
    TopRoomType,
)
from hotel_booking.models.clock import utcnow
from hotel_booking.models.reservation import PaymentState, Reservation
from hotel_booking.models.room_type import RoomType, RoomTypeInput, RoomTypeStatus, RoomTypeUpdate
from hotel_booking.security.permissions import Permission, PermissionChecker
from hotel_booking.storage.unit_of_work import UnitOfWorkFactory

logger = get_logger(__name__)

TOP_ROOM_TYPES = 5


def _months_back(moment: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` earlier, clamped to the month's length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: AnalyticsPeriod, now: datetime) -> datetime:
    """Start of the look-back window ending at ``now``."""
    if period == AnalyticsPeriod.WEEK:
        return now - timedelta(days=7)
    if period == AnalyticsPeriod.MONTH:
        return _months_back(now, 1)
    if period == AnalyticsPeriod.QUARTER:
        return _months_back(now, 3)
    return _months_back(now, 12)


class AdminService:
    """Role-gated wrappers around room types and reservations."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        permissions: PermissionChecker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow_factory = uow_factory
        self.permissions = permissions
        self.clock = clock

    # --- Inventory ---

    async def list_room_types(self, actor_id: Optional[str]) -> list[RoomType]:
        self.permissions.require_admin(actor_id, Permission.MANAGE_ROOM_TYPES, "room_type")
        async with self.uow_factory() as uow:
            return await uow.room_types.list_all()

    async def create_room_type(self, actor_id: Optional[str], data: RoomTypeInput) -> RoomType:
        """Create a room type; keys are unique."""
        actor = self.permissions.require_admin(actor_id, Permission.MANAGE_ROOM_TYPES, "room_type")

        async with self.uow_factory() as uow:
            if await uow.room_types.get_by_key(data.room_type) is not None:
                raise BookingValidationError(f"Room type '{data.room_type}' already exists.")
            room = await uow.room_types.create(data)

        AuditLogger.log_room_type_changed(
            AuditEventType.ROOM_TYPE_CREATED,
            actor,
            room.id,
            room.room_type,
            changes=data.model_dump(mode="json"),
        )
        return room

    async def update_room_type(
        self,
        actor_id: Optional[str],
        room_type_id: UUID,
        data: RoomTypeUpdate,
    ) -> RoomType:
        """Apply a partial update. Empty updates are rejected."""
        actor = self.permissions.require_admin(
            actor_id, Permission.MANAGE_ROOM_TYPES, "room_type", str(room_type_id)
        )

        changes = data.changes()
        if not changes:
            raise BookingValidationError("No valid fields provided to update.")

        async with self.uow_factory() as uow:
            if data.room_type is not None:
                existing = await uow.room_types.get_by_key(data.room_type)
                if existing is not None and existing.id != room_type_id:
                    raise BookingValidationError(f"Room type '{data.room_type}' already exists.")

            room = await uow.room_types.update(room_type_id, data)
            if room is None:
                raise RoomTypeNotFound(f"Room type {room_type_id} not found.")

        event_type = (
            AuditEventType.ROOM_TYPE_DEACTIVATED
            if changes.get("status") == RoomTypeStatus.INACTIVE
            else AuditEventType.ROOM_TYPE_UPDATED
        )
        AuditLogger.log_room_type_changed(
            event_type,
            actor,
            room.id,
            room.room_type,
            changes=data.model_dump(mode="json", exclude_unset=True),
        )
        return room

    async def deactivate_room_type(self, actor_id: Optional[str], room_type_id: UUID) -> RoomType:
        """Soft delete: the row stays for historical reservations."""
        return await self.update_room_type(
            actor_id, room_type_id, RoomTypeUpdate(status=RoomTypeStatus.INACTIVE)
        )

    # --- Reservations ---

    async def list_reservations(
        self,
        actor_id: Optional[str],
        filters: ReservationFilter,
    ) -> ReservationPage:
        self.permissions.require_admin(actor_id, Permission.VIEW_RESERVATIONS, "reservation")

        async with self.uow_factory() as uow:
            reservations, total = await uow.reservations.list_filtered(filters)

        return ReservationPage(
            data=reservations,
            total=total,
            page=filters.page,
            limit=filters.limit,
            pages=math.ceil(total / filters.limit),
        )

    async def reservation_details(self, actor_id: Optional[str], lookup: str) -> Reservation:
        """Find a reservation by id or by reference number."""
        self.permissions.require_admin(actor_id, Permission.VIEW_RESERVATIONS, "reservation", lookup)

        async with self.uow_factory() as uow:
            try:
                reservation = await uow.reservations.get_by_id(UUID(lookup))
            except ValueError:
                reservation = await uow.reservations.get_by_reference(lookup)

        if reservation is None:
            raise ReservationNotFound(f"Booking {lookup} not found.")
        return reservation

    async def override_state(
        self,
        actor_id: Optional[str],
        reservation_id: UUID,
        state: str,
    ) -> Reservation:
        """Set any payment state, bypassing the transition table."""
        actor = self.permissions.require_admin(
            actor_id, Permission.OVERRIDE_PAYMENT_STATE, "reservation", str(reservation_id)
        )

        try:
            target = PaymentState(state)
        except ValueError as e:
            raise BookingValidationError(f"Invalid status: {state}") from e

        async with self.uow_factory() as uow:
            current = await uow.reservations.lock_by_id(reservation_id)
            if current is None:
                raise ReservationNotFound(f"Reservation {reservation_id} not found.")
            updated = await uow.reservations.update_state(reservation_id, target)

        logger.warning(
            "payment_state_overridden",
            reservation_id=str(reservation_id),
            previous_state=current.payment_state.value,
            new_state=target.value,
            actor_id=actor,
        )
        AuditLogger.log_state_overridden(
            actor, reservation_id, current.payment_state.value, target.value
        )
        return updated

    # --- Analytics ---

    async def booking_summary(
        self,
        actor_id: Optional[str],
        period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
    ) -> BookingSummary:
        """Counts by payment state and Success revenue for reservations created in the period."""
        self.permissions.require_admin(actor_id, Permission.VIEW_ANALYTICS)
        now = self.clock()

        async with self.uow_factory() as uow:
            reservations = await uow.reservations.list_created_between(period_start(period, now), now)

        counts: dict[PaymentState, int] = defaultdict(int)
        revenue = Decimal("0")
        for r in reservations:
            counts[r.payment_state] += 1
            if r.payment_state == PaymentState.SUCCESS:
                revenue += r.total_amount

        return BookingSummary(
            total_bookings=len(reservations),
            successful_bookings=counts[PaymentState.SUCCESS],
            failed_bookings=counts[PaymentState.FAILED],
            pending_bookings=counts[PaymentState.PENDING],
            refunded_bookings=counts[PaymentState.REFUNDED],
            total_revenue=revenue,
        )

    async def revenue_analytics(
        self,
        actor_id: Optional[str],
        period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
    ) -> RevenueAnalytics:
        """Success revenue grouped by creation day."""
        self.permissions.require_admin(actor_id, Permission.VIEW_ANALYTICS)
        now = self.clock()

        async with self.uow_factory() as uow:
            reservations = await uow.reservations.list_created_between(
                period_start(period, now), now, state=PaymentState.SUCCESS
            )

        by_day: dict = {}
        for r in reservations:
            day = r.created_at.date()
            by_day[day] = by_day.get(day, Decimal("0")) + r.total_amount

        return RevenueAnalytics(
            total_revenue=sum((r.total_amount for r in reservations), Decimal("0")),
            booking_count=len(reservations),
            chart_data=[RevenuePoint(day=day, revenue=amount) for day, amount in sorted(by_day.items())],
        )

    async def occupancy(self, actor_id: Optional[str]) -> OccupancyStats:
        """Units held by Success reservations against total capacity."""
        self.permissions.require_admin(actor_id, Permission.VIEW_ANALYTICS)

        async with self.uow_factory() as uow:
            rooms = await uow.room_types.list_all()
            confirmed = await uow.reservations.list_by_state(PaymentState.SUCCESS)

        total_capacity = sum(room.total_rooms for room in rooms)
        occupied = sum(r.room_count for r in confirmed)
        rate = (occupied / total_capacity) * 100 if total_capacity > 0 else 0.0

        return OccupancyStats(
            occupancy_rate=round(rate, 2),
            total_capacity=total_capacity,
            occupied_rooms=occupied,
            available_rooms=total_capacity - occupied,
        )

    async def top_room_types(self, actor_id: Optional[str]) -> list[TopRoomType]:
        """Room types ranked by number of Success reservations."""
        self.permissions.require_admin(actor_id, Permission.VIEW_ANALYTICS)

        async with self.uow_factory() as uow:
            confirmed = await uow.reservations.list_by_state(PaymentState.SUCCESS)

        bookings: dict[str, int] = defaultdict(int)
        revenue: dict[str, Decimal] = defaultdict(Decimal)
        for r in confirmed:
            bookings[r.room_type] += 1
            revenue[r.room_type] += r.total_amount

        ranked = sorted(bookings, key=lambda key: (-bookings[key], key))
        return [
            TopRoomType(room_type=key, bookings=bookings[key], revenue=revenue[key])
            for key in ranked[:TOP_ROOM_TYPES]
        ]
