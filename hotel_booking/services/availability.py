"""Availability calculator.

Computes free units of a room type over a half-open interval
``[check_in, check_out)``. Capacity is held by overlapping reservations
that are ``Success``, or ``Pending`` and younger than the hold window.
Pending reservations past the window drop out on the read path alone:
there is no expired state and no cleanup job.

Hold window boundary: a Pending reservation holds capacity iff
``created_at > now - hold_window``. One created exactly ``hold_window``
ago no longer holds.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

from hotel_booking.errors import BookingValidationError
from hotel_booking.logging import get_logger
from hotel_booking.models.availability import AvailabilityResult, count_nights
from hotel_booking.models.clock import utcnow
from hotel_booking.models.reservation import PaymentState, Reservation, StayRequest
from hotel_booking.models.room_type import RoomType
from hotel_booking.storage.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory

logger = get_logger(__name__)

HOLD_WINDOW = timedelta(minutes=15)

REASON_UNKNOWN = "This room type does not exist."
REASON_INACTIVE = "This room type is currently not available."


def is_capacity_holding(
    state: PaymentState,
    created_at: datetime,
    now: datetime,
    hold_window: timedelta = HOLD_WINDOW,
) -> bool:
    """Whether a reservation counts against capacity at ``now``."""
    if state == PaymentState.SUCCESS:
        return True
    if state == PaymentState.PENDING:
        return created_at > now - hold_window
    return False


def overlaps(
    check_in: datetime,
    check_out: datetime,
    other_check_in: datetime,
    other_check_out: datetime,
) -> bool:
    """Half-open interval intersection."""
    return other_check_in < check_out and other_check_out > check_in


def validate_interval(check_in: datetime, check_out: datetime) -> None:
    if check_out <= check_in:
        raise BookingValidationError(
            "Check-out date and time must be after check-in date and time."
        )


def validate_unit_count(requested_units: int) -> None:
    if requested_units < 1:
        raise BookingValidationError("Room count must be a positive integer.")


def compute_availability(
    room_type_key: str,
    room: Optional[RoomType],
    check_in: datetime,
    check_out: datetime,
    reservations: Iterable[Reservation],
    now: datetime,
    hold_window: timedelta = HOLD_WINDOW,
) -> AvailabilityResult:
    """Pure availability computation.

    Unknown or inactive room types report zero availability with a reason
    rather than raising.
    """
    validate_interval(check_in, check_out)
    nights = count_nights(check_in, check_out)

    if room is None or not room.is_active:
        return AvailabilityResult(
            room_type=room_type_key,
            check_in=check_in,
            check_out=check_out,
            capacity=0,
            booked_units=0,
            available_units=0,
            price_per_night=room.current_rate if room else Decimal("0"),
            nights=nights,
            reason=REASON_UNKNOWN if room is None else REASON_INACTIVE,
        )

    booked_units = sum(
        r.room_count
        for r in reservations
        if r.room_type == room.room_type
        and overlaps(check_in, check_out, r.check_in, r.check_out)
        and is_capacity_holding(r.payment_state, r.created_at, now, hold_window)
    )

    return AvailabilityResult(
        room_type=room.room_type,
        check_in=check_in,
        check_out=check_out,
        capacity=room.total_rooms,
        booked_units=booked_units,
        available_units=room.total_rooms - booked_units,
        price_per_night=room.current_rate,
        nights=nights,
    )


class AvailabilityCalculator:
    """Reads room inventory and holding reservations to compute availability."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        hold_window: timedelta = HOLD_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize availability calculator.

        Args:
            uow_factory: Builds a unit of work for read-only checks
            hold_window: How long an unpaid Pending reservation holds capacity
            clock: Source of "now" (naive UTC)
        """
        self.uow_factory = uow_factory
        self.hold_window = hold_window
        self.clock = clock

    async def compute_in(
        self,
        uow: AbstractUnitOfWork,
        room_type_key: str,
        check_in: datetime,
        check_out: datetime,
    ) -> AvailabilityResult:
        """Compute availability inside an existing unit of work."""
        validate_interval(check_in, check_out)
        room = await uow.room_types.get_by_key(room_type_key)

        return await self.compute_for_room(uow, room_type_key, room, check_in, check_out)

    async def compute_for_room(
        self,
        uow: AbstractUnitOfWork,
        room_type_key: str,
        room: Optional[RoomType],
        check_in: datetime,
        check_out: datetime,
    ) -> AvailabilityResult:
        """Compute availability for an already loaded room type.

        The reservation flow passes a row locked with ``lock_by_key`` so the
        recheck and the insert see the same inventory.
        """
        validate_interval(check_in, check_out)
        now = self.clock()
        holding: list[Reservation] = []
        if room is not None and room.is_active:
            holding = await uow.reservations.find_capacity_holding(
                room.room_type,
                check_in,
                check_out,
                pending_since=now - self.hold_window,
            )

        return compute_availability(
            room_type_key, room, check_in, check_out, holding, now, self.hold_window
        )

    async def compute(
        self,
        room_type_key: str,
        check_in: datetime,
        check_out: datetime,
    ) -> AvailabilityResult:
        """Compute availability in a fresh read-only unit of work."""
        async with self.uow_factory() as uow:
            return await self.compute_in(uow, room_type_key, check_in, check_out)

    async def check(self, stay: StayRequest) -> AvailabilityResult:
        """Availability for a guest-submitted stay."""
        validate_unit_count(stay.room_count)
        result = await self.compute(stay.room_type, stay.check_in, stay.check_out)

        logger.info(
            "availability_checked",
            room_type=stay.room_type,
            check_in=stay.check_in.isoformat(),
            check_out=stay.check_out.isoformat(),
            requested=stay.room_count,
            available=result.display_units,
            reason=result.reason,
        )

        return result

    async def status_for_all(
        self,
        check_in: datetime,
        check_out: datetime,
    ) -> list[AvailabilityResult]:
        """Availability of every active room type for one interval."""
        validate_interval(check_in, check_out)
        async with self.uow_factory() as uow:
            rooms = await uow.room_types.list_all(active_only=True)
            return [
                await self.compute_for_room(uow, room.room_type, room, check_in, check_out)
                for room in rooms
            ]
