"""Repository interfaces."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, Optional, TypeVar
from uuid import UUID

from hotel_booking.models.analytics import ReservationFilter
from hotel_booking.models.reservation import PaymentState, Reservation, ReservationInput
from hotel_booking.models.room_type import RoomType, RoomTypeInput, RoomTypeUpdate

T = TypeVar("T")


class RepositoryBase(ABC, Generic[T]):
    """Base repository interface for entity lookup by ID."""

    @abstractmethod
    async def get_by_id(self, id: UUID) -> Optional[T]:
        """Retrieve entity by ID."""
        pass


class RoomTypeRepository(RepositoryBase[RoomType]):
    """Room inventory persistence. There is no delete: deactivate instead."""

    @abstractmethod
    async def get_by_key(self, room_type: str) -> Optional[RoomType]:
        """Retrieve room type by its stable key."""
        pass

    @abstractmethod
    async def lock_by_key(self, room_type: str) -> Optional[RoomType]:
        """Retrieve room type by key holding a row lock until transaction end."""
        pass

    @abstractmethod
    async def list_all(self, active_only: bool = False) -> list[RoomType]:
        """List room types ordered by key."""
        pass

    @abstractmethod
    async def create(self, entity: RoomTypeInput) -> RoomType:
        """Create new room type."""
        pass

    @abstractmethod
    async def update(self, id: UUID, changes: RoomTypeUpdate) -> Optional[RoomType]:
        """Apply a partial update; None if the room type does not exist."""
        pass


class ReservationRepository(RepositoryBase[Reservation]):
    """Reservation persistence."""

    @abstractmethod
    async def create(self, entity: ReservationInput) -> Reservation:
        """Insert a reservation in Pending state."""
        pass

    @abstractmethod
    async def get_by_reference(self, reference_number: str) -> Optional[Reservation]:
        """Retrieve reservation by customer-facing reference number."""
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: str) -> Optional[Reservation]:
        """Retrieve reservation by payment gateway order id."""
        pass

    @abstractmethod
    async def lock_by_id(self, id: UUID) -> Optional[Reservation]:
        """Retrieve reservation holding a row lock until transaction end."""
        pass

    @abstractmethod
    async def find_capacity_holding(
        self,
        room_type: str,
        check_in: datetime,
        check_out: datetime,
        pending_since: datetime,
    ) -> list[Reservation]:
        """Reservations overlapping [check_in, check_out) that hold capacity.

        Holding means Success, or Pending created strictly after
        ``pending_since``.
        """
        pass

    @abstractmethod
    async def attach_order(self, id: UUID, order_id: str) -> Reservation:
        """Record the gateway order id on a reservation."""
        pass

    @abstractmethod
    async def update_state(
        self,
        id: UUID,
        state: PaymentState,
        payment_id: Optional[str] = None,
    ) -> Reservation:
        """Set payment state, and payment id when given."""
        pass

    @abstractmethod
    async def list_filtered(self, filters: ReservationFilter) -> tuple[list[Reservation], int]:
        """One page of reservations matching filters, plus the total count."""
        pass

    @abstractmethod
    async def list_created_between(
        self,
        start: datetime,
        end: datetime,
        state: Optional[PaymentState] = None,
    ) -> list[Reservation]:
        """Reservations created in [start, end], oldest first."""
        pass

    @abstractmethod
    async def list_by_state(self, state: PaymentState) -> list[Reservation]:
        """All reservations in a payment state."""
        pass
