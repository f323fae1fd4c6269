"""Unit of Work pattern.

Groups repository calls into a single database transaction. The
transaction commits when the ``async with`` block exits cleanly and rolls
back when it raises.

Usage:
    async with uow_factory() as uow:
        room = await uow.room_types.lock_by_key("deluxe")
        await uow.reservations.create(reservation_input)
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.storage.database import Database
from hotel_booking.storage.postgres_reservation_repo import PostgresReservationRepository
from hotel_booking.storage.postgres_room_type_repo import PostgresRoomTypeRepository
from hotel_booking.storage.repository_base import ReservationRepository, RoomTypeRepository


class AbstractUnitOfWork(ABC):
    """Transaction scope exposing the repositories bound to it."""

    room_types: RoomTypeRepository
    reservations: ReservationRepository

    async def __aenter__(self) -> "AbstractUnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self.close()

    @abstractmethod
    async def begin(self) -> None:
        """Start the transaction and bind repositories."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Commit the transaction."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Roll back the transaction."""
        pass

    async def close(self) -> None:
        """Release resources held by the transaction."""
        pass


UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]


class PostgresUnitOfWork(AbstractUnitOfWork):
    """Unit of work over one SQLAlchemy session."""

    def __init__(self, db: Database):
        self.db = db
        self.session: Optional[AsyncSession] = None

    async def begin(self) -> None:
        self.session = self.db.new_session()
        self.room_types = PostgresRoomTypeRepository(self.session)
        self.reservations = PostgresReservationRepository(self.session)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None


def postgres_uow_factory(db: Database) -> UnitOfWorkFactory:
    """Build a factory producing a fresh Postgres unit of work per call."""
    return lambda: PostgresUnitOfWork(db)
