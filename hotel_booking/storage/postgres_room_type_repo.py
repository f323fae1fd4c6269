"""PostgreSQL repository for RoomType entities."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.logging import get_logger
from hotel_booking.models.room_type import RoomType, RoomTypeInput, RoomTypeStatus, RoomTypeUpdate
from hotel_booking.storage.db_models import RoomTypeTable
from hotel_booking.storage.repository_base import RoomTypeRepository

logger = get_logger(__name__)


class PostgresRoomTypeRepository(RoomTypeRepository):
    """Room type repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[RoomType]:
        """Retrieve room type by ID."""
        stmt = select(RoomTypeTable).where(RoomTypeTable.id == id)
        result = await self.session.execute(stmt)
        db_room = result.scalar_one_or_none()
        return self._to_domain_model(db_room) if db_room else None

    async def get_by_key(self, room_type: str) -> Optional[RoomType]:
        """Retrieve room type by key."""
        stmt = select(RoomTypeTable).where(RoomTypeTable.room_type == room_type)
        result = await self.session.execute(stmt)
        db_room = result.scalar_one_or_none()
        return self._to_domain_model(db_room) if db_room else None

    async def lock_by_key(self, room_type: str) -> Optional[RoomType]:
        """Retrieve room type with SELECT ... FOR UPDATE.

        Concurrent creations for the same room type queue on this row until
        the holding transaction commits or rolls back.
        """
        stmt = (
            select(RoomTypeTable)
            .where(RoomTypeTable.room_type == room_type)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        db_room = result.scalar_one_or_none()
        return self._to_domain_model(db_room) if db_room else None

    async def list_all(self, active_only: bool = False) -> list[RoomType]:
        """List room types ordered by key."""
        stmt = select(RoomTypeTable).order_by(RoomTypeTable.room_type.asc())
        if active_only:
            stmt = stmt.where(RoomTypeTable.status == RoomTypeStatus.ACTIVE)
        result = await self.session.execute(stmt)
        return [self._to_domain_model(row) for row in result.scalars().all()]

    async def create(self, entity: RoomTypeInput) -> RoomType:
        """Create new room type."""
        db_room = RoomTypeTable(**entity.model_dump())
        self.session.add(db_room)
        await self.session.flush()

        logger.info(
            "room_type_created",
            room_type_id=str(db_room.id),
            room_type=entity.room_type,
            total_rooms=entity.total_rooms,
        )

        return self._to_domain_model(db_room)

    async def update(self, id: UUID, changes: RoomTypeUpdate) -> Optional[RoomType]:
        """Apply only the fields set on ``changes``."""
        stmt = select(RoomTypeTable).where(RoomTypeTable.id == id)
        result = await self.session.execute(stmt)
        db_room = result.scalar_one_or_none()

        if not db_room:
            return None

        for field, value in changes.changes().items():
            setattr(db_room, field, value)

        await self.session.flush()
        await self.session.refresh(db_room)

        logger.info("room_type_updated", room_type_id=str(id), fields=sorted(changes.changes()))

        return self._to_domain_model(db_room)

    def _to_domain_model(self, db_room: RoomTypeTable) -> RoomType:
        """Convert database model to domain model."""
        return RoomType(
            id=db_room.id,
            room_type=db_room.room_type,
            display_name=db_room.display_name,
            description=db_room.description,
            image_url=db_room.image_url,
            total_rooms=db_room.total_rooms,
            current_rate=db_room.current_rate,
            status=db_room.status,
            created_at=db_room.created_at,
            updated_at=db_room.updated_at,
        )
