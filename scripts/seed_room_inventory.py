"""Seed the default room inventory.

Creates Deluxe, Standard and Executive Suite room types, or updates their
capacity and rate when they already exist.

Usage:
    python -m scripts.seed_room_inventory
"""

import asyncio
from decimal import Decimal

from hotel_booking.config import load_settings
from hotel_booking.logging import get_logger, setup_logging
from hotel_booking.models.room_type import RoomTypeInput, RoomTypeStatus, RoomTypeUpdate
from hotel_booking.storage.database import Database
from hotel_booking.storage.unit_of_work import UnitOfWorkFactory, postgres_uow_factory

logger = get_logger(__name__)

DEFAULT_ROOM_TYPES = [
    RoomTypeInput(
        room_type="Deluxe",
        display_name="Deluxe Room",
        description="Spacious room with city view and king bed.",
        total_rooms=10,
        current_rate=Decimal("2500"),
    ),
    RoomTypeInput(
        room_type="Standard",
        display_name="Standard Room",
        description="Comfortable room with queen bed.",
        total_rooms=15,
        current_rate=Decimal("1800"),
    ),
    RoomTypeInput(
        room_type="Executive Suite",
        display_name="Executive Suite",
        description="Suite with separate living area and work desk.",
        total_rooms=5,
        current_rate=Decimal("4500"),
    ),
]


async def seed_room_types(uow_factory: UnitOfWorkFactory) -> dict[str, str]:
    """Upsert default room types by key. Returns key -> "created" | "updated"."""
    outcome: dict[str, str] = {}

    async with uow_factory() as uow:
        for room in DEFAULT_ROOM_TYPES:
            existing = await uow.room_types.get_by_key(room.room_type)
            if existing is None:
                await uow.room_types.create(room)
                outcome[room.room_type] = "created"
            else:
                await uow.room_types.update(
                    existing.id,
                    RoomTypeUpdate(
                        total_rooms=room.total_rooms,
                        current_rate=room.current_rate,
                        status=RoomTypeStatus.ACTIVE,
                    ),
                )
                outcome[room.room_type] = "updated"

            logger.info("room_type_seeded", room_type=room.room_type, result=outcome[room.room_type])

    return outcome


async def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    db = Database(settings)
    await db.connect()
    try:
        await seed_room_types(postgres_uow_factory(db))
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
