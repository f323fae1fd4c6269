"""Unit tests for the default room inventory seed."""

from decimal import Decimal

import pytest

from hotel_booking.models.room_type import RoomTypeStatus
from scripts.seed_room_inventory import seed_room_types


@pytest.mark.asyncio
async def test_seed_creates_default_room_types(store, uow_factory):
    outcome = await seed_room_types(uow_factory)

    assert outcome == {"Deluxe": "created", "Standard": "created", "Executive Suite": "created"}
    rooms = {r.room_type: r for r in store.room_types.values()}
    assert rooms["Deluxe"].total_rooms == 10
    assert rooms["Standard"].current_rate == Decimal("1800")
    assert rooms["Executive Suite"].total_rooms == 5


@pytest.mark.asyncio
async def test_seed_is_rerunnable(store, uow_factory):
    deluxe = store.add_room_type("Deluxe", total_rooms=2, rate="999", status=RoomTypeStatus.INACTIVE)

    outcome = await seed_room_types(uow_factory)

    assert outcome["Deluxe"] == "updated"
    assert len(store.room_types) == 3
    restored = store.room_types[deluxe.id]
    assert restored.total_rooms == 10
    assert restored.current_rate == Decimal("2500")
    assert restored.is_active
