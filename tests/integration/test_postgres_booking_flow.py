"""Reservation flow against a real PostgreSQL database.

Set TEST_DATABASE_URL (postgresql+asyncpg://...) to run these tests. The
database is reset before each test.
"""

import asyncio
import os
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import text

from hotel_booking.config.settings import Settings
from hotel_booking.errors import CapacityUnavailable
from hotel_booking.models.analytics import ReservationFilter
from hotel_booking.models.reservation import BookingRequest, PaymentState
from hotel_booking.models.room_type import RoomTypeInput
from hotel_booking.services.availability import AvailabilityCalculator
from hotel_booking.services.reservation_flow import ReservationFlowService
from hotel_booking.storage.database import Database
from hotel_booking.storage.redis_locks import LocalLockHelper
from hotel_booking.storage.unit_of_work import postgres_uow_factory
from tests.fakes import DEFAULT_GUEST, FakeGateway, RecordingNotifier, sign_payment

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"),
]


@pytest_asyncio.fixture
async def database():
    db = Database(Settings(database_url=TEST_DATABASE_URL))
    await db.connect()
    await db.create_tables()
    async with db.session() as session:
        await session.execute(text("TRUNCATE reservations, room_types"))
    try:
        yield db
    finally:
        await db.disconnect()


@pytest.fixture
def pg_uow_factory(database):
    return postgres_uow_factory(database)


@pytest_asyncio.fixture
async def pg_deluxe(pg_uow_factory):
    async with pg_uow_factory() as uow:
        return await uow.room_types.create(
            RoomTypeInput(room_type="deluxe", total_rooms=4, current_rate=Decimal("2500"))
        )


@pytest.fixture
def pg_flow(pg_uow_factory):
    return ReservationFlowService(
        uow_factory=pg_uow_factory,
        lock_helper=LocalLockHelper(wait_timeout_seconds=10.0),
        availability=AvailabilityCalculator(pg_uow_factory),
        gateway=FakeGateway(),
        notifier=RecordingNotifier(),
    )


def _booking(room_count=1):
    check_in = date.today() + timedelta(days=30)
    return BookingRequest(
        room_type="deluxe",
        check_in_date=check_in,
        check_in_time="12:00:00",
        check_out_date=check_in + timedelta(days=2),
        check_out_time="11:00:00",
        room_count=room_count,
        guest_info=DEFAULT_GUEST,
    )


@pytest.mark.asyncio
async def test_concurrent_creation_respects_capacity(pg_flow, pg_deluxe, pg_uow_factory):
    results = await asyncio.gather(
        *(pg_flow.create_reservation(_booking()) for _ in range(10)),
        return_exceptions=True,
    )

    created = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, CapacityUnavailable)]
    assert len(created) == 4
    assert len(rejected) == 6

    async with pg_uow_factory() as uow:
        page, total = await uow.reservations.list_filtered(ReservationFilter())
    assert total == 4


@pytest.mark.asyncio
async def test_payment_round_trip(pg_flow, pg_deluxe, pg_uow_factory):
    reservation = await pg_flow.create_reservation(_booking(room_count=2))
    order = await pg_flow.open_payment_order(reservation.id)
    signature = sign_payment(order.order_id, "pay_pg_1")

    confirmed = await pg_flow.confirm_payment(order.order_id, "pay_pg_1", signature)
    repeated = await pg_flow.confirm_payment(order.order_id, "pay_pg_1", signature)

    assert confirmed.payment_state == PaymentState.SUCCESS
    assert repeated.payment_id == "pay_pg_1"
    assert len(pg_flow.notifier.sent) == 1

    async with pg_uow_factory() as uow:
        stored = await uow.reservations.get_by_reference(reservation.reference_number)
    assert stored.payment_state == PaymentState.SUCCESS
    assert stored.payment_order_id == order.order_id
    assert stored.total_amount == Decimal("10000.00")


@pytest.mark.asyncio
async def test_failed_payment_releases_capacity(pg_flow, pg_deluxe):
    reservation = await pg_flow.create_reservation(_booking(room_count=4))
    order = await pg_flow.open_payment_order(reservation.id)

    with pytest.raises(CapacityUnavailable):
        await pg_flow.create_reservation(_booking())

    await pg_flow.fail_payment(order.order_id, reason="Card declined")
    replacement = await pg_flow.create_reservation(_booking(room_count=4))

    assert replacement.payment_state == PaymentState.PENDING


@pytest.mark.asyncio
async def test_search_matches_guest_name(pg_flow, pg_deluxe, pg_uow_factory):
    reservation = await pg_flow.create_reservation(_booking())

    async with pg_uow_factory() as uow:
        page, total = await uow.reservations.list_filtered(ReservationFilter(search="asha"))

    assert total == 1
    assert page[0].id == reservation.id
