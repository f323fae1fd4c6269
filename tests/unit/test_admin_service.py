"""Unit tests for admin inventory, reservation management and analytics."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from hotel_booking.errors import (
    BookingValidationError,
    PermissionDenied,
    ReservationNotFound,
    RoomTypeNotFound,
)
from hotel_booking.models.analytics import AnalyticsPeriod, ReservationFilter
from hotel_booking.models.reservation import GuestInfo, PaymentState
from hotel_booking.models.room_type import RoomTypeInput, RoomTypeStatus, RoomTypeUpdate
from hotel_booking.services.admin import period_start
from tests.fakes import ADMIN_ID


class TestPeriodStart:
    NOW = datetime(2024, 3, 31, 10, 0)

    def test_week(self):
        assert period_start(AnalyticsPeriod.WEEK, self.NOW) == datetime(2024, 3, 24, 10, 0)

    def test_month_clamps_to_short_month(self):
        assert period_start(AnalyticsPeriod.MONTH, self.NOW) == datetime(2024, 2, 29, 10, 0)

    def test_quarter_crosses_year(self):
        assert period_start(AnalyticsPeriod.QUARTER, datetime(2024, 2, 15)) == datetime(2023, 11, 15)

    def test_year(self):
        assert period_start(AnalyticsPeriod.YEAR, self.NOW) == datetime(2023, 3, 31, 10, 0)


class TestPermissions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", [None, "", "guest-42"])
    async def test_non_admin_rejected(self, admin_service, store, deluxe, identity):
        with pytest.raises(PermissionDenied):
            await admin_service.list_room_types(identity)

        with pytest.raises(PermissionDenied):
            await admin_service.override_state(identity, deluxe.id, "Success")

    @pytest.mark.asyncio
    async def test_rejected_before_storage_is_touched(self, admin_service, store):
        with pytest.raises(PermissionDenied):
            await admin_service.create_room_type(
                "guest-42",
                RoomTypeInput(room_type="suite", total_rooms=5, current_rate=Decimal("4500")),
            )

        assert store.room_types == {}
        assert store.commits == 0


class TestInventory:
    @pytest.mark.asyncio
    async def test_create_and_list(self, admin_service, deluxe):
        created = await admin_service.create_room_type(
            ADMIN_ID,
            RoomTypeInput(room_type="  suite ", total_rooms=5, current_rate=Decimal("4500")),
        )

        rooms = await admin_service.list_room_types(ADMIN_ID)

        assert created.room_type == "suite"
        assert [r.room_type for r in rooms] == ["deluxe", "suite"]

    @pytest.mark.asyncio
    async def test_duplicate_key_rejected(self, admin_service, deluxe):
        with pytest.raises(BookingValidationError):
            await admin_service.create_room_type(
                ADMIN_ID,
                RoomTypeInput(room_type="deluxe", total_rooms=5, current_rate=Decimal("1000")),
            )

    @pytest.mark.asyncio
    async def test_partial_update(self, admin_service, store, deluxe):
        updated = await admin_service.update_room_type(
            ADMIN_ID, deluxe.id, RoomTypeUpdate(current_rate=Decimal("2800"))
        )

        assert updated.current_rate == Decimal("2800")
        assert updated.total_rooms == 10
        assert store.room_types[deluxe.id].current_rate == Decimal("2800")

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, admin_service, deluxe):
        with pytest.raises(BookingValidationError):
            await admin_service.update_room_type(ADMIN_ID, deluxe.id, RoomTypeUpdate())

    @pytest.mark.asyncio
    async def test_rename_onto_existing_key_rejected(self, admin_service, store, deluxe):
        store.add_room_type("standard", total_rooms=15, rate="1800")

        with pytest.raises(BookingValidationError):
            await admin_service.update_room_type(
                ADMIN_ID, deluxe.id, RoomTypeUpdate(room_type="standard")
            )

    @pytest.mark.asyncio
    async def test_update_missing_room_type(self, admin_service, store, deluxe):
        other = store.add_room_type("ghost")
        del store.room_types[other.id]

        with pytest.raises(RoomTypeNotFound):
            await admin_service.update_room_type(ADMIN_ID, other.id, RoomTypeUpdate(total_rooms=3))

    @pytest.mark.asyncio
    async def test_deactivate_is_soft(self, admin_service, store, deluxe):
        room = await admin_service.deactivate_room_type(ADMIN_ID, deluxe.id)

        assert room.status == RoomTypeStatus.INACTIVE
        assert deluxe.id in store.room_types


class TestReservationManagement:
    @pytest.mark.asyncio
    async def test_list_paginates_newest_first(self, admin_service, store, deluxe, clock):
        created = []
        for minutes in range(5):
            created.append(store.add_reservation(deluxe, created_at=clock() + timedelta(minutes=minutes)))

        page = await admin_service.list_reservations(ADMIN_ID, ReservationFilter(page=2, limit=2))

        assert page.total == 5
        assert page.pages == 3
        assert [r.id for r in page.data] == [created[2].id, created[1].id]

    @pytest.mark.asyncio
    async def test_list_with_no_results(self, admin_service):
        page = await admin_service.list_reservations(ADMIN_ID, ReservationFilter())

        assert page.total == 0
        assert page.pages == 0
        assert page.data == []

    @pytest.mark.asyncio
    async def test_filter_by_status_and_search(self, admin_service, store, deluxe):
        other_guest = GuestInfo(
            full_name="Meera Iyer", email="meera@example.com", phone="9123456780", country="India"
        )
        store.add_reservation(deluxe, state=PaymentState.SUCCESS)
        target = store.add_reservation(deluxe, state=PaymentState.SUCCESS, guest_info=other_guest)
        store.add_reservation(deluxe, state=PaymentState.FAILED, guest_info=other_guest)

        page = await admin_service.list_reservations(
            ADMIN_ID, ReservationFilter(status=PaymentState.SUCCESS, search="MEERA")
        )

        assert [r.id for r in page.data] == [target.id]

    @pytest.mark.asyncio
    async def test_details_by_id_or_reference(self, admin_service, store, deluxe):
        reservation = store.add_reservation(deluxe)

        by_id = await admin_service.reservation_details(ADMIN_ID, str(reservation.id))
        by_reference = await admin_service.reservation_details(ADMIN_ID, reservation.reference_number)

        assert by_id.id == by_reference.id == reservation.id

    @pytest.mark.asyncio
    async def test_details_not_found(self, admin_service):
        with pytest.raises(ReservationNotFound):
            await admin_service.reservation_details(ADMIN_ID, "AMC-FFFFFFFF")

    @pytest.mark.asyncio
    async def test_override_bypasses_transition_table(self, admin_service, store, deluxe):
        reservation = store.add_reservation(deluxe, state=PaymentState.FAILED)

        updated = await admin_service.override_state(ADMIN_ID, reservation.id, "Success")

        assert updated.payment_state == PaymentState.SUCCESS
        assert store.get(reservation.id).payment_state == PaymentState.SUCCESS

    @pytest.mark.asyncio
    async def test_override_refund(self, admin_service, store, deluxe):
        reservation = store.add_reservation(deluxe, state=PaymentState.SUCCESS)

        updated = await admin_service.override_state(ADMIN_ID, reservation.id, "Refunded")

        assert updated.payment_state == PaymentState.REFUNDED

    @pytest.mark.asyncio
    async def test_override_invalid_status(self, admin_service, store, deluxe):
        reservation = store.add_reservation(deluxe)

        with pytest.raises(BookingValidationError) as exc_info:
            await admin_service.override_state(ADMIN_ID, reservation.id, "Cancelled")

        assert exc_info.value.message == "Invalid status: Cancelled"
        assert store.get(reservation.id).payment_state == PaymentState.PENDING


class TestAnalytics:
    @pytest.fixture
    def history(self, store, deluxe, clock):
        """Mixed reservations across two room types and two days."""
        standard = store.add_room_type("standard", total_rooms=15, rate="1800")
        yesterday = clock() - timedelta(days=1)
        store.add_reservation(deluxe, 2, PaymentState.SUCCESS, created_at=yesterday, total_amount=Decimal("5000"))
        store.add_reservation(deluxe, 1, PaymentState.SUCCESS, total_amount=Decimal("2500"))
        store.add_reservation(standard, 3, PaymentState.SUCCESS, total_amount=Decimal("5400"))
        store.add_reservation(deluxe, 1, PaymentState.FAILED)
        store.add_reservation(deluxe, 1, PaymentState.PENDING)
        store.add_reservation(standard, 1, PaymentState.REFUNDED)
        store.add_reservation(
            standard, 1, PaymentState.SUCCESS, created_at=clock() - timedelta(days=60),
            total_amount=Decimal("1800"),
        )
        return standard

    @pytest.mark.asyncio
    async def test_booking_summary(self, admin_service, history):
        summary = await admin_service.booking_summary(ADMIN_ID, AnalyticsPeriod.MONTH)

        assert summary.total_bookings == 6
        assert summary.successful_bookings == 3
        assert summary.failed_bookings == 1
        assert summary.pending_bookings == 1
        assert summary.refunded_bookings == 1
        assert summary.total_revenue == Decimal("12900")

    @pytest.mark.asyncio
    async def test_revenue_by_day(self, admin_service, history, clock):
        revenue = await admin_service.revenue_analytics(ADMIN_ID, AnalyticsPeriod.WEEK)

        assert revenue.booking_count == 3
        assert revenue.total_revenue == Decimal("12900")
        assert [(p.day, p.revenue) for p in revenue.chart_data] == [
            ((clock() - timedelta(days=1)).date(), Decimal("5000")),
            (clock().date(), Decimal("7900")),
        ]

    @pytest.mark.asyncio
    async def test_occupancy(self, admin_service, history):
        stats = await admin_service.occupancy(ADMIN_ID)

        assert stats.total_capacity == 25
        assert stats.occupied_rooms == 7
        assert stats.available_rooms == 18
        assert stats.occupancy_rate == 28.0

    @pytest.mark.asyncio
    async def test_occupancy_without_inventory(self, admin_service):
        stats = await admin_service.occupancy(ADMIN_ID)

        assert stats.occupancy_rate == 0.0
        assert stats.total_capacity == 0

    @pytest.mark.asyncio
    async def test_top_room_types(self, admin_service, history):
        top = await admin_service.top_room_types(ADMIN_ID)

        assert [(t.room_type, t.bookings) for t in top] == [("deluxe", 2), ("standard", 2)]
        assert top[0].revenue == Decimal("7500")
        assert top[1].revenue == Decimal("7200")

    @pytest.mark.asyncio
    async def test_top_room_types_limited_to_five(self, admin_service, store):
        for index in range(7):
            room = store.add_room_type(f"type-{index}")
            for _ in range(index + 1):
                store.add_reservation(room, state=PaymentState.SUCCESS)

        top = await admin_service.top_room_types(ADMIN_ID)

        assert [t.room_type for t in top] == ["type-6", "type-5", "type-4", "type-3", "type-2"]
