"""Unit tests for the availability calculator."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from hotel_booking.errors import BookingValidationError
from hotel_booking.models.availability import count_nights
from hotel_booking.models.reservation import PaymentState, StayRequest
from hotel_booking.models.room_type import RoomTypeStatus
from hotel_booking.services.availability import (
    HOLD_WINDOW,
    REASON_INACTIVE,
    REASON_UNKNOWN,
    compute_availability,
    is_capacity_holding,
    overlaps,
    validate_interval,
    validate_unit_count,
)

CHECK_IN = datetime(2024, 1, 10, 12, 0)
CHECK_OUT = datetime(2024, 1, 12, 11, 0)


class TestCountNights:
    def test_one_night_under_a_day(self):
        """Check-in noon, check-out 11:00 next day is one night."""
        assert count_nights(datetime(2024, 1, 1, 12, 0), datetime(2024, 1, 2, 11, 0)) == 1

    def test_same_day_stay_is_one_night(self):
        assert count_nights(datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 17, 0)) == 1

    def test_partial_days_round_up(self):
        assert count_nights(datetime(2024, 1, 1, 12, 0), datetime(2024, 1, 4, 11, 0)) == 3

    def test_exact_days(self):
        assert count_nights(datetime(2024, 1, 1, 12, 0), datetime(2024, 1, 3, 12, 0)) == 2


class TestHoldingRule:
    def test_success_always_holds(self):
        now = datetime(2024, 1, 1, 9, 0)
        old = now - timedelta(days=30)
        assert is_capacity_holding(PaymentState.SUCCESS, old, now) is True

    def test_pending_inside_window_holds(self):
        now = datetime(2024, 1, 1, 9, 0)
        created = now - timedelta(minutes=14, seconds=59)
        assert is_capacity_holding(PaymentState.PENDING, created, now) is True

    def test_pending_exactly_at_window_does_not_hold(self):
        now = datetime(2024, 1, 1, 9, 0)
        assert is_capacity_holding(PaymentState.PENDING, now - HOLD_WINDOW, now) is False

    def test_stale_pending_does_not_hold(self):
        now = datetime(2024, 1, 1, 9, 0)
        created = now - timedelta(hours=2)
        assert is_capacity_holding(PaymentState.PENDING, created, now) is False

    @pytest.mark.parametrize("state", [PaymentState.FAILED, PaymentState.REFUNDED])
    def test_terminal_states_never_hold(self, state):
        now = datetime(2024, 1, 1, 9, 0)
        assert is_capacity_holding(state, now, now) is False

    def test_custom_hold_window(self):
        now = datetime(2024, 1, 1, 9, 0)
        created = now - timedelta(minutes=20)
        assert is_capacity_holding(PaymentState.PENDING, created, now, timedelta(minutes=30)) is True


class TestOverlap:
    def test_back_to_back_stays_do_not_overlap(self):
        assert overlaps(CHECK_IN, CHECK_OUT, CHECK_OUT, CHECK_OUT + timedelta(days=1)) is False
        assert overlaps(CHECK_IN, CHECK_OUT, CHECK_IN - timedelta(days=1), CHECK_IN) is False

    def test_contained_stay_overlaps(self):
        assert overlaps(CHECK_IN, CHECK_OUT, CHECK_IN + timedelta(hours=1), CHECK_IN + timedelta(hours=2))

    def test_partial_overlap(self):
        assert overlaps(CHECK_IN, CHECK_OUT, CHECK_IN - timedelta(days=1), CHECK_IN + timedelta(hours=1))


class TestValidation:
    def test_checkout_before_checkin_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_interval(CHECK_OUT, CHECK_IN)

    def test_empty_interval_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_interval(CHECK_IN, CHECK_IN)

    @pytest.mark.parametrize("units", [0, -1])
    def test_non_positive_units_rejected(self, units):
        with pytest.raises(BookingValidationError):
            validate_unit_count(units)

    def test_stay_request_rejects_reversed_dates(self):
        with pytest.raises(ValueError):
            StayRequest(
                room_type="deluxe",
                check_in_date=date(2024, 1, 12),
                check_in_time="12:00:00",
                check_out_date=date(2024, 1, 10),
                check_out_time="11:00:00",
                room_count=1,
            )


class TestComputeAvailability:
    def test_price_for_one_night_two_units(self, store):
        """Capacity 10 at 2500, two units from noon to 11:00 next day costs 5000."""
        room = store.add_room_type("deluxe", total_rooms=10, rate="2500")
        check_in = datetime(2024, 1, 1, 12, 0)
        check_out = datetime(2024, 1, 2, 11, 0)

        result = compute_availability(
            "deluxe", room, check_in, check_out, [], now=datetime(2024, 1, 1, 9, 0)
        )

        assert result.nights == 1
        assert result.capacity == 10
        assert result.available_units == 10
        assert result.is_available(2)
        assert result.total_price(2) == Decimal("5000")

    def test_counts_holding_reservations(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=10)
        reservations = [
            store.add_reservation(room, room_count=3, state=PaymentState.SUCCESS),
            store.add_reservation(room, room_count=2, state=PaymentState.PENDING),
            store.add_reservation(room, room_count=4, state=PaymentState.FAILED),
            store.add_reservation(
                room,
                room_count=1,
                state=PaymentState.PENDING,
                created_at=clock() - timedelta(minutes=15),
            ),
        ]

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, reservations, clock())

        assert result.booked_units == 5
        assert result.available_units == 5
        assert result.is_available(5)
        assert not result.is_available(6)

    def test_ignores_non_overlapping_and_other_room_types(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=2)
        suite = store.add_room_type("suite", total_rooms=2)
        reservations = [
            store.add_reservation(
                room,
                room_count=2,
                state=PaymentState.SUCCESS,
                check_in=CHECK_OUT,
                check_out=CHECK_OUT + timedelta(days=2),
            ),
            store.add_reservation(suite, room_count=2, state=PaymentState.SUCCESS),
        ]

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, reservations, clock())

        assert result.available_units == 2

    def test_overbooked_displays_zero(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=2)
        reservations = [store.add_reservation(room, room_count=3, state=PaymentState.SUCCESS)]

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, reservations, clock())

        assert result.available_units == -1
        assert result.display_units == 0
        assert result.to_dict(1)["available_units"] == 0
        assert result.to_dict(1)["total_amount"] == "0"

    def test_inactive_room_type_reports_reason(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=10, status=RoomTypeStatus.INACTIVE)

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, [], clock())

        assert result.available_units == 0
        assert result.reason == REASON_INACTIVE
        assert not result.is_available(1)
        assert result.message(1) == REASON_INACTIVE

    def test_unknown_room_type_reports_reason(self, clock):
        result = compute_availability("penthouse", None, CHECK_IN, CHECK_OUT, [], clock())

        assert result.capacity == 0
        assert result.reason == REASON_UNKNOWN
        assert result.price_per_night == Decimal("0")

    def test_zero_units_is_never_available(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=10)

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, [], clock())

        assert not result.is_available(0)

    def test_conflict_message(self, store, clock):
        room = store.add_room_type("deluxe", total_rooms=1)

        result = compute_availability("deluxe", room, CHECK_IN, CHECK_OUT, [], clock())

        assert result.message(1) == "Success: 1 room(s) available."
        assert result.message(2) == "Conflict: Only 1 room(s) available."


class TestAvailabilityCalculator:
    @pytest.mark.asyncio
    async def test_check_reads_storage(self, availability, store, deluxe, make_booking):
        store.add_reservation(deluxe, room_count=4, state=PaymentState.SUCCESS)

        result = await availability.check(make_booking(room_count=2))

        assert result.available_units == 6
        assert result.nights == 2
        assert result.total_price(2) == Decimal("10000")

    @pytest.mark.asyncio
    async def test_pending_hold_lapses_as_clock_moves(self, availability, store, deluxe, clock):
        store.add_reservation(deluxe, room_count=10, state=PaymentState.PENDING)

        held = await availability.compute("deluxe", CHECK_IN, CHECK_OUT)
        clock.advance(minutes=15)
        released = await availability.compute("deluxe", CHECK_IN, CHECK_OUT)

        assert held.available_units == 0
        assert released.available_units == 10

    @pytest.mark.asyncio
    async def test_unknown_room_type_does_not_raise(self, availability):
        result = await availability.compute("penthouse", CHECK_IN, CHECK_OUT)

        assert result.reason == REASON_UNKNOWN

    @pytest.mark.asyncio
    async def test_status_for_all_lists_active_room_types(self, availability, store, deluxe):
        store.add_room_type("standard", total_rooms=15, rate="1800")
        store.add_room_type("closed", total_rooms=3, status=RoomTypeStatus.INACTIVE)
        store.add_reservation(deluxe, room_count=3, state=PaymentState.SUCCESS)

        results = await availability.status_for_all(CHECK_IN, CHECK_OUT)

        assert [r.room_type for r in results] == ["deluxe", "standard"]
        assert results[0].available_units == 7
        assert results[1].available_units == 15

    @pytest.mark.asyncio
    async def test_status_for_all_validates_interval(self, availability):
        with pytest.raises(BookingValidationError):
            await availability.status_for_all(CHECK_OUT, CHECK_IN)
