"""PostgreSQL repository for Reservation entities."""

import secrets
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.logging import get_logger
from hotel_booking.models.analytics import ReservationFilter
from hotel_booking.models.reservation import (
    GuestInfo,
    PaymentState,
    Reservation,
    ReservationInput,
)
from hotel_booking.storage.db_models import ReservationTable
from hotel_booking.storage.repository_base import ReservationRepository

logger = get_logger(__name__)


def generate_reference_number() -> str:
    """Generate a customer-facing reference in format AMC-XXXXXXXX."""
    return f"AMC-{secrets.token_hex(4).upper()}"


class PostgresReservationRepository(ReservationRepository):
    """Reservation repository using PostgreSQL.

    Writes are flushed, not committed: the enclosing unit of work owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[Reservation]:
        """Retrieve reservation by ID."""
        db_reservation = await self._get_row(id)
        return self._to_domain_model(db_reservation) if db_reservation else None

    async def lock_by_id(self, id: UUID) -> Optional[Reservation]:
        """Retrieve reservation with SELECT ... FOR UPDATE."""
        stmt = select(ReservationTable).where(ReservationTable.id == id).with_for_update()
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()
        return self._to_domain_model(db_reservation) if db_reservation else None

    async def create(self, entity: ReservationInput) -> Reservation:
        """Insert a Pending reservation with a unique reference number."""
        reference_number = generate_reference_number()

        db_reservation = ReservationTable(
            reference_number=reference_number,
            room_type_id=entity.room_type_id,
            room_type=entity.room_type,
            room_count=entity.room_count,
            adult_count=entity.adult_count,
            child_count=entity.child_count,
            check_in=entity.check_in,
            check_out=entity.check_out,
            total_amount=entity.total_amount,
            currency=entity.currency,
            guest_info=entity.guest_info.model_dump(),
            user_id=entity.user_id,
            payment_state=PaymentState.PENDING,
        )

        self.session.add(db_reservation)
        await self.session.flush()

        logger.info(
            "reservation_inserted",
            reservation_id=str(db_reservation.id),
            reference_number=reference_number,
            room_type=entity.room_type,
            room_count=entity.room_count,
            total_amount=str(entity.total_amount),
        )

        return self._to_domain_model(db_reservation)

    async def get_by_reference(self, reference_number: str) -> Optional[Reservation]:
        """Get reservation by customer-facing reference number."""
        stmt = select(ReservationTable).where(ReservationTable.reference_number == reference_number)
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()
        return self._to_domain_model(db_reservation) if db_reservation else None

    async def get_by_order_id(self, order_id: str) -> Optional[Reservation]:
        """Get reservation by payment gateway order id."""
        stmt = select(ReservationTable).where(ReservationTable.payment_order_id == order_id)
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()
        return self._to_domain_model(db_reservation) if db_reservation else None

    async def find_capacity_holding(
        self,
        room_type: str,
        check_in: datetime,
        check_out: datetime,
        pending_since: datetime,
    ) -> list[Reservation]:
        """Overlapping Success reservations and live Pending holds."""
        stmt = select(ReservationTable).where(
            ReservationTable.room_type == room_type,
            ReservationTable.check_in < check_out,
            ReservationTable.check_out > check_in,
            or_(
                ReservationTable.payment_state == PaymentState.SUCCESS,
                and_(
                    ReservationTable.payment_state == PaymentState.PENDING,
                    ReservationTable.created_at > pending_since,
                ),
            ),
        )
        result = await self.session.execute(stmt)
        return [self._to_domain_model(row) for row in result.scalars().all()]

    async def attach_order(self, id: UUID, order_id: str) -> Reservation:
        """Record the gateway order id."""
        db_reservation = await self._require_row(id)
        db_reservation.payment_order_id = order_id
        await self.session.flush()
        await self.session.refresh(db_reservation)

        logger.info("reservation_order_attached", reservation_id=str(id), order_id=order_id)

        return self._to_domain_model(db_reservation)

    async def update_state(
        self,
        id: UUID,
        state: PaymentState,
        payment_id: Optional[str] = None,
    ) -> Reservation:
        """Set payment state and, when given, the gateway payment id."""
        db_reservation = await self._require_row(id)
        db_reservation.payment_state = state
        if payment_id is not None:
            db_reservation.payment_id = payment_id
        await self.session.flush()
        await self.session.refresh(db_reservation)

        logger.info(
            "reservation_state_updated",
            reservation_id=str(id),
            payment_state=state.value,
        )

        return self._to_domain_model(db_reservation)

    async def list_filtered(self, filters: ReservationFilter) -> tuple[list[Reservation], int]:
        """Page of reservations, newest first, with the matching total."""
        conditions = []
        if filters.status is not None:
            conditions.append(ReservationTable.payment_state == filters.status)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    ReservationTable.guest_info["full_name"].as_string().ilike(pattern),
                    ReservationTable.guest_info["email"].as_string().ilike(pattern),
                    ReservationTable.reference_number.ilike(pattern),
                )
            )

        stmt = (
            select(ReservationTable)
            .where(*conditions)
            .order_by(ReservationTable.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        count_stmt = select(func.count()).select_from(ReservationTable).where(*conditions)

        result = await self.session.execute(stmt)
        total = (await self.session.execute(count_stmt)).scalar_one()

        return [self._to_domain_model(row) for row in result.scalars().all()], total

    async def list_created_between(
        self,
        start: datetime,
        end: datetime,
        state: Optional[PaymentState] = None,
    ) -> list[Reservation]:
        """Reservations created within [start, end], oldest first."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.created_at >= start, ReservationTable.created_at <= end)
            .order_by(ReservationTable.created_at.asc())
        )
        if state is not None:
            stmt = stmt.where(ReservationTable.payment_state == state)
        result = await self.session.execute(stmt)
        return [self._to_domain_model(row) for row in result.scalars().all()]

    async def list_by_state(self, state: PaymentState) -> list[Reservation]:
        """All reservations in a payment state."""
        stmt = select(ReservationTable).where(ReservationTable.payment_state == state)
        result = await self.session.execute(stmt)
        return [self._to_domain_model(row) for row in result.scalars().all()]

    async def _get_row(self, id: UUID) -> Optional[ReservationTable]:
        stmt = select(ReservationTable).where(ReservationTable.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _require_row(self, id: UUID) -> ReservationTable:
        db_reservation = await self._get_row(id)
        if not db_reservation:
            raise ValueError(f"Reservation not found: {id}")
        return db_reservation

    def _to_domain_model(self, db_reservation: ReservationTable) -> Reservation:
        """Convert database model to domain model."""
        return Reservation(
            id=db_reservation.id,
            reference_number=db_reservation.reference_number,
            room_type_id=db_reservation.room_type_id,
            room_type=db_reservation.room_type,
            room_count=db_reservation.room_count,
            adult_count=db_reservation.adult_count,
            child_count=db_reservation.child_count,
            check_in=db_reservation.check_in,
            check_out=db_reservation.check_out,
            total_amount=db_reservation.total_amount,
            currency=db_reservation.currency,
            guest_info=GuestInfo.model_validate(db_reservation.guest_info),
            user_id=db_reservation.user_id,
            payment_state=db_reservation.payment_state,
            payment_order_id=db_reservation.payment_order_id,
            payment_id=db_reservation.payment_id,
            created_at=db_reservation.created_at,
            updated_at=db_reservation.updated_at,
        )
