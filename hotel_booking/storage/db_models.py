"""SQLAlchemy database models.

Maps domain models to PostgreSQL tables.
"""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from hotel_booking.models.clock import utcnow
from hotel_booking.models.reservation import PaymentState
from hotel_booking.models.room_type import RoomTypeStatus


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class RoomTypeTable(Base):
    """Room inventory table. Rows are never hard-deleted."""

    __tablename__ = "room_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    room_type = Column(String(100), nullable=False)
    display_name = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    total_rooms = Column(Integer, nullable=False)
    current_rate = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(RoomTypeStatus, native_enum=True),
        nullable=False,
        default=RoomTypeStatus.ACTIVE,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    reservations = relationship("ReservationTable", back_populates="room_type_row")

    __table_args__ = (
        CheckConstraint("total_rooms >= 0", name="check_nonnegative_total_rooms"),
        CheckConstraint("current_rate > 0", name="check_positive_rate"),
        Index("ix_room_types_room_type", room_type, unique=True),
    )


class ReservationTable(Base):
    """Reservation entity table."""

    __tablename__ = "reservations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    reference_number = Column(String(12), nullable=False)
    room_type_id = Column(Uuid(as_uuid=True), ForeignKey("room_types.id", ondelete="RESTRICT"), nullable=False)
    room_type = Column(String(100), nullable=False)
    room_count = Column(Integer, nullable=False)
    adult_count = Column(Integer, nullable=False, default=1)
    child_count = Column(Integer, nullable=False, default=0)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    guest_info = Column(JSON, nullable=False)
    user_id = Column(String(64), nullable=True)
    payment_state = Column(
        Enum(PaymentState, native_enum=True),
        nullable=False,
        default=PaymentState.PENDING,
    )
    payment_order_id = Column(String(100), nullable=True)
    payment_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    room_type_row = relationship("RoomTypeTable", back_populates="reservations")

    __table_args__ = (
        CheckConstraint("room_count >= 1", name="check_positive_room_count"),
        CheckConstraint("check_out > check_in", name="check_stay_interval"),
        CheckConstraint("total_amount >= 0", name="check_nonnegative_total_amount"),
        Index("ix_reservations_reference_number", reference_number, unique=True),
        Index("ix_reservations_payment_order_id", payment_order_id, unique=True),
        Index("ix_reservations_room_type_stay", room_type, check_in, check_out),
        Index("ix_reservations_payment_state", payment_state),
        Index("ix_reservations_created_at", created_at.desc()),
    )
