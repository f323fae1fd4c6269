"""Initial schema with room types and reservations

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""
    # Create enum types
    op.execute("CREATE TYPE roomtypestatus AS ENUM ('ACTIVE', 'INACTIVE')")
    op.execute("CREATE TYPE paymentstate AS ENUM ('PENDING', 'SUCCESS', 'FAILED', 'REFUNDED')")

    # Create room_types table
    op.create_table(
        'room_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('room_type', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('total_rooms', sa.Integer(), nullable=False),
        sa.Column('current_rate', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', postgresql.ENUM('ACTIVE', 'INACTIVE', name='roomtypestatus', create_type=False), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('total_rooms >= 0', name='check_nonnegative_total_rooms'),
        sa.CheckConstraint('current_rate > 0', name='check_positive_rate'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_room_types_room_type', 'room_types', ['room_type'], unique=True)
    op.create_index('ix_room_types_status', 'room_types', ['status'])

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('reference_number', sa.String(length=12), nullable=False),
        sa.Column('room_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=100), nullable=False),
        sa.Column('room_count', sa.Integer(), nullable=False),
        sa.Column('adult_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('child_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('check_in', sa.DateTime(), nullable=False),
        sa.Column('check_out', sa.DateTime(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('guest_info', sa.JSON(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('payment_state', postgresql.ENUM('PENDING', 'SUCCESS', 'FAILED', 'REFUNDED', name='paymentstate', create_type=False), nullable=False),
        sa.Column('payment_order_id', sa.String(length=100), nullable=True),
        sa.Column('payment_id', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('room_count >= 1', name='check_positive_room_count'),
        sa.CheckConstraint('check_out > check_in', name='check_stay_interval'),
        sa.CheckConstraint('total_amount >= 0', name='check_nonnegative_total_amount'),
        sa.ForeignKeyConstraint(['room_type_id'], ['room_types.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reservations_reference_number', 'reservations', ['reference_number'], unique=True)
    op.create_index('ix_reservations_payment_order_id', 'reservations', ['payment_order_id'], unique=True)
    op.create_index('ix_reservations_room_type_stay', 'reservations', ['room_type', 'check_in', 'check_out'])
    op.create_index('ix_reservations_payment_state', 'reservations', ['payment_state'])
    op.create_index('ix_reservations_created_at', 'reservations', [sa.text('created_at DESC')])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table('reservations')
    op.drop_table('room_types')

    op.execute('DROP TYPE IF EXISTS paymentstate')
    op.execute('DROP TYPE IF EXISTS roomtypestatus')
