"""Initial schema - rooms, bookings, date overrides, calendar feeds

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

On PostgreSQL also adds an exclusion constraint so that two confirmed
bookings of the same room can never overlap. daterange('[)') matches the
application check: check_out of one stay == check_in of the next is fine.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == 'postgresql'

    op.create_table(
        'rooms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('high_season_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_rooms_is_active', 'rooms', ['is_active'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('check_in', sa.Date(), nullable=False),
        sa.Column('check_out', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('guest_name', sa.String(200), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=True),
        sa.Column('guest_phone', sa.String(30), nullable=True),
        sa.Column('guest_country', sa.String(80), nullable=True),
        sa.Column('guests_count', sa.Integer(), server_default='1'),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('total_nights', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_price', sa.Numeric(10, 2), server_default='0'),
        sa.Column('confirmation_number', sa.String(40), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('check_out > check_in', name='ck_booking_dates'),
    )
    op.create_index('ix_booking_room_status_dates', 'bookings', ['room_id', 'status', 'check_in'])

    op.create_table(
        'room_availability',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('block_type', sa.String(20), nullable=False, server_default='full'),
        sa.Column('price_override', sa.Numeric(10, 2), nullable=True),
        sa.Column('sync_source', sa.String(20), server_default='manual'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('room_id', 'date', name='uq_room_availability_room_date'),
    )
    op.create_index('ix_room_availability_blocked', 'room_availability', ['room_id', 'is_available', 'date'])

    op.create_table(
        'room_ical_configs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('platform', sa.String(50), nullable=False, server_default='other'),
        sa.Column('ical_url', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('sync_interval_hours', sa.Integer(), server_default='12'),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('last_sync_status', sa.String(20), nullable=True),
        sa.Column('events_last_sync', sa.Integer(), server_default='0'),
        sa.Column('dates_last_sync', sa.Integer(), server_default='0'),
        sa.Column('last_error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_ical_config_active', 'room_ical_configs', ['is_active', 'last_sync_at'])

    if is_postgres:
        # Last line of defence against double bookings
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute("""
            ALTER TABLE bookings
            ADD CONSTRAINT no_confirmed_booking_overlap
            EXCLUDE USING gist (
                room_id WITH =,
                daterange(check_in, check_out, '[)') WITH &&
            )
            WHERE (status = 'confirmed')
        """)


def downgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS no_confirmed_booking_overlap")

    op.drop_index('ix_ical_config_active', table_name='room_ical_configs')
    op.drop_table('room_ical_configs')
    op.drop_index('ix_room_availability_blocked', table_name='room_availability')
    op.drop_table('room_availability')
    op.drop_index('ix_booking_room_status_dates', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_rooms_is_active', table_name='rooms')
    op.drop_table('rooms')
