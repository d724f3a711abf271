"""Initial migration

Revision ID: 001
Revises:
Create Date: 2025-01-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create restaurants table
    op.create_table(
        'restaurants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('address', sa.Text()),
        sa.Column('fallback_phone', sa.String(20)),
        sa.Column('max_capacity', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('max_capacity_lunch', sa.Integer()),
        sa.Column('max_capacity_dinner', sa.Integer()),
        sa.Column('opening_hours', postgresql.JSON()),
        sa.Column('closed_dates', postgresql.JSON()),
        sa.Column('sms_enabled', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create calls table
    op.create_table(
        'calls',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('vapi_call_id', sa.String(100), unique=True),
        sa.Column('phone_number', sa.String(20)),
        sa.Column('started_at', sa.DateTime()),
        sa.Column('ended_at', sa.DateTime()),
        sa.Column('duration_seconds', sa.Integer()),
        sa.Column('status', sa.String(20), server_default='in_progress'),
        sa.Column('transcript', sa.Text()),
        sa.Column('summary', sa.Text()),
        sa.Column('metadata_json', postgresql.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('call_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('calls.id')),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('reservation_date', sa.Date(), nullable=False),
        sa.Column('reservation_time', sa.String(5), nullable=False),
        sa.Column('number_of_guests', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('source', sa.String(20), server_default='phone'),
        sa.Column('special_requests', sa.Text()),
        sa.Column('confidence_score', sa.Float()),
        sa.Column('needs_confirmation', sa.Boolean(), server_default=sa.false()),
        sa.Column('cancellation_token', sa.String(64), unique=True, nullable=False),
        sa.Column('confirmation_sent_at', sa.DateTime()),
        sa.Column('reminder_sent_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('number_of_guests > 0', name='ck_reservations_guests_positive'),
    )

    # Create waitlist table
    op.create_table(
        'waitlist',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('call_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('calls.id')),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('desired_date', sa.Date(), nullable=False),
        sa.Column('desired_time', sa.String(5)),
        sa.Column('desired_service', sa.String(10), server_default='any'),
        sa.Column('party_size', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(30), server_default='waiting'),
        sa.Column('notes', sa.Text()),
        sa.Column('converted_reservation_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservations.id')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_calls_restaurant_id', 'calls', ['restaurant_id'])
    op.create_index('ix_calls_started_at', 'calls', ['started_at'])
    op.create_index('ix_reservations_restaurant_date', 'reservations', ['restaurant_id', 'reservation_date'])
    op.create_index('ix_reservations_customer_phone', 'reservations', ['customer_phone'])
    op.create_index('ix_reservations_status', 'reservations', ['status'])
    op.create_index('ix_waitlist_restaurant_date', 'waitlist', ['restaurant_id', 'desired_date'])


def downgrade() -> None:
    op.drop_table('waitlist')
    op.drop_table('reservations')
    op.drop_table('calls')
    op.drop_table('restaurants')
