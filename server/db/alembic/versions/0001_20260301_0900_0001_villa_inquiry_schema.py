"""Villa inquiry schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create owners table
    op.create_table('owners',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('tier', sa.String(length=32), nullable=False),
        sa.Column('payout_account_ref', sa.String(length=255), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('commission_percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('contract_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('contract_months', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_owners_email'), 'owners', ['email'], unique=True)

    # Create listings table
    op.create_table('listings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=False),
        sa.Column('region', sa.String(length=128), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('max_guests', sa.Integer(), nullable=False),
        sa.Column('commission_percent', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('base_currency', sa.String(length=3), nullable=False),
        sa.Column('pricing_strategy', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_listings_slug'), 'listings', ['slug'], unique=True)
    op.create_index(op.f('ix_listings_owner_id'), 'listings', ['owner_id'], unique=False)

    # Create listing_pricing table
    op.create_table('listing_pricing',
        sa.Column('listing_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('low_season_rate', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('high_season_rate', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('peak_season_rate', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('high_season_start', sa.String(length=5), nullable=False),
        sa.Column('high_season_end', sa.String(length=5), nullable=False),
        sa.Column('peak_dates', sa.JSON(), nullable=False),
        sa.Column('cleaning_fee', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('security_deposit', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('minimum_nights', sa.Integer(), nullable=False),
        sa.Column('base_guests', sa.Integer(), nullable=True),
        sa.Column('extra_guest_fee', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('listing_id')
    )

    # Create calendar_blocks table
    op.create_table('calendar_blocks',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('listing_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('start_date', sa.String(length=10), nullable=False),
        sa.Column('end_date', sa.String(length=10), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('end_date > start_date', name='ck_calendar_block_range'),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_calendar_blocks_listing_start', 'calendar_blocks', ['listing_id', 'start_date'], unique=False)

    # Create inquiries table
    op.create_table('inquiries',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('listing_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('guest_name', sa.String(length=255), nullable=False),
        sa.Column('guest_email', sa.String(length=320), nullable=False),
        sa.Column('guest_phone', sa.String(length=64), nullable=True),
        sa.Column('check_in', sa.String(length=10), nullable=False),
        sa.Column('check_out', sa.String(length=10), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('occasion', sa.String(length=255), nullable=True),
        sa.Column('origin', sa.String(length=16), nullable=False),
        sa.Column('language', sa.String(length=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('quote_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('owner_email', sa.String(length=320), nullable=True),
        sa.Column('checkout_session_id', sa.String(length=255), nullable=True),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('party_size > 0', name='ck_inquiry_party_size_positive'),
        sa.CheckConstraint('check_out > check_in', name='ck_inquiry_date_range'),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_inquiries_listing_id'), 'inquiries', ['listing_id'], unique=False)
    op.create_index(op.f('ix_inquiries_guest_email'), 'inquiries', ['guest_email'], unique=False)
    op.create_index(op.f('ix_inquiries_status'), 'inquiries', ['status'], unique=False)
    op.create_index(op.f('ix_inquiries_checkout_session_id'), 'inquiries', ['checkout_session_id'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('listing_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('inquiry_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel', sa.String(length=16), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('platform_fee_percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('platform_fee_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('owner_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('stripe_session_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('total_amount >= 0', name='ck_booking_total_non_negative'),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['inquiry_id'], ['inquiries.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_inquiry_id'), 'bookings', ['inquiry_id'], unique=True)
    op.create_index(op.f('ix_bookings_listing_id'), 'bookings', ['listing_id'], unique=False)
    op.create_index(op.f('ix_bookings_owner_id'), 'bookings', ['owner_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_stripe_session_id'), 'bookings', ['stripe_session_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('bookings')
    op.drop_table('inquiries')
    op.drop_table('calendar_blocks')
    op.drop_table('listing_pricing')
    op.drop_table('listings')
    op.drop_table('owners')
