"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Property listings table
    op.create_table(
        'property_listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('price_type', sa.String(length=8), nullable=False, server_default='sale'),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('area_name', sa.String(length=100), nullable=True),
        sa.Column('full_address', sa.String(length=500), nullable=True),
        sa.Column('property_type', sa.String(length=16), nullable=False, server_default='other'),
        sa.Column('bhk', sa.Integer(), nullable=True),
        sa.Column('area_size', sa.Float(), nullable=False, server_default='0'),
        sa.Column('area_unit', sa.String(length=8), nullable=False, server_default='sqft'),
        sa.Column('amenities', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('images', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('source_name', sa.String(length=64), nullable=False),
        sa.Column('source_url', sa.Text(), nullable=False),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('contact_phone', sa.String(length=32), nullable=True),
        sa.Column('contact_email', sa.String(length=254), nullable=True),
        sa.Column('contact_agent', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('ai_processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('confidence', sa.Float(), nullable=False, server_default='0.5'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_name', 'source_url', name='uq_listing_source'),
        sa.CheckConstraint('price >= 0', name='ck_listing_price_non_negative'),
        sa.CheckConstraint('confidence >= 0 AND confidence <= 1', name='ck_listing_confidence'),
    )
    op.create_index('ix_listing_city', 'property_listings', ['city'])
    op.create_index('ix_listing_status', 'property_listings', ['status'])


def downgrade() -> None:
    op.drop_index('ix_listing_status', table_name='property_listings')
    op.drop_index('ix_listing_city', table_name='property_listings')
    op.drop_table('property_listings')
