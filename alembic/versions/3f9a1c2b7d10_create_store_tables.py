"""create_store_tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

country_enum = postgresql.ENUM('togo', 'benin', name='store_country_enum', create_type=False)
delivery_mode_enum = postgresql.ENUM('delivery', 'pickup', name='store_delivery_mode_enum', create_type=False)
payment_method_enum = postgresql.ENUM('mobile', 'card', 'cash', name='store_payment_method_enum', create_type=False)
order_status_enum = postgresql.ENUM(
    'pending', 'paid', 'processing', 'shipped', 'delivered', 'cancelled',
    name='store_order_status_enum',
    create_type=False,
)
storage_scope_enum = postgresql.ENUM('local', 'session', name='store_storage_scope_enum', create_type=False)

ENUMS = (country_enum, delivery_mode_enum, payment_method_enum, order_status_enum, storage_scope_enum)


def upgrade() -> None:
    """Upgrade schema - Add store catalog, order and client state tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # Catalog
    op.create_table(
        'store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price_min', sa.Integer(), nullable=True),
        sa.Column('original_price', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'store_colors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('hex_code', sa.String(length=9), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'store_product_colors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('color_id', sa.Uuid(), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default='false', nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['color_id'], ['store_colors.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'color_id', name='unique_product_color'),
    )

    op.create_table(
        'store_product_color_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_color_id', sa.Uuid(), nullable=False),
        sa.Column('image_url', sa.String(length=1024), nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['product_color_id'], ['store_product_colors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'store_product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('product_color_id', sa.Uuid(), nullable=False),
        sa.Column('length', sa.Numeric(precision=5, scale=1), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('stock_count', sa.Integer(), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_color_id'], ['store_product_colors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )

    # Orders
    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('country', country_enum, nullable=True),
        sa.Column('region', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('delivery_mode', delivery_mode_enum, server_default='delivery', nullable=False),
        sa.Column('delivery_fee', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('payment_provider', sa.String(length=50), nullable=True),
        sa.Column('payment_id', sa.String(length=100), nullable=True),
        sa.Column('payment_status', sa.String(length=50), nullable=True),
        sa.Column('status', order_status_enum, server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_orders_user_id', 'store_orders', ['user_id'])
    op.create_index('ix_store_orders_payment_id', 'store_orders', ['payment_id'], unique=True)

    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('variant_id', sa.Uuid(), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('length', sa.Numeric(precision=5, scale=1), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='positive_quantity'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    # Shopper state
    op.create_table(
        'store_client_state',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('scope', storage_scope_enum, nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'scope', 'key', name='unique_client_state_key'),
    )
    op.create_index('ix_store_client_state_session_id', 'store_client_state', ['session_id'])


def downgrade() -> None:
    """Downgrade schema - Drop store tables."""
    op.drop_index('ix_store_client_state_session_id', table_name='store_client_state')
    op.drop_table('store_client_state')
    op.drop_table('store_order_items')
    op.drop_index('ix_store_orders_payment_id', table_name='store_orders')
    op.drop_index('ix_store_orders_user_id', table_name='store_orders')
    op.drop_table('store_orders')
    op.drop_table('store_product_variants')
    op.drop_table('store_product_color_images')
    op.drop_table('store_product_colors')
    op.drop_table('store_colors')
    op.drop_table('store_products')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
