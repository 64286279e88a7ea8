"""Create catalog, inventory, pricing and order tables

Revision ID: 001_order_engine
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_order_engine'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the order engine tables"""

    # ====================
    # CATALOG TABLES
    # ====================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(50), unique=True, nullable=True),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discounted_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_products_sku', 'products', ['sku'])

    op.create_table(
        'colors',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('hex_code', sa.String(7), nullable=True),
    )

    op.create_table(
        'sizes',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('value', sa.String(50), nullable=False),
        sa.Column('system', sa.String(20), nullable=True, comment='e.g. EU, US, UK'),
    )

    # ====================
    # USERS TABLE
    # ====================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), unique=True, nullable=True),
        sa.Column('phone_number', sa.String(20), unique=True, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_phone_number', 'users', ['phone_number'])

    # ====================
    # INVENTORY LEDGER
    # ====================
    op.create_table(
        'product_quantities',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('color_id', sa.Integer, sa.ForeignKey('colors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('size_id', sa.Integer, sa.ForeignKey('sizes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('available_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('reserved_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('minimum_threshold', sa.Integer, server_default='0', nullable=False),
        sa.Column('maximum_capacity', sa.Integer, nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint(
            'product_id', 'color_id', 'size_id',
            name='uq_product_quantity_variant',
            postgresql_nulls_not_distinct=True,
        ),
        sa.CheckConstraint('available_quantity >= 0', name='ck_product_quantity_available_non_negative'),
        sa.CheckConstraint('reserved_quantity >= 0', name='ck_product_quantity_reserved_non_negative'),
    )
    op.create_index('ix_product_quantities_product_id', 'product_quantities', ['product_id'])

    # ====================
    # PRICING RULES
    # ====================
    op.create_table(
        'product_pricing_rules',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('color_id', sa.Integer, sa.ForeignKey('colors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('size_id', sa.Integer, sa.ForeignKey('sizes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('min_quantity', sa.Integer, server_default='1', nullable=False),
        sa.Column('max_quantity', sa.Integer, nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('rule_name', sa.String(100), nullable=True),
        sa.Column('rule_type', sa.String(50), server_default='STANDARD', nullable=False,
                  comment='STANDARD, BULK, VARIANT, VIP, WHOLESALE'),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('priority', sa.Integer, server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index(
        'ix_pricing_rule_variant_tier', 'product_pricing_rules',
        ['product_id', 'color_id', 'size_id', 'min_quantity']
    )
    op.create_index('ix_pricing_rule_product_active', 'product_pricing_rules', ['product_id', 'is_active'])

    # ====================
    # ORDERS
    # ====================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_code', sa.String(30), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.String(50), server_default='PENDING', nullable=False,
                  comment='PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, comment='Items subtotal plus delivery charge'),
        sa.Column('delivery_charge', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
    )
    # Storage-level backstop for order code generation
    op.create_index('ix_orders_order_code', 'orders', ['order_code'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_order_status_created', 'orders', ['status', 'created_at'])
    op.create_index('ix_order_user_created', 'orders', ['user_id', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('color_id', sa.Integer, sa.ForeignKey('colors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('size_id', sa.Integer, sa.ForeignKey('sizes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_order_item_quantity_positive'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'order_shipping',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('address1', sa.String(255), nullable=False),
        sa.Column('address2', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('postal_code', sa.String(20), nullable=False),
        sa.Column('country', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('delivery_area', sa.String(100), nullable=True),
        sa.Column('delivery_charge', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_table(
        'order_status_history',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_status', sa.String(50), nullable=True),
        sa.Column('to_status', sa.String(50), nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])


def downgrade():
    """Drop the order engine tables"""
    op.drop_table('order_status_history')
    op.drop_table('order_shipping')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('product_pricing_rules')
    op.drop_table('product_quantities')
    op.drop_table('users')
    op.drop_table('sizes')
    op.drop_table('colors')
    op.drop_table('products')
