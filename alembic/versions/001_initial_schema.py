"""Initial bakery schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('subscription_plan', sa.String(50), nullable=False, server_default='basic'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('max_users', sa.Integer, nullable=False, server_default='10'),
        sa.Column('max_products', sa.Integer, nullable=False, server_default='100'),
        sa.Column('max_orders_per_month', sa.Integer, nullable=False, server_default='1000'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.current_timestamp()),
    )
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(200)),
        sa.Column('phone', sa.String(50)),
        sa.Column('lead_time_days', sa.Integer, nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('email', sa.String(200), nullable=False),
        sa.Column('full_name', sa.String(200)),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('supplier_id', sa.Integer, sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_table(
        'products',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer, sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('category', sa.String(100)),
        sa.Column('description', sa.Text),
        sa.Column('unit', sa.String(50), nullable=False, server_default='unit'),
        sa.Column('price', sa.Float, nullable=False, server_default='0'),
        sa.Column('current_stock', sa.Float, nullable=False, server_default='0'),
        sa.Column('reorder_point', sa.Float, nullable=False, server_default='0'),
        sa.Column('optimal_stock', sa.Float, nullable=False, server_default='0'),
        sa.Column('daily_usage', sa.Float, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_table(
        'consumption_records',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Float, nullable=False),
        sa.Column('notes', sa.Text),
        sa.Column('recorded_by', sa.Integer, sa.ForeignKey('users.id')),
        sa.Column('recorded_at', sa.String(32), nullable=False),
    )
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer, sa.ForeignKey('suppliers.id'), nullable=False),
        sa.Column('created_by', sa.Integer, sa.ForeignKey('users.id')),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('total_cost', sa.Float, nullable=False, server_default='0'),
        sa.Column('notes', sa.Text),
        sa.Column('expected_delivery', sa.String(32)),
        sa.Column('created_at', sa.String(32), nullable=False),
        sa.Column('updated_at', sa.String(32)),
    )
    op.create_index('ix_purchase_orders_tenant_created', 'purchase_orders', ['tenant_id', 'created_at'])
    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('purchase_orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Float, nullable=False),
        sa.Column('unit_price', sa.Float, nullable=False, server_default='0'),
    )
    op.create_table(
        'client_orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('total_amount', sa.Float, nullable=False, server_default='0'),
        sa.Column('delivery_address', sa.Text),
        sa.Column('special_instructions', sa.Text),
        sa.Column('created_at', sa.String(32), nullable=False),
    )
    op.create_index('ix_client_orders_tenant_created', 'client_orders', ['tenant_id', 'created_at'])
    op.create_table(
        'client_order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('client_orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Float, nullable=False),
        sa.Column('unit_price', sa.Float, nullable=False, server_default='0'),
    )
    op.create_table(
        'delivery_drivers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('vehicle', sa.String(100)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        'delivery_tracking',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('driver_id', sa.Integer, sa.ForeignKey('delivery_drivers.id'), nullable=False),
        sa.Column('purchase_order_id', sa.Integer, sa.ForeignKey('purchase_orders.id'), nullable=True),
        sa.Column('client_order_id', sa.Integer, sa.ForeignKey('client_orders.id'), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='assigned'),
        sa.Column('delivery_address', sa.Text),
        sa.Column('distance_km', sa.Float, nullable=False, server_default='0'),
        sa.Column('current_lat', sa.Float),
        sa.Column('current_lng', sa.Float),
        sa.Column('driver_notes', sa.Text),
        sa.Column('proof_of_delivery', sa.Text),
        sa.Column('delivered_at', sa.String(32)),
        sa.Column('created_at', sa.String(32), nullable=False),
        sa.Column('updated_at', sa.String(32)),
    )
    op.create_table(
        'tool_usage_logs',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, nullable=False),
        sa.Column('user_id', sa.Integer, nullable=False),
        sa.Column('tool_name', sa.String(100), nullable=False),
        sa.Column('parameters', sa.Text),
        sa.Column('result', sa.Text),
        sa.Column('success', sa.Boolean, nullable=False),
        sa.Column('error_message', sa.Text),
        sa.Column('denial_stage', sa.String(30)),
        sa.Column('execution_time_ms', sa.Integer),
        sa.Column('created_at', sa.String(32), nullable=False),
    )
    op.create_index('ix_tool_usage_logs_tenant_created', 'tool_usage_logs', ['tenant_id', 'created_at'])


def downgrade() -> None:
    for table in [
        'tool_usage_logs',
        'delivery_tracking',
        'delivery_drivers',
        'client_order_items',
        'client_orders',
        'purchase_order_items',
        'purchase_orders',
        'consumption_records',
        'products',
        'users',
        'suppliers',
        'tenants',
    ]:
        op.drop_table(table)
