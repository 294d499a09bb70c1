"""Table definitions for the bakery data store.

Queries throughout the service are written with ``text()``; these definitions
exist so the schema can be created for tests, seeding and migrations.
"""

from sqlalchemy import (
    MetaData,
    Table,
    Column,
    Integer,
    String,
    Text,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    func,
    true,
)

metadata = MetaData()

tenants = Table(
    "tenants",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(200), nullable=False),
    Column("slug", String(100), nullable=False, unique=True),
    Column("subscription_plan", String(50), nullable=False, server_default="basic"),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("max_users", Integer, nullable=False, server_default="10"),
    Column("max_products", Integer, nullable=False, server_default="100"),
    Column("max_orders_per_month", Integer, nullable=False, server_default="1000"),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

suppliers = Table(
    "suppliers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=True),
    Column("name", String(200), nullable=False),
    Column("email", String(200)),
    Column("phone", String(50)),
    Column("lead_time_days", Integer, nullable=False, server_default="1"),
    Column("is_active", Boolean, nullable=False, server_default=true()),
)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("email", String(200), nullable=False),
    Column("full_name", String(200)),
    Column("role", String(50), nullable=False),
    Column("phone", String(50)),
    Column("supplier_id", Integer, ForeignKey("suppliers.id"), nullable=True),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("supplier_id", Integer, ForeignKey("suppliers.id"), nullable=True),
    Column("name", String(200), nullable=False),
    Column("category", String(100)),
    Column("description", Text),
    Column("unit", String(50), nullable=False, server_default="unit"),
    Column("price", Float, nullable=False, server_default="0"),
    Column("current_stock", Float, nullable=False, server_default="0"),
    Column("reorder_point", Float, nullable=False, server_default="0"),
    Column("optimal_stock", Float, nullable=False, server_default="0"),
    Column("daily_usage", Float, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

consumption_records = Table(
    "consumption_records",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Float, nullable=False),
    Column("notes", Text),
    Column("recorded_by", Integer, ForeignKey("users.id")),
    Column("recorded_at", String(32), nullable=False),
)

purchase_orders = Table(
    "purchase_orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("supplier_id", Integer, ForeignKey("suppliers.id"), nullable=False),
    Column("created_by", Integer, ForeignKey("users.id")),
    Column("status", String(30), nullable=False, server_default="pending"),
    Column("total_cost", Float, nullable=False, server_default="0"),
    Column("notes", Text),
    Column("expected_delivery", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

purchase_order_items = Table(
    "purchase_order_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("purchase_orders.id"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Float, nullable=False),
    Column("unit_price", Float, nullable=False, server_default="0"),
)

client_orders = Table(
    "client_orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("order_number", String(50), nullable=False),
    Column("status", String(30), nullable=False, server_default="pending"),
    Column("total_amount", Float, nullable=False, server_default="0"),
    Column("delivery_address", Text),
    Column("special_instructions", Text),
    Column("created_at", String(32), nullable=False),
)

client_order_items = Table(
    "client_order_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("client_orders.id"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Float, nullable=False),
    Column("unit_price", Float, nullable=False, server_default="0"),
)

delivery_drivers = Table(
    "delivery_drivers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=True),
    Column("name", String(200), nullable=False),
    Column("phone", String(50)),
    Column("vehicle", String(100)),
    Column("is_active", Boolean, nullable=False, server_default=true()),
)

delivery_tracking = Table(
    "delivery_tracking",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("driver_id", Integer, ForeignKey("delivery_drivers.id"), nullable=False),
    Column("purchase_order_id", Integer, ForeignKey("purchase_orders.id"), nullable=True),
    Column("client_order_id", Integer, ForeignKey("client_orders.id"), nullable=True),
    Column("status", String(30), nullable=False, server_default="assigned"),
    Column("delivery_address", Text),
    Column("distance_km", Float, nullable=False, server_default="0"),
    Column("current_lat", Float),
    Column("current_lng", Float),
    Column("driver_notes", Text),
    Column("proof_of_delivery", Text),
    Column("delivered_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

tool_usage_logs = Table(
    "tool_usage_logs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("tenant_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("tool_name", String(100), nullable=False),
    Column("parameters", Text),
    Column("result", Text),
    Column("success", Boolean, nullable=False),
    Column("error_message", Text),
    Column("denial_stage", String(30)),
    Column("execution_time_ms", Integer),
    Column("created_at", String(32), nullable=False),
)
