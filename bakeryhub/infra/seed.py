"""Demo data for a local bakery tenant."""

from sqlalchemy.engine import Connection

from bakeryhub.infra import schema
from bakeryhub.infra.clock import now_iso

DEMO_TENANT_ID = 1
OTHER_TENANT_ID = 2

# user ids by role in the demo tenant
DEMO_USERS = {
    "admin": 1,
    "tenant_admin": 2,
    "driver": 3,
    "client": 4,
    "supplier": 5,
    "customer": 6,
    "tenant_manager": 7,
}
OTHER_TENANT_USER_ID = 8
INACTIVE_USER_ID = 9


def seed_demo_data(conn: Connection) -> None:
    """Insert the demo tenants and their data. Expects an empty schema."""
    now = now_iso()

    conn.execute(schema.tenants.insert(), [
        {"id": DEMO_TENANT_ID, "name": "Roni's Bagel Bakery", "slug": "roni-bagels",
         "subscription_plan": "professional", "is_active": True,
         "max_users": 20, "max_products": 50, "max_orders_per_month": 100},
        {"id": OTHER_TENANT_ID, "name": "Other Bakery", "slug": "other-bakery",
         "subscription_plan": "basic", "is_active": True,
         "max_users": 5, "max_products": 10, "max_orders_per_month": 20},
    ])

    conn.execute(schema.suppliers.insert(), [
        {"id": 1, "tenant_id": None, "name": "Golden Flour Co", "email": "orders@goldenflour.example",
         "lead_time_days": 2, "is_active": True},
        {"id": 2, "tenant_id": OTHER_TENANT_ID, "name": "Rye Mills", "email": "sales@ryemills.example",
         "lead_time_days": 3, "is_active": True},
    ])

    conn.execute(schema.users.insert(), [
        {"id": DEMO_USERS["admin"], "tenant_id": DEMO_TENANT_ID, "email": "admin@roni.example",
         "full_name": "Platform Admin", "role": "admin", "supplier_id": None, "is_active": True},
        {"id": DEMO_USERS["tenant_admin"], "tenant_id": DEMO_TENANT_ID, "email": "roni@roni.example",
         "full_name": "Roni Owner", "role": "tenant_admin", "supplier_id": None, "is_active": True},
        {"id": DEMO_USERS["driver"], "tenant_id": DEMO_TENANT_ID, "email": "dana@roni.example",
         "full_name": "Dana Driver", "role": "driver", "supplier_id": None, "is_active": True},
        {"id": DEMO_USERS["client"], "tenant_id": DEMO_TENANT_ID, "email": "kitchen@roni.example",
         "full_name": "Kitchen Staff", "role": "client", "supplier_id": None, "is_active": True},
        {"id": DEMO_USERS["supplier"], "tenant_id": DEMO_TENANT_ID, "email": "rep@goldenflour.example",
         "full_name": "Flour Rep", "role": "supplier", "supplier_id": 1, "is_active": True},
        {"id": DEMO_USERS["customer"], "tenant_id": DEMO_TENANT_ID, "email": "sam@customer.example",
         "full_name": "Sam Customer", "role": "customer", "supplier_id": None, "is_active": True},
        {"id": DEMO_USERS["tenant_manager"], "tenant_id": DEMO_TENANT_ID, "email": "manager@roni.example",
         "full_name": "Shift Manager", "role": "tenant_manager", "supplier_id": None, "is_active": True},
        {"id": OTHER_TENANT_USER_ID, "tenant_id": OTHER_TENANT_ID, "email": "staff@other.example",
         "full_name": "Other Staff", "role": "client", "supplier_id": None, "is_active": True},
        {"id": INACTIVE_USER_ID, "tenant_id": DEMO_TENANT_ID, "email": "former@roni.example",
         "full_name": "Former Staff", "role": "client", "supplier_id": None, "is_active": False},
    ])

    conn.execute(schema.products.insert(), [
        {"id": 1, "tenant_id": DEMO_TENANT_ID, "supplier_id": None, "name": "Everything Bagel", "category": "bagels",
         "description": "Sesame, poppy, garlic and onion", "unit": "unit", "price": 2.5,
         "current_stock": 120, "reorder_point": 40, "optimal_stock": 150, "daily_usage": 30},
        {"id": 2, "tenant_id": DEMO_TENANT_ID, "supplier_id": None, "name": "Sesame Bagel", "category": "bagels",
         "description": "Classic sesame", "unit": "unit", "price": 2.25,
         "current_stock": 15, "reorder_point": 40, "optimal_stock": 120, "daily_usage": 20},
        {"id": 3, "tenant_id": DEMO_TENANT_ID, "supplier_id": None, "name": "Cream Cheese", "category": "spreads",
         "description": "Plain whipped cream cheese", "unit": "tub", "price": 4.0,
         "current_stock": 0, "reorder_point": 10, "optimal_stock": 30, "daily_usage": 5},
        {"id": 4, "tenant_id": DEMO_TENANT_ID, "supplier_id": 1, "name": "Bread Flour", "category": "ingredients",
         "description": "High-gluten flour", "unit": "kg", "price": 1.2,
         "current_stock": 200, "reorder_point": 100, "optimal_stock": 400, "daily_usage": 25},
        {"id": 5, "tenant_id": OTHER_TENANT_ID, "supplier_id": None, "name": "Rye Loaf", "category": "bread",
         "description": "Dark rye", "unit": "unit", "price": 5.0,
         "current_stock": 30, "reorder_point": 10, "optimal_stock": 40, "daily_usage": 8},
    ])

    conn.execute(schema.delivery_drivers.insert(), [
        {"id": 1, "tenant_id": DEMO_TENANT_ID, "user_id": DEMO_USERS["driver"], "name": "Dana Driver",
         "phone": "555-0103", "vehicle": "Van", "is_active": True},
    ])

    conn.execute(schema.purchase_orders.insert(), [
        {"id": 1, "tenant_id": DEMO_TENANT_ID, "supplier_id": 1, "created_by": DEMO_USERS["client"],
         "status": "pending", "total_cost": 60.0, "created_at": now, "updated_at": now},
    ])
    conn.execute(schema.purchase_order_items.insert(), [
        {"order_id": 1, "product_id": 4, "quantity": 50, "unit_price": 1.2},
    ])

    conn.execute(schema.client_orders.insert(), [
        {"id": 1, "tenant_id": DEMO_TENANT_ID, "user_id": DEMO_USERS["customer"], "order_number": "ORD-DEMO-0001",
         "status": "pending", "total_amount": 10.0, "delivery_address": "12 Main St", "created_at": now},
    ])
    conn.execute(schema.client_order_items.insert(), [
        {"order_id": 1, "product_id": 1, "quantity": 4, "unit_price": 2.5},
    ])

    conn.execute(schema.delivery_tracking.insert(), [
        {"id": 1, "tenant_id": DEMO_TENANT_ID, "driver_id": 1, "client_order_id": 1, "status": "assigned",
         "delivery_address": "12 Main St", "distance_km": 4.0, "delivered_at": None,
         "created_at": now, "updated_at": now},
        {"id": 2, "tenant_id": DEMO_TENANT_ID, "driver_id": 1, "client_order_id": None, "status": "delivered",
         "delivery_address": "48 Oak Ave", "distance_km": 6.0, "delivered_at": now,
         "created_at": now, "updated_at": now},
    ])
