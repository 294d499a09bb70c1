"""Tenant administration tools."""

from datetime import timedelta
from typing import Literal, Optional

from pydantic import Field
from sqlalchemy import text

from bakeryhub.infra.clock import month_start_iso, now_iso, utcnow
from bakeryhub.models.context import ExecutionContext, QuotaOperation, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.services.quota_service import get_usage_report
from bakeryhub.tools.base import BaseTool, ToolParams

MANAGEMENT_ROLES = (Role.ADMIN, Role.TENANT_ADMIN, Role.TENANT_MANAGER)
ACCOUNT_ROLES = (Role.ADMIN, Role.TENANT_ADMIN)


class GetTenantUsage(BaseTool):
    name = "get_tenant_usage"
    description = "Usage of the bakery's subscription limits: users, products and orders this month."
    allowed_roles = MANAGEMENT_ROLES

    def execute(self, params: ToolParams, context: ExecutionContext):
        plan = context.db.execute(
            text("SELECT name, subscription_plan FROM tenants WHERE id = :tenant_id"),
            {"tenant_id": context.tenant_id},
        ).first()
        return {
            "tenant": plan.name if plan else None,
            "subscription_plan": plan.subscription_plan if plan else None,
            "limits": [
                {
                    "metric": snapshot.metric,
                    "current": snapshot.current_value,
                    "max": snapshot.max_value,
                    "remaining": snapshot.remaining,
                    "percent_used": round(100 * snapshot.current_value / snapshot.max_value, 1),
                }
                for snapshot in get_usage_report(context.db, context.tenant_id)
            ],
        }


class GetSystemStatus(BaseTool):
    name = "get_system_status"
    description = "Operational overview of the bakery: open orders, active deliveries, low stock and recent tool failures."
    allowed_roles = ACCOUNT_ROLES

    def execute(self, params: ToolParams, context: ExecutionContext):
        db = context.db
        values = {"tenant_id": context.tenant_id}

        def count(sql: str, **extra) -> int:
            return int(db.execute(text(sql), {**values, **extra}).scalar() or 0)

        return {
            "pending_purchase_orders": count(
                "SELECT COUNT(*) FROM purchase_orders WHERE tenant_id = :tenant_id AND status = 'pending'"
            ),
            "open_customer_orders": count(
                "SELECT COUNT(*) FROM client_orders WHERE tenant_id = :tenant_id "
                "AND status NOT IN ('delivered', 'cancelled')"
            ),
            "active_deliveries": count(
                "SELECT COUNT(*) FROM delivery_tracking WHERE tenant_id = :tenant_id "
                "AND status IN ('assigned', 'picked_up', 'in_transit')"
            ),
            "low_stock_products": count(
                "SELECT COUNT(*) FROM products WHERE tenant_id = :tenant_id AND is_active = :active "
                "AND current_stock <= reorder_point",
                active=True,
            ),
            "orders_this_month": count(
                "SELECT COUNT(*) FROM client_orders WHERE tenant_id = :tenant_id AND created_at >= :since",
                since=month_start_iso(),
            ),
            "tool_failures_last_24h": count(
                "SELECT COUNT(*) FROM tool_usage_logs WHERE tenant_id = :tenant_id "
                "AND success = :failed AND created_at >= :since",
                failed=False,
                since=now_iso(utcnow() - timedelta(hours=24)),
            ),
        }


class CreateUserParams(ToolParams):
    email: str = Field(..., min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    full_name: str = Field(..., min_length=1, max_length=200)
    role: Literal["client", "supplier", "driver", "tenant_admin", "tenant_manager", "customer"]
    phone: Optional[str] = None


class CreateUser(BaseTool):
    name = "create_user"
    description = "Add a user account to the bakery, within the subscription's user limit."
    params_model = CreateUserParams
    allowed_roles = ACCOUNT_ROLES
    quota_operation = QuotaOperation.ADD_USER

    def execute(self, params: CreateUserParams, context: ExecutionContext):
        db = context.db
        existing = db.execute(
            text("SELECT id FROM users WHERE tenant_id = :tenant_id AND LOWER(email) = LOWER(:email)"),
            {"tenant_id": context.tenant_id, "email": params.email},
        ).first()
        if existing is not None:
            return Rejection(f"A user with email {params.email} already exists")

        with self.transaction(db):
            user_id = db.execute(
                text("""
                    INSERT INTO users (tenant_id, email, full_name, role, phone, is_active)
                    VALUES (:tenant_id, :email, :full_name, :role, :phone, :active)
                    RETURNING id
                """),
                {
                    "tenant_id": context.tenant_id,
                    "email": params.email.lower(),
                    "full_name": params.full_name,
                    "role": params.role,
                    "phone": params.phone,
                    "active": True,
                },
            ).scalar_one()
        return {"user_id": user_id, "email": params.email.lower(), "role": params.role}


class AddProductParams(ToolParams):
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    unit: str = Field(default="unit", max_length=50)
    price: float = Field(default=0, ge=0)
    current_stock: float = Field(default=0, ge=0)
    reorder_point: float = Field(default=0, ge=0)
    optimal_stock: float = Field(default=0, ge=0)
    supplier_id: Optional[int] = None


class AddProduct(BaseTool):
    name = "add_product"
    description = "Add a product to the bakery's catalogue, within the subscription's product limit."
    params_model = AddProductParams
    allowed_roles = MANAGEMENT_ROLES
    quota_operation = QuotaOperation.ADD_PRODUCT

    def execute(self, params: AddProductParams, context: ExecutionContext):
        db = context.db
        duplicate = db.execute(
            text("""
                SELECT id FROM products
                WHERE tenant_id = :tenant_id AND is_active = :active AND LOWER(name) = LOWER(:name)
            """),
            {"tenant_id": context.tenant_id, "active": True, "name": params.name},
        ).first()
        if duplicate is not None:
            return Rejection(f"Product '{params.name}' already exists")

        if params.supplier_id is not None:
            supplier = db.execute(
                text("""
                    SELECT id FROM suppliers
                    WHERE id = :supplier_id AND (tenant_id = :tenant_id OR tenant_id IS NULL)
                """),
                {"supplier_id": params.supplier_id, "tenant_id": context.tenant_id},
            ).first()
            if supplier is None:
                return Rejection(f"Supplier {params.supplier_id} not found")

        with self.transaction(db):
            product_id = db.execute(
                text("""
                    INSERT INTO products (
                        tenant_id, supplier_id, name, category, unit, price,
                        current_stock, reorder_point, optimal_stock, is_active
                    ) VALUES (
                        :tenant_id, :supplier_id, :name, :category, :unit, :price,
                        :current_stock, :reorder_point, :optimal_stock, :active
                    )
                    RETURNING id
                """),
                {
                    "tenant_id": context.tenant_id,
                    "supplier_id": params.supplier_id,
                    "name": params.name,
                    "category": params.category,
                    "unit": params.unit,
                    "price": params.price,
                    "current_stock": params.current_stock,
                    "reorder_point": params.reorder_point,
                    "optimal_stock": params.optimal_stock,
                    "active": True,
                },
            ).scalar_one()
        return {"product_id": product_id, "name": params.name}


ADMIN_TOOLS = [GetTenantUsage, GetSystemStatus, CreateUser, AddProduct]
