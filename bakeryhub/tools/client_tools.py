"""Inventory and purchasing tools for bakery staff."""

from typing import List, Literal, Optional

from pydantic import Field
from sqlalchemy import text

from bakeryhub.infra.clock import now_iso
from bakeryhub.models.context import ExecutionContext, QuotaOperation, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.tools.base import BaseTool, ToolParams, rows_to_dicts

STAFF_ROLES = (Role.CLIENT, Role.ADMIN, Role.TENANT_ADMIN, Role.TENANT_MANAGER)


def stock_level(current_stock: float, reorder_point: float) -> str:
    """Classify stock against its reorder point."""
    if current_stock <= 0:
        return "out_of_stock"
    if current_stock <= reorder_point * 0.5:
        return "critical"
    if current_stock <= reorder_point:
        return "low"
    return "ok"


class GetInventoryStatusParams(ToolParams):
    category: Optional[str] = Field(default=None, description="Only products in this category")
    low_stock_only: bool = Field(default=False, description="Only products at or below their reorder point")
    limit: int = Field(default=50, ge=1, le=200)


class GetInventoryStatus(BaseTool):
    name = "get_inventory_status"
    description = "Current stock levels, reorder points and days of stock remaining for the bakery's products."
    params_model = GetInventoryStatusParams
    allowed_roles = STAFF_ROLES

    def execute(self, params: GetInventoryStatusParams, context: ExecutionContext):
        query = """
            SELECT id, name, category, unit, current_stock, reorder_point, optimal_stock, daily_usage
            FROM products
            WHERE tenant_id = :tenant_id AND is_active = :active
        """
        values = {"tenant_id": context.tenant_id, "active": True, "limit": params.limit}
        if params.category:
            query += " AND LOWER(category) = LOWER(:category)"
            values["category"] = params.category
        if params.low_stock_only:
            query += " AND current_stock <= reorder_point"
        query += " ORDER BY name LIMIT :limit"

        products = rows_to_dicts(context.db.execute(text(query), values))
        for product in products:
            product["stock_level"] = stock_level(product["current_stock"], product["reorder_point"])
            usage = product["daily_usage"] or 0
            product["days_remaining"] = round(product["current_stock"] / usage, 1) if usage > 0 else None

        return {
            "products": products,
            "summary": {
                "total": len(products),
                "low": sum(1 for p in products if p["stock_level"] == "low"),
                "critical": sum(1 for p in products if p["stock_level"] in ("critical", "out_of_stock")),
            },
        }


class OrderItem(ToolParams):
    product_id: int = Field(..., description="Product to order")
    quantity: float = Field(..., gt=0, description="Quantity in the product's unit")


class CreatePurchaseOrderParams(ToolParams):
    supplier_id: int = Field(..., description="Supplier to order from")
    items: List[OrderItem] = Field(..., min_length=1, max_length=50)
    notes: Optional[str] = None
    expected_delivery: Optional[str] = Field(default=None, description="Requested delivery date (YYYY-MM-DD)")


class CreatePurchaseOrder(BaseTool):
    name = "create_purchase_order"
    description = "Create a purchase order with a supplier for one or more products."
    params_model = CreatePurchaseOrderParams
    allowed_roles = STAFF_ROLES
    quota_operation = QuotaOperation.PLACE_ORDER

    def execute(self, params: CreatePurchaseOrderParams, context: ExecutionContext):
        db = context.db
        supplier = db.execute(
            text("""
                SELECT id, name FROM suppliers
                WHERE id = :supplier_id AND is_active = :active
                  AND (tenant_id = :tenant_id OR tenant_id IS NULL)
            """),
            {"supplier_id": params.supplier_id, "tenant_id": context.tenant_id, "active": True},
        ).first()
        if supplier is None:
            return Rejection(f"Supplier {params.supplier_id} not found")

        lines = []
        for item in params.items:
            product = db.execute(
                text("""
                    SELECT id, name, price FROM products
                    WHERE id = :product_id AND tenant_id = :tenant_id AND is_active = :active
                """),
                {"product_id": item.product_id, "tenant_id": context.tenant_id, "active": True},
            ).first()
            if product is None:
                return Rejection(f"Product {item.product_id} not found")
            lines.append((product, item.quantity))

        total_cost = round(sum(product.price * quantity for product, quantity in lines), 2)
        with self.transaction(db):
            order_id = db.execute(
                text("""
                    INSERT INTO purchase_orders (
                        tenant_id, supplier_id, created_by, status, total_cost, notes,
                        expected_delivery, created_at, updated_at
                    ) VALUES (
                        :tenant_id, :supplier_id, :user_id, 'pending', :total_cost, :notes,
                        :expected_delivery, :now, :now
                    )
                    RETURNING id
                """),
                {
                    "tenant_id": context.tenant_id,
                    "supplier_id": supplier.id,
                    "user_id": context.user_id,
                    "total_cost": total_cost,
                    "notes": params.notes,
                    "expected_delivery": params.expected_delivery,
                    "now": now_iso(),
                },
            ).scalar_one()
            for product, quantity in lines:
                db.execute(
                    text("""
                        INSERT INTO purchase_order_items (order_id, product_id, quantity, unit_price)
                        VALUES (:order_id, :product_id, :quantity, :unit_price)
                    """),
                    {"order_id": order_id, "product_id": product.id, "quantity": quantity, "unit_price": product.price},
                )

        return {
            "order_id": order_id,
            "supplier": supplier.name,
            "status": "pending",
            "total_cost": total_cost,
            "items": [{"product": product.name, "quantity": quantity} for product, quantity in lines],
        }


class GetOrderHistoryParams(ToolParams):
    status: Optional[Literal["pending", "confirmed", "preparing", "shipped", "delivered", "cancelled"]] = None
    limit: int = Field(default=20, ge=1, le=100)


class GetOrderHistory(BaseTool):
    name = "get_order_history"
    description = "Recent purchase orders placed by the bakery, with supplier and item counts."
    params_model = GetOrderHistoryParams
    allowed_roles = STAFF_ROLES

    def execute(self, params: GetOrderHistoryParams, context: ExecutionContext):
        query = """
            SELECT po.id, po.status, po.total_cost, po.expected_delivery, po.created_at,
                   s.name AS supplier_name,
                   (SELECT COUNT(*) FROM purchase_order_items poi WHERE poi.order_id = po.id) AS item_count
            FROM purchase_orders po
            JOIN suppliers s ON s.id = po.supplier_id
            WHERE po.tenant_id = :tenant_id
        """
        values = {"tenant_id": context.tenant_id, "limit": params.limit}
        if params.status:
            query += " AND po.status = :status"
            values["status"] = params.status
        query += " ORDER BY po.created_at DESC, po.id DESC LIMIT :limit"

        orders = rows_to_dicts(context.db.execute(text(query), values))
        return {"orders": orders, "count": len(orders)}


class UpdateProductConsumptionParams(ToolParams):
    product_id: int
    quantity: float = Field(..., gt=0, description="Quantity used, in the product's unit")
    notes: Optional[str] = None


class UpdateProductConsumption(BaseTool):
    name = "update_product_consumption"
    description = "Record usage of a product and reduce its stock."
    params_model = UpdateProductConsumptionParams
    allowed_roles = STAFF_ROLES

    def execute(self, params: UpdateProductConsumptionParams, context: ExecutionContext):
        db = context.db
        product = db.execute(
            text("""
                SELECT id, name, unit, current_stock, reorder_point FROM products
                WHERE id = :product_id AND tenant_id = :tenant_id AND is_active = :active
            """),
            {"product_id": params.product_id, "tenant_id": context.tenant_id, "active": True},
        ).first()
        if product is None:
            return Rejection(f"Product {params.product_id} not found")
        if params.quantity > product.current_stock:
            return Rejection(
                f"Insufficient stock for {product.name}: {product.current_stock} {product.unit} available"
            )

        remaining = product.current_stock - params.quantity
        with self.transaction(db):
            db.execute(
                text("UPDATE products SET current_stock = :stock WHERE id = :product_id AND tenant_id = :tenant_id"),
                {"stock": remaining, "product_id": product.id, "tenant_id": context.tenant_id},
            )
            db.execute(
                text("""
                    INSERT INTO consumption_records (tenant_id, product_id, quantity, notes, recorded_by, recorded_at)
                    VALUES (:tenant_id, :product_id, :quantity, :notes, :user_id, :now)
                """),
                {
                    "tenant_id": context.tenant_id,
                    "product_id": product.id,
                    "quantity": params.quantity,
                    "notes": params.notes,
                    "user_id": context.user_id,
                    "now": now_iso(),
                },
            )

        return {
            "product": product.name,
            "consumed": params.quantity,
            "remaining_stock": remaining,
            "needs_reorder": remaining <= product.reorder_point,
        }


CLIENT_TOOLS = [GetInventoryStatus, CreatePurchaseOrder, GetOrderHistory, UpdateProductConsumption]
