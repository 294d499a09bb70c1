"""Storefront tools for retail customers."""

import uuid
from typing import List, Optional

from pydantic import Field, model_validator
from sqlalchemy import text

from bakeryhub.exceptions import InsufficientStockError
from bakeryhub.infra.clock import now_iso, utcnow
from bakeryhub.models.context import ExecutionContext, QuotaOperation, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.tools.base import BaseTool, ToolParams, rows_to_dicts

CUSTOMER_ROLES = (Role.CUSTOMER,)


class SearchProductsParams(ToolParams):
    query: str = Field(..., min_length=1, description="Words to match in product name or description")
    category: Optional[str] = None
    in_stock_only: bool = True
    limit: int = Field(default=10, ge=1, le=50)


class SearchProducts(BaseTool):
    name = "search_products"
    description = "Search the bakery's products by name or description."
    params_model = SearchProductsParams
    allowed_roles = CUSTOMER_ROLES

    def execute(self, params: SearchProductsParams, context: ExecutionContext):
        query = """
            SELECT id, name, category, description, unit, price, current_stock
            FROM products
            WHERE tenant_id = :tenant_id AND is_active = :active
              AND (LOWER(name) LIKE :pattern OR LOWER(COALESCE(description, '')) LIKE :pattern)
        """
        values = {
            "tenant_id": context.tenant_id,
            "active": True,
            "pattern": f"%{params.query.lower()}%",
            "limit": params.limit,
        }
        if params.category:
            query += " AND LOWER(category) = LOWER(:category)"
            values["category"] = params.category
        if params.in_stock_only:
            query += " AND current_stock > 0"
        query += " ORDER BY name LIMIT :limit"

        products = rows_to_dicts(context.db.execute(text(query), values))
        for product in products:
            product["in_stock"] = product.pop("current_stock") > 0
        return {"products": products, "count": len(products)}


class CheckProductAvailabilityParams(ToolParams):
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: float = Field(default=1, gt=0)

    @model_validator(mode="after")
    def _needs_product(self):
        if self.product_id is None and not self.product_name:
            raise ValueError("product_id or product_name is required")
        return self


class CheckProductAvailability(BaseTool):
    name = "check_product_availability"
    description = "Check whether a product is available in the requested quantity."
    params_model = CheckProductAvailabilityParams
    allowed_roles = CUSTOMER_ROLES

    def execute(self, params: CheckProductAvailabilityParams, context: ExecutionContext):
        if params.product_id is not None:
            condition, value = "id = :value", params.product_id
        else:
            condition, value = "LOWER(name) = LOWER(:value)", params.product_name
        product = context.db.execute(
            text(f"""
                SELECT id, name, unit, price, current_stock FROM products
                WHERE tenant_id = :tenant_id AND is_active = :active AND {condition}
            """),
            {"tenant_id": context.tenant_id, "active": True, "value": value},
        ).first()
        if product is None:
            return Rejection("Product not found")

        return {
            "product_id": product.id,
            "product": product.name,
            "requested_quantity": params.quantity,
            "available": product.current_stock >= params.quantity,
            "unit": product.unit,
            "price": product.price,
        }


class CustomerOrderItem(ToolParams):
    product_id: int
    quantity: float = Field(..., gt=0)


class PlaceCustomerOrderParams(ToolParams):
    items: List[CustomerOrderItem] = Field(..., min_length=1, max_length=30)
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None


class PlaceCustomerOrder(BaseTool):
    name = "place_customer_order"
    description = "Place an order for one or more in-stock products."
    params_model = PlaceCustomerOrderParams
    allowed_roles = CUSTOMER_ROLES
    quota_operation = QuotaOperation.PLACE_ORDER

    def execute(self, params: PlaceCustomerOrderParams, context: ExecutionContext):
        db = context.db
        lines = []
        for item in params.items:
            product = db.execute(
                text("""
                    SELECT id, name, price, current_stock FROM products
                    WHERE id = :product_id AND tenant_id = :tenant_id AND is_active = :active
                """),
                {"product_id": item.product_id, "tenant_id": context.tenant_id, "active": True},
            ).first()
            if product is None:
                return Rejection(f"Product {item.product_id} not found")
            if product.current_stock < item.quantity:
                return Rejection(f"Only {product.current_stock} of {product.name} available")
            lines.append((product, item.quantity))

        total = round(sum(product.price * quantity for product, quantity in lines), 2)
        order_number = f"ORD-{utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"
        with self.transaction(db):
            order_id = db.execute(
                text("""
                    INSERT INTO client_orders (
                        tenant_id, user_id, order_number, status, total_amount,
                        delivery_address, special_instructions, created_at
                    ) VALUES (
                        :tenant_id, :user_id, :order_number, 'pending', :total,
                        :address, :instructions, :now
                    )
                    RETURNING id
                """),
                {
                    "tenant_id": context.tenant_id,
                    "user_id": context.user_id,
                    "order_number": order_number,
                    "total": total,
                    "address": params.delivery_address,
                    "instructions": params.special_instructions,
                    "now": now_iso(),
                },
            ).scalar_one()
            for product, quantity in lines:
                db.execute(
                    text("""
                        INSERT INTO client_order_items (order_id, product_id, quantity, unit_price)
                        VALUES (:order_id, :product_id, :quantity, :unit_price)
                    """),
                    {"order_id": order_id, "product_id": product.id, "quantity": quantity, "unit_price": product.price},
                )
                # Guarded decrement so a concurrent order cannot oversell
                updated = db.execute(
                    text("""
                        UPDATE products SET current_stock = current_stock - :quantity
                        WHERE id = :product_id AND tenant_id = :tenant_id AND current_stock >= :quantity
                    """),
                    {"quantity": quantity, "product_id": product.id, "tenant_id": context.tenant_id},
                )
                if updated.rowcount != 1:
                    raise InsufficientStockError(f"{product.name} sold out while placing the order")

        return {
            "order_id": order_id,
            "order_number": order_number,
            "status": "pending",
            "total_amount": total,
            "items": [{"product": product.name, "quantity": quantity} for product, quantity in lines],
        }


CUSTOMER_TOOLS = [SearchProducts, CheckProductAvailability, PlaceCustomerOrder]
