"""Supplier-facing order tools."""

from typing import Literal, Optional, Union

from pydantic import Field
from sqlalchemy import text

from bakeryhub.infra.clock import now_iso
from bakeryhub.models.context import ExecutionContext, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.security.access_validator import load_stored_role
from bakeryhub.tools.base import BaseTool, ToolParams, rows_to_dicts

SUPPLIER_ROLES = (Role.SUPPLIER, Role.ADMIN)

# status -> statuses it may move to
ORDER_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"preparing", "cancelled"},
    "preparing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}


def resolve_supplier_id(context: ExecutionContext, requested: Optional[int]) -> Union[int, None, Rejection]:
    """
    Suppliers only see their own orders. Administrators may filter by
    supplier or see every supplier (None).
    """
    if load_stored_role(context) == Role.ADMIN.value:
        return requested
    supplier_id = context.db.execute(
        text("SELECT supplier_id FROM users WHERE id = :user_id AND tenant_id = :tenant_id"),
        {"user_id": context.user_id, "tenant_id": context.tenant_id},
    ).scalar()
    if supplier_id is None:
        return Rejection("No supplier account is linked to this user")
    return supplier_id


class GetPendingOrdersParams(ToolParams):
    status: Literal["pending", "confirmed", "preparing", "shipped"] = "pending"
    supplier_id: Optional[int] = Field(default=None, description="Administrators only: filter by supplier")
    limit: int = Field(default=20, ge=1, le=100)


class GetPendingOrders(BaseTool):
    name = "get_pending_orders"
    description = "Purchase orders awaiting action from the supplier, oldest first."
    params_model = GetPendingOrdersParams
    allowed_roles = SUPPLIER_ROLES

    def execute(self, params: GetPendingOrdersParams, context: ExecutionContext):
        supplier_id = resolve_supplier_id(context, params.supplier_id)
        if isinstance(supplier_id, Rejection):
            return supplier_id
        query = """
            SELECT po.id, po.status, po.total_cost, po.notes, po.expected_delivery, po.created_at,
                   po.supplier_id,
                   (SELECT COUNT(*) FROM purchase_order_items poi WHERE poi.order_id = po.id) AS item_count
            FROM purchase_orders po
            WHERE po.tenant_id = :tenant_id AND po.status = :status
        """
        values = {"tenant_id": context.tenant_id, "status": params.status, "limit": params.limit}
        if supplier_id is not None:
            query += " AND po.supplier_id = :supplier_id"
            values["supplier_id"] = supplier_id
        query += " ORDER BY po.created_at ASC, po.id ASC LIMIT :limit"

        orders = rows_to_dicts(context.db.execute(text(query), values))
        return {"orders": orders, "count": len(orders)}


class UpdateOrderStatusParams(ToolParams):
    order_id: int
    status: Literal["confirmed", "preparing", "shipped", "delivered", "cancelled"]
    notes: Optional[str] = None


class UpdateOrderStatus(BaseTool):
    name = "update_order_status"
    description = "Move a purchase order to its next status (confirm, prepare, ship, deliver or cancel)."
    params_model = UpdateOrderStatusParams
    allowed_roles = SUPPLIER_ROLES

    def execute(self, params: UpdateOrderStatusParams, context: ExecutionContext):
        supplier_id = resolve_supplier_id(context, None)
        if isinstance(supplier_id, Rejection):
            return supplier_id
        query = "SELECT id, status FROM purchase_orders WHERE id = :order_id AND tenant_id = :tenant_id"
        values = {"order_id": params.order_id, "tenant_id": context.tenant_id}
        if supplier_id is not None:
            query += " AND supplier_id = :supplier_id"
            values["supplier_id"] = supplier_id
        order = context.db.execute(text(query), values).first()
        if order is None:
            return Rejection(f"Order {params.order_id} not found")

        if params.status not in ORDER_TRANSITIONS.get(order.status, set()):
            return Rejection(f"Cannot change order {params.order_id} from {order.status} to {params.status}")

        with self.transaction(context.db) as db:
            db.execute(
                text("""
                    UPDATE purchase_orders
                    SET status = :status, updated_at = :now,
                        notes = COALESCE(:notes, notes)
                    WHERE id = :order_id AND tenant_id = :tenant_id
                """),
                {
                    "status": params.status,
                    "now": now_iso(),
                    "notes": params.notes,
                    "order_id": params.order_id,
                    "tenant_id": context.tenant_id,
                },
            )
        return {"order_id": params.order_id, "previous_status": order.status, "status": params.status}


SUPPLIER_TOOLS = [GetPendingOrders, UpdateOrderStatus]
