"""Delivery driver tools."""

from typing import Literal, Optional, Union

from pydantic import Field
from sqlalchemy import text

from bakeryhub.infra.clock import now_iso, period_start_iso
from bakeryhub.models.context import ExecutionContext, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.security.access_validator import load_stored_role
from bakeryhub.tools.base import BaseTool, ToolParams, rows_to_dicts

DRIVER_ROLES = (Role.DRIVER, Role.ADMIN)

# Flat fee per delivery plus a per-kilometre rate
BASE_DELIVERY_FEE = 5.0
PER_KM_RATE = 0.5

OPEN_STATUSES = ("assigned", "picked_up", "in_transit")
DeliveryStatus = Literal["assigned", "picked_up", "in_transit", "delivered", "failed"]


class DriverScopedParams(ToolParams):
    driver_id: Optional[int] = Field(
        default=None,
        description="Driver to act for. Only used by administrators; drivers always act for themselves.",
    )


def resolve_driver_id(context: ExecutionContext, requested: Optional[int]) -> Union[int, Rejection]:
    """Drivers act for their own record; administrators must name a driver."""
    if load_stored_role(context) == Role.ADMIN.value:
        if requested is None:
            return Rejection("driver_id is required for administrators")
        row = context.db.execute(
            text("SELECT id FROM delivery_drivers WHERE id = :driver_id AND tenant_id = :tenant_id"),
            {"driver_id": requested, "tenant_id": context.tenant_id},
        ).first()
    else:
        row = context.db.execute(
            text("""
                SELECT id FROM delivery_drivers
                WHERE user_id = :user_id AND tenant_id = :tenant_id AND is_active = :active
            """),
            {"user_id": context.user_id, "tenant_id": context.tenant_id, "active": True},
        ).first()
    if row is None:
        return Rejection("Driver profile not found")
    return row[0]


def _load_delivery(context: ExecutionContext, delivery_id: int, driver_id: int):
    """The delivery if it belongs to this driver in this tenant, else None."""
    return context.db.execute(
        text("""
            SELECT id, status, purchase_order_id, client_order_id
            FROM delivery_tracking
            WHERE id = :delivery_id AND tenant_id = :tenant_id AND driver_id = :driver_id
        """),
        {"delivery_id": delivery_id, "tenant_id": context.tenant_id, "driver_id": driver_id},
    ).first()


class GetMyDeliveriesParams(DriverScopedParams):
    status: Optional[DeliveryStatus] = Field(default=None, description="Only deliveries in this status")
    include_completed: bool = Field(default=False, description="Include delivered and failed deliveries")
    limit: int = Field(default=20, ge=1, le=50)


class GetMyDeliveries(BaseTool):
    name = "get_my_deliveries"
    description = "List the deliveries assigned to the current driver, newest first."
    params_model = GetMyDeliveriesParams
    allowed_roles = DRIVER_ROLES

    def execute(self, params: GetMyDeliveriesParams, context: ExecutionContext):
        driver_id = resolve_driver_id(context, params.driver_id)
        if isinstance(driver_id, Rejection):
            return driver_id
        query = """
            SELECT id, status, delivery_address, distance_km, purchase_order_id,
                   client_order_id, driver_notes, created_at, delivered_at
            FROM delivery_tracking
            WHERE tenant_id = :tenant_id AND driver_id = :driver_id
        """
        values = {"tenant_id": context.tenant_id, "driver_id": driver_id, "limit": params.limit}
        if params.status:
            query += " AND status = :status"
            values["status"] = params.status
        elif not params.include_completed:
            query += " AND status IN ('assigned', 'picked_up', 'in_transit')"
        query += " ORDER BY created_at DESC, id DESC LIMIT :limit"

        deliveries = rows_to_dicts(context.db.execute(text(query), values))
        return {"deliveries": deliveries, "count": len(deliveries)}


class UpdateDeliveryStatusParams(DriverScopedParams):
    delivery_id: int = Field(..., description="Delivery to update")
    status: Literal["picked_up", "in_transit", "failed"] = Field(..., description="New delivery status")
    notes: Optional[str] = Field(default=None, description="Notes for dispatch")
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class UpdateDeliveryStatus(BaseTool):
    name = "update_delivery_status"
    description = "Update the status and current location of one of the driver's open deliveries."
    params_model = UpdateDeliveryStatusParams
    allowed_roles = DRIVER_ROLES

    def execute(self, params: UpdateDeliveryStatusParams, context: ExecutionContext):
        driver_id = resolve_driver_id(context, params.driver_id)
        if isinstance(driver_id, Rejection):
            return driver_id
        delivery = _load_delivery(context, params.delivery_id, driver_id)
        if delivery is None:
            return Rejection(f"Delivery {params.delivery_id} not found")
        if delivery.status not in OPEN_STATUSES:
            return Rejection(f"Delivery {params.delivery_id} is already {delivery.status}")

        with self.transaction(context.db) as db:
            db.execute(
                text("""
                    UPDATE delivery_tracking
                    SET status = :status,
                        driver_notes = COALESCE(:notes, driver_notes),
                        current_lat = COALESCE(:lat, current_lat),
                        current_lng = COALESCE(:lng, current_lng),
                        updated_at = :now
                    WHERE id = :delivery_id AND tenant_id = :tenant_id
                """),
                {
                    "status": params.status,
                    "notes": params.notes,
                    "lat": params.latitude,
                    "lng": params.longitude,
                    "now": now_iso(),
                    "delivery_id": params.delivery_id,
                    "tenant_id": context.tenant_id,
                },
            )
        return {"delivery_id": params.delivery_id, "previous_status": delivery.status, "status": params.status}


class CompleteDeliveryParams(DriverScopedParams):
    delivery_id: int = Field(..., description="Delivery to mark as delivered")
    proof_of_delivery: Optional[str] = Field(default=None, description="Recipient name or photo reference")
    notes: Optional[str] = None


class CompleteDelivery(BaseTool):
    name = "complete_delivery"
    description = "Mark a delivery as delivered and close the linked order."
    params_model = CompleteDeliveryParams
    allowed_roles = DRIVER_ROLES

    def execute(self, params: CompleteDeliveryParams, context: ExecutionContext):
        driver_id = resolve_driver_id(context, params.driver_id)
        if isinstance(driver_id, Rejection):
            return driver_id
        delivery = _load_delivery(context, params.delivery_id, driver_id)
        if delivery is None:
            return Rejection(f"Delivery {params.delivery_id} not found")
        if delivery.status not in OPEN_STATUSES:
            return Rejection(f"Delivery {params.delivery_id} is already {delivery.status}")

        now = now_iso()
        with self.transaction(context.db) as db:
            db.execute(
                text("""
                    UPDATE delivery_tracking
                    SET status = 'delivered', delivered_at = :now, updated_at = :now,
                        proof_of_delivery = :proof,
                        driver_notes = COALESCE(:notes, driver_notes)
                    WHERE id = :delivery_id AND tenant_id = :tenant_id
                """),
                {
                    "now": now,
                    "proof": params.proof_of_delivery,
                    "notes": params.notes,
                    "delivery_id": params.delivery_id,
                    "tenant_id": context.tenant_id,
                },
            )
            if delivery.client_order_id is not None:
                db.execute(
                    text("""
                        UPDATE client_orders SET status = 'delivered'
                        WHERE id = :order_id AND tenant_id = :tenant_id
                    """),
                    {"order_id": delivery.client_order_id, "tenant_id": context.tenant_id},
                )
            if delivery.purchase_order_id is not None:
                db.execute(
                    text("""
                        UPDATE purchase_orders SET status = 'delivered', updated_at = :now
                        WHERE id = :order_id AND tenant_id = :tenant_id
                    """),
                    {"order_id": delivery.purchase_order_id, "now": now, "tenant_id": context.tenant_id},
                )
        return {"delivery_id": params.delivery_id, "status": "delivered", "delivered_at": now}


class GetDriverEarningsParams(DriverScopedParams):
    period: Literal["today", "week", "month"] = Field(default="today", description="Reporting period")


class GetDriverEarnings(BaseTool):
    name = "get_driver_earnings"
    description = "Summarize completed deliveries and earnings for today, the last week or this month."
    params_model = GetDriverEarningsParams
    allowed_roles = DRIVER_ROLES

    def execute(self, params: GetDriverEarningsParams, context: ExecutionContext):
        driver_id = resolve_driver_id(context, params.driver_id)
        if isinstance(driver_id, Rejection):
            return driver_id
        distances = context.db.execute(
            text("""
                SELECT distance_km FROM delivery_tracking
                WHERE tenant_id = :tenant_id AND driver_id = :driver_id
                  AND status = 'delivered' AND delivered_at >= :since
            """),
            {"tenant_id": context.tenant_id, "driver_id": driver_id, "since": period_start_iso(params.period)},
        ).scalars().all()

        total_distance = sum(float(d or 0) for d in distances)
        total = len(distances) * BASE_DELIVERY_FEE + total_distance * PER_KM_RATE
        return {
            "period": params.period,
            "deliveries_completed": len(distances),
            "total_distance_km": round(total_distance, 2),
            "total_earnings": round(total, 2),
            "average_per_delivery": round(total / len(distances), 2) if distances else 0,
        }


DRIVER_TOOLS = [GetMyDeliveries, UpdateDeliveryStatus, CompleteDelivery, GetDriverEarnings]
