"""Subscription usage computed on demand from live counts."""

import logging
from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import text
from sqlalchemy.orm import Session

from bakeryhub.infra.clock import month_start_iso
from bakeryhub.models.context import QuotaOperation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaSnapshot:
    metric: str
    current_value: int
    max_value: int

    @property
    def exhausted(self) -> bool:
        return self.current_value >= self.max_value

    @property
    def remaining(self) -> int:
        return max(self.max_value - self.current_value, 0)


# operation -> (metric name, tenant limit column, denial reason)
QUOTA_RULES: Dict[QuotaOperation, tuple] = {
    QuotaOperation.ADD_USER: ("users", "max_users", "User limit exceeded"),
    QuotaOperation.ADD_PRODUCT: ("products", "max_products", "Product limit exceeded"),
    QuotaOperation.PLACE_ORDER: ("monthly_orders", "max_orders_per_month", "Monthly order limit exceeded"),
}


def _count(db: Session, sql: str, params: dict) -> int:
    value = db.execute(text(sql), params).scalar()
    return max(int(value or 0), 0)


def _current_value(db: Session, tenant_id: int, metric: str) -> int:
    if metric == "users":
        return _count(
            db,
            "SELECT COUNT(*) FROM users WHERE tenant_id = :tenant_id AND is_active = :active",
            {"tenant_id": tenant_id, "active": True},
        )
    if metric == "products":
        return _count(
            db,
            "SELECT COUNT(*) FROM products WHERE tenant_id = :tenant_id AND is_active = :active",
            {"tenant_id": tenant_id, "active": True},
        )
    # Both customer orders and supplier purchase orders count towards the monthly limit
    params = {"tenant_id": tenant_id, "since": month_start_iso()}
    return _count(
        db,
        "SELECT COUNT(*) FROM client_orders WHERE tenant_id = :tenant_id AND created_at >= :since",
        params,
    ) + _count(
        db,
        "SELECT COUNT(*) FROM purchase_orders WHERE tenant_id = :tenant_id AND created_at >= :since",
        params,
    )


def get_quota_snapshot(db: Session, tenant_id: int, operation: QuotaOperation) -> QuotaSnapshot:
    """
    Compute current usage against the tenant's limit for an operation.

    Raises:
        LookupError: If the tenant does not exist
        ValueError: If the stored limit is not a positive number
    """
    metric, limit_column, _ = QUOTA_RULES[operation]
    row = db.execute(
        text(f"SELECT {limit_column} FROM tenants WHERE id = :tenant_id"),
        {"tenant_id": tenant_id},
    ).first()
    if row is None:
        raise LookupError(f"Tenant {tenant_id} not found")

    max_value = int(row[0]) if row[0] is not None else 0
    if max_value < 1:
        raise ValueError(f"Tenant {tenant_id} has invalid {limit_column}: {row[0]}")

    return QuotaSnapshot(
        metric=metric,
        current_value=_current_value(db, tenant_id, metric),
        max_value=max_value,
    )


def get_usage_report(db: Session, tenant_id: int) -> List[QuotaSnapshot]:
    """All quota snapshots for a tenant, in a fixed order."""
    return [get_quota_snapshot(db, tenant_id, operation) for operation in QUOTA_RULES]
