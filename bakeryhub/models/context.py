"""Execution context bound to a verified (tenant, user, role)."""

import threading
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.orm import Session


class Role(str, Enum):
    """Roles a user can hold within a tenant."""
    CLIENT = "client"
    SUPPLIER = "supplier"
    DRIVER = "driver"
    ADMIN = "admin"
    TENANT_ADMIN = "tenant_admin"
    TENANT_MANAGER = "tenant_manager"
    CUSTOMER = "customer"

    @classmethod
    def values(cls) -> list:
        return [role.value for role in cls]


class QuotaOperation(str, Enum):
    """Operations counted against a tenant's subscription limits."""
    ADD_USER = "add_user"
    ADD_PRODUCT = "add_product"
    PLACE_ORDER = "place_order"


@dataclass(frozen=True)
class ExecutionContext:
    """
    Immutable per-request context.

    Created only by the context factory after the user and tenant have been
    verified; the role always comes from the stored user record. Never cached
    across requests.
    """
    tenant_id: int
    user_id: int
    role: Role
    db: Session
    # held by the worker thread running a tool against ``db``
    session_lock: threading.Lock = field(default_factory=threading.Lock, compare=False, repr=False)
