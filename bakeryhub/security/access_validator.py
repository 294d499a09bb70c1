"""Authorization checks run before every tool action."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import text

from bakeryhub.models.context import ExecutionContext, QuotaOperation, Role
from bakeryhub.services.quota_service import QUOTA_RULES, get_quota_snapshot

logger = logging.getLogger(__name__)

QUOTA_UNAVAILABLE_REASON = "Unable to validate limits"


@dataclass(frozen=True)
class AccessCheck:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessCheck":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessCheck":
        return cls(allowed=False, reason=reason)


def validate_tenant_access(context: ExecutionContext) -> AccessCheck:
    """The user must be an active member of the context tenant."""
    row = context.db.execute(
        text("""
            SELECT id FROM users
            WHERE id = :user_id AND tenant_id = :tenant_id AND is_active = :active
        """),
        {"user_id": context.user_id, "tenant_id": context.tenant_id, "active": True},
    ).first()
    if row is None:
        return AccessCheck.deny("user is not an active member of the tenant")
    return AccessCheck.allow()


def load_stored_role(context: ExecutionContext) -> Optional[str]:
    """Current role of the context user as stored, or None if the user is gone."""
    return context.db.execute(
        text("SELECT role FROM users WHERE id = :user_id AND tenant_id = :tenant_id"),
        {"user_id": context.user_id, "tenant_id": context.tenant_id},
    ).scalar()


def validate_role_permission(context: ExecutionContext, allowed_roles: Iterable[Role]) -> AccessCheck:
    """
    The user's stored role must be one of ``allowed_roles``.

    The role is re-read on every call so a role change takes effect on the
    next invocation, even within a running conversation.
    """
    stored_role = load_stored_role(context)
    if stored_role is None:
        return AccessCheck.deny("user not found")

    allowed = {Role(role).value for role in allowed_roles}
    if stored_role not in allowed:
        return AccessCheck.deny(f"role '{stored_role}' not permitted")
    return AccessCheck.allow()


def validate_quota(context: ExecutionContext, operation: QuotaOperation) -> AccessCheck:
    """
    Deny when current usage has reached the tenant's limit.

    Any failure while computing usage denies the operation.
    """
    _, _, exceeded_reason = QUOTA_RULES[operation]
    try:
        snapshot = get_quota_snapshot(context.db, context.tenant_id, operation)
    except Exception:
        logger.warning(
            "Quota check failed, denying operation",
            extra={"tenant_id": context.tenant_id, "operation": operation.value},
            exc_info=True,
        )
        return AccessCheck.deny(QUOTA_UNAVAILABLE_REASON)

    if snapshot.exhausted:
        return AccessCheck.deny(exceeded_reason)
    return AccessCheck.allow()
