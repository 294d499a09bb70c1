"""Binding of an inbound request to a verified execution context."""

import logging

from sqlalchemy import text
from sqlalchemy.orm import Session

from bakeryhub.exceptions import ContextRefusedError
from bakeryhub.models.context import ExecutionContext, Role

logger = logging.getLogger(__name__)


class ContextFactory:
    """Creates execution contexts from stored user and tenant records."""

    def create(self, tenant_id: int, user_id: int, db: Session) -> ExecutionContext:
        """
        Verify that ``user_id`` is an active user of ``tenant_id`` and that the
        tenant is active, then build a context with the stored role.

        Raises:
            ContextRefusedError: If any check fails
        """
        user = db.execute(
            text("""
                SELECT id, role FROM users
                WHERE id = :user_id AND tenant_id = :tenant_id AND is_active = :active
            """),
            {"user_id": user_id, "tenant_id": tenant_id, "active": True},
        ).first()
        if user is None:
            logger.warning("Context refused: user not in tenant", extra={"tenant_id": tenant_id, "user_id": user_id})
            raise ContextRefusedError("user is not an active member of the tenant")

        tenant = db.execute(
            text("SELECT id FROM tenants WHERE id = :tenant_id AND is_active = :active"),
            {"tenant_id": tenant_id, "active": True},
        ).first()
        if tenant is None:
            logger.warning("Context refused: tenant inactive", extra={"tenant_id": tenant_id, "user_id": user_id})
            raise ContextRefusedError("tenant is not active")

        try:
            role = Role(user.role)
        except ValueError:
            logger.error("Stored user role is not recognised", extra={"tenant_id": tenant_id, "user_id": user_id})
            raise ContextRefusedError("user role is not recognised")

        return ExecutionContext(tenant_id=tenant_id, user_id=user_id, role=role, db=db)
