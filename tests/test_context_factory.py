"""Tests for binding requests to execution contexts."""

import pytest
from sqlalchemy import text

from bakeryhub.exceptions import ContextRefusedError
from bakeryhub.infra.seed import DEMO_TENANT_ID, DEMO_USERS, INACTIVE_USER_ID, OTHER_TENANT_ID, OTHER_TENANT_USER_ID
from bakeryhub.models.context import Role
from bakeryhub.services.context_factory import ContextFactory


class TestContextFactory:

    def setup_method(self):
        self.factory = ContextFactory()

    def test_creates_context_with_stored_role(self, db_session):
        context = self.factory.create(DEMO_TENANT_ID, DEMO_USERS["driver"], db_session)
        assert context.tenant_id == DEMO_TENANT_ID
        assert context.user_id == DEMO_USERS["driver"]
        assert context.role == Role.DRIVER
        assert context.db is db_session

    def test_user_from_another_tenant_refused(self, db_session):
        """A real user of tenant 2 cannot act inside tenant 1."""
        with pytest.raises(ContextRefusedError):
            self.factory.create(DEMO_TENANT_ID, OTHER_TENANT_USER_ID, db_session)

    def test_tenant_user_pairing_is_checked_both_ways(self, db_session):
        with pytest.raises(ContextRefusedError):
            self.factory.create(OTHER_TENANT_ID, DEMO_USERS["client"], db_session)

    def test_inactive_user_refused(self, db_session):
        with pytest.raises(ContextRefusedError):
            self.factory.create(DEMO_TENANT_ID, INACTIVE_USER_ID, db_session)

    def test_unknown_user_refused(self, db_session):
        with pytest.raises(ContextRefusedError):
            self.factory.create(DEMO_TENANT_ID, 9999, db_session)

    def test_inactive_tenant_refused(self, db_session):
        db_session.execute(text("UPDATE tenants SET is_active = :off WHERE id = :id"), {"off": False, "id": DEMO_TENANT_ID})
        db_session.commit()
        with pytest.raises(ContextRefusedError) as exc_info:
            self.factory.create(DEMO_TENANT_ID, DEMO_USERS["client"], db_session)
        assert exc_info.value.reason == "tenant is not active"

    def test_unrecognised_stored_role_refused(self, db_session):
        db_session.execute(text("UPDATE users SET role = 'baker' WHERE id = :id"), {"id": DEMO_USERS["client"]})
        db_session.commit()
        with pytest.raises(ContextRefusedError):
            self.factory.create(DEMO_TENANT_ID, DEMO_USERS["client"], db_session)
