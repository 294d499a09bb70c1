"""Tests for the fixed invocation sequence shared by every tool."""

import json
import time
from unittest.mock import MagicMock

import pytest
from pydantic import Field
from sqlalchemy import text

from bakeryhub.exceptions import BusinessRuleError
from bakeryhub.infra.seed import DEMO_TENANT_ID, DEMO_USERS, OTHER_TENANT_ID
from bakeryhub.models.context import QuotaOperation, Role
from bakeryhub.models.tool import Rejection
from bakeryhub.tools.base import BaseTool, ToolParams, wait_for_idle_session


class SpyParams(ToolParams):
    product_id: int
    note: str = Field(default="", max_length=2000)


class SpyTool(BaseTool):
    """Records every call to ``execute`` and writes one row per call."""
    name = "spy_tool"
    description = "Test tool"
    params_model = SpyParams
    allowed_roles = (Role.CLIENT, Role.ADMIN)

    def __init__(self, audit_recorder=None, outcome=None):
        super().__init__(audit_recorder=audit_recorder)
        self.calls = []
        self.outcome = outcome

    def execute(self, params, context):
        self.calls.append(params)
        with self.transaction(context.db):
            context.db.execute(
                text("UPDATE products SET current_stock = current_stock - 1 WHERE id = :id"),
                {"id": params.product_id},
            )
        if isinstance(self.outcome, Exception):
            raise self.outcome
        if self.outcome is not None:
            return self.outcome
        return {"product_id": params.product_id, "note": params.note}


class QuotaSpyTool(SpyTool):
    name = "quota_spy_tool"
    quota_operation = QuotaOperation.PLACE_ORDER


class SlowTool(SpyTool):
    name = "slow_tool"

    def execute(self, params, context):
        time.sleep(0.5)
        return {"late": True}


class SlowWriterTool(SpyTool):
    """Writes, then outlives the caller's timeout before the commit."""
    name = "slow_writer_tool"

    def execute(self, params, context):
        self.calls.append(params)
        with self.transaction(context.db):
            context.db.execute(
                text("UPDATE products SET current_stock = 999 WHERE id = :id"),
                {"id": params.product_id},
            )
            time.sleep(0.3)
        return {"written": True}


def _stock(fetch_scalar, product_id=1):
    return fetch_scalar("SELECT current_stock FROM products WHERE id = :id", id=product_id)


async def _audit_rows(recorder, db_engine):
    await recorder.drain()
    with db_engine.connect() as conn:
        return conn.execute(
            text("SELECT tool_name, success, error_message, denial_stage, parameters FROM tool_usage_logs ORDER BY id")
        ).fetchall()


class TestToolDefinition:

    def test_missing_roles_rejected(self):
        class NoRoles(BaseTool):
            name = "no_roles"

        with pytest.raises(ValueError):
            NoRoles()

    def test_descriptor(self):
        descriptor = QuotaSpyTool().descriptor
        assert descriptor.name == "quota_spy_tool"
        assert descriptor.allowed_roles == [Role.CLIENT, Role.ADMIN]
        assert descriptor.requires_quota_check

    def test_function_schema(self):
        schema = SpyTool().to_function_schema()
        assert schema["type"] == "function"
        parameters = schema["function"]["parameters"]
        assert parameters["type"] == "object"
        assert "product_id" in parameters["properties"]
        assert parameters["required"] == ["product_id"]
        assert "title" not in parameters["properties"]["product_id"]


class TestInvoke:

    @pytest.mark.asyncio
    async def test_success(self, make_context, audit_recorder, fetch_scalar):
        tool = SpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke({"product_id": 1, "note": "  hello  "}, make_context("client"))

        assert result.success
        assert result.message == "Operation completed successfully"
        assert result.data == {"product_id": 1, "note": "hello"}
        assert _stock(fetch_scalar) == 119

    @pytest.mark.asyncio
    async def test_wrong_role_never_runs_action(self, make_context, audit_recorder, fetch_scalar, db_engine):
        """A driver asking for a client-only tool changes nothing."""
        tool = SpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke({"product_id": 1}, make_context("driver"))

        assert not result.success
        assert result.error == "Access denied: Required roles: client, admin"
        assert result.data is None
        assert tool.calls == []
        assert _stock(fetch_scalar) == 120

        rows = await _audit_rows(audit_recorder, db_engine)
        assert len(rows) == 1
        assert rows[0].denial_stage == "role"
        assert not rows[0].success

    @pytest.mark.asyncio
    async def test_tenant_mismatch_denied_first(self, make_context, audit_recorder, db_engine):
        tool = SpyTool(audit_recorder=audit_recorder)
        context = make_context("client", tenant_id=OTHER_TENANT_ID)
        result = await tool.invoke({"product_id": 1}, context)

        assert result.error == "Access denied: Invalid tenant access"
        assert tool.calls == []
        rows = await _audit_rows(audit_recorder, db_engine)
        assert rows[0].denial_stage == "tenant"

    @pytest.mark.asyncio
    async def test_quota_exhausted(self, make_context, audit_recorder, db_session, db_engine, fetch_scalar):
        db_session.execute(
            text("UPDATE tenants SET max_orders_per_month = 2 WHERE id = :id"), {"id": DEMO_TENANT_ID}
        )
        db_session.commit()
        tool = QuotaSpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke({"product_id": 1}, make_context("client"))

        assert result.error == "Operation blocked: Monthly order limit exceeded"
        assert tool.calls == []
        assert _stock(fetch_scalar) == 120
        rows = await _audit_rows(audit_recorder, db_engine)
        assert rows[0].denial_stage == "quota"

    @pytest.mark.asyncio
    async def test_invalid_parameters(self, make_context, audit_recorder):
        tool = SpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke({"product_id": "not-a-number"}, make_context("client"))

        assert not result.success
        assert result.error.startswith("Invalid parameters: product_id")
        assert tool.calls == []

    @pytest.mark.asyncio
    async def test_arguments_are_sanitized_before_decoding(self, make_context, audit_recorder, db_engine):
        tool = SpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke(
            {"product_id": 1, "note": "x" * 1500, "callback": print, "unused": None},
            make_context("client"),
        )

        assert result.success
        assert len(result.data["note"]) == 1000
        rows = await _audit_rows(audit_recorder, db_engine)
        assert set(json.loads(rows[0].parameters)) == {"product_id", "note"}

    @pytest.mark.asyncio
    async def test_non_dict_arguments_become_empty(self, make_context, audit_recorder):
        tool = SpyTool(audit_recorder=audit_recorder)
        result = await tool.invoke(["product_id", 1], make_context("client"))
        assert result.error.startswith("Invalid parameters")

    @pytest.mark.asyncio
    async def test_rejection_becomes_failure(self, make_context, audit_recorder):
        tool = SpyTool(audit_recorder=audit_recorder, outcome=Rejection("Product 1 is discontinued"))
        result = await tool.invoke({"product_id": 1}, make_context("client"))

        assert not result.success
        assert result.error == "Product 1 is discontinued"

    @pytest.mark.asyncio
    async def test_business_rule_error_message_passed_through(self, make_context, audit_recorder):
        tool = SpyTool(audit_recorder=audit_recorder, outcome=BusinessRuleError("Not enough stock"))
        result = await tool.invoke({"product_id": 1}, make_context("client"))
        assert result.error == "Not enough stock"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self, make_context, audit_recorder):
        tool = SpyTool(audit_recorder=audit_recorder, outcome=RuntimeError("secret connection string"))
        result = await tool.invoke({"product_id": 1}, make_context("client"))

        assert not result.success
        assert result.error == "Operation failed. Please try again later."
        assert "secret" not in result.error

    @pytest.mark.asyncio
    async def test_timeout(self, make_context, audit_recorder, db_engine):
        tool = SlowTool(audit_recorder=audit_recorder)
        context = make_context("client")
        result = await tool.invoke({"product_id": 1}, context, timeout=0.05)

        assert not result.success
        assert result.error == "Operation timed out"
        rows = await _audit_rows(audit_recorder, db_engine)
        assert rows[0].error_message == "Operation timed out"
        assert await wait_for_idle_session(context, timeout=2)

    @pytest.mark.asyncio
    async def test_timed_out_action_is_rolled_back(self, make_context, audit_recorder, fetch_scalar):
        tool = SlowWriterTool(audit_recorder=audit_recorder)
        context = make_context("client")

        result = await tool.invoke({"product_id": 1}, context, timeout=0.05)

        assert result.error == "Operation timed out"
        assert await wait_for_idle_session(context, timeout=2)
        assert len(tool.calls) == 1
        assert _stock(fetch_scalar) == 120
        await audit_recorder.drain()

    @pytest.mark.asyncio
    async def test_session_reusable_after_timeout(self, make_context, audit_recorder, fetch_scalar):
        context = make_context("client")
        await SlowWriterTool(audit_recorder=audit_recorder).invoke({"product_id": 1}, context, timeout=0.05)

        result = await SpyTool(audit_recorder=audit_recorder).invoke({"product_id": 1}, context, timeout=2)

        assert result.success
        assert _stock(fetch_scalar) == 119
        await audit_recorder.drain()

    @pytest.mark.asyncio
    async def test_action_queued_behind_timed_out_tool_does_not_run(self, make_context, audit_recorder, fetch_scalar):
        context = make_context("client")
        await SlowWriterTool(audit_recorder=audit_recorder).invoke({"product_id": 1}, context, timeout=0.05)
        spy = SpyTool(audit_recorder=audit_recorder)

        result = await spy.invoke({"product_id": 1}, context, timeout=0.05)

        assert result.error == "Operation timed out"
        assert await wait_for_idle_session(context, timeout=2)
        assert spy.calls == []
        assert _stock(fetch_scalar) == 120
        await audit_recorder.drain()

    @pytest.mark.asyncio
    async def test_idle_session_wait_gives_up(self, make_context):
        context = make_context("client")
        context.session_lock.acquire()
        try:
            assert not await wait_for_idle_session(context, timeout=0.05)
        finally:
            context.session_lock.release()
        assert await wait_for_idle_session(context, timeout=0.05)

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_change_result(self, make_context, fetch_scalar):
        broken_recorder = MagicMock()
        broken_recorder.submit.side_effect = RuntimeError("audit store down")
        tool = SpyTool(audit_recorder=broken_recorder)

        result = await tool.invoke({"product_id": 1}, make_context("client"))

        assert result.success
        assert _stock(fetch_scalar) == 119

    @pytest.mark.asyncio
    async def test_audit_write_failure_is_swallowed(self, make_context, audit_recorder, monkeypatch):
        monkeypatch.setattr(audit_recorder, "write", MagicMock(side_effect=RuntimeError("disk full")))
        tool = SpyTool(audit_recorder=audit_recorder)

        result = await tool.invoke({"product_id": 1}, make_context("client"))
        await audit_recorder.drain()

        assert result.success
        audit_recorder.write.assert_called_once()

    @pytest.mark.asyncio
    async def test_audit_record_contents(self, make_context, audit_recorder, db_engine):
        tool = SpyTool(audit_recorder=audit_recorder)
        await tool.invoke({"product_id": 2}, make_context("admin"))
        await audit_recorder.drain()
        with db_engine.connect() as conn:
            row = conn.execute(
                text("SELECT tenant_id, user_id, tool_name, success, result FROM tool_usage_logs")
            ).one()
        assert row.tenant_id == DEMO_TENANT_ID
        assert row.user_id == DEMO_USERS["admin"]
        assert row.tool_name == "spy_tool"
        assert row.success
        assert json.loads(row.result)["data"] == {"product_id": 2, "note": ""}
