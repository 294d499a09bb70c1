"""Tests for the bounded conversation loop."""

import asyncio
import json
import time
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import text

from bakeryhub.exceptions import ModelUnavailableError
from bakeryhub.infra.circuit_breaker import CircuitBreaker, CircuitState
from bakeryhub.models.context import Role
from bakeryhub.models.conversation import ModelResponse, ToolCallRequest
from bakeryhub.services.orchestrator import ConversationOrchestrator, decode_arguments
from bakeryhub.tools.base import BaseTool, ToolParams, wait_for_idle_session
from bakeryhub.tools.registry import build_default_registry


class ScriptedModel:
    """Returns queued responses in order and records every transcript it sees."""
    model_name = "scripted"
    is_fallback = False

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def complete(self, messages, tools):
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class AlwaysToolModel(ScriptedModel):
    """Requests the same tool on every turn."""

    async def complete(self, messages, tools):
        self.calls.append({"messages": list(messages), "tools": tools})
        return ModelResponse(
            text=f"checking ({len(self.calls)})",
            tool_calls=[ToolCallRequest(id=f"call_{len(self.calls)}", name="get_my_deliveries", arguments="{}")],
        )


class HangingModel:
    """Never answers within any reasonable timeout."""
    model_name = "hanging"
    is_fallback = False

    def __init__(self):
        self.calls = 0

    async def complete(self, messages, tools):
        self.calls += 1
        await asyncio.sleep(10)


class StockWriterParams(ToolParams):
    product_id: int


class StockWriterTool(BaseTool):
    name = "stock_writer"
    description = "Test tool"
    params_model = StockWriterParams
    allowed_roles = (Role.CLIENT,)

    def execute(self, params, context):
        with self.transaction(context.db):
            context.db.execute(
                text("UPDATE products SET current_stock = 0 WHERE id = :id"),
                {"id": params.product_id},
            )
            time.sleep(0.3)
        return {"written": True}


def _tool_call(name, arguments="{}", call_id="call_1"):
    return ModelResponse(tool_calls=[ToolCallRequest(id=call_id, name=name, arguments=arguments)])


def _orchestrator(model, audit_recorder, **kwargs):
    kwargs.setdefault("max_retries", 0)
    kwargs.setdefault("retry_initial_delay", 0)
    return ConversationOrchestrator(
        registry=build_default_registry(audit_recorder=audit_recorder),
        model_client=model,
        circuit_breaker=CircuitBreaker(service="test-llm", failure_threshold=10),
        **kwargs,
    )


class TestDecodeArguments:

    def test_valid_object(self):
        assert decode_arguments(ToolCallRequest(id="1", name="t", arguments='{"limit": 5}')) == {"limit": 5}

    @pytest.mark.parametrize("raw", ["", "not json", "[1, 2]", "42"])
    def test_unusable_arguments(self, raw):
        assert decode_arguments(ToolCallRequest(id="1", name="t", arguments=raw)) == {}


class TestConversationOrchestrator:

    @pytest.mark.asyncio
    async def test_driver_asks_for_delivery_count(self, make_context, audit_recorder):
        model = ScriptedModel(
            _tool_call("get_my_deliveries"),
            ModelResponse(text="You have 1 delivery assigned."),
        )
        orchestrator = _orchestrator(model, audit_recorder)

        result = await orchestrator.run(make_context("driver"), "How many deliveries do I have?")
        await audit_recorder.drain()

        assert result.final_text == "You have 1 delivery assigned."
        assert result.role_used == Role.DRIVER
        assert not result.fallback_mode
        assert [tool.name for tool in result.executed_tools] == ["get_my_deliveries"]
        assert result.executed_tools[0].result["success"]
        assert result.executed_tools[0].result["data"]["count"] == 1

        second_turn = model.calls[1]["messages"]
        assert second_turn[0]["role"] == "system"
        assert second_turn[-2]["tool_calls"][0]["function"]["name"] == "get_my_deliveries"
        assert second_turn[-1]["role"] == "tool"
        assert second_turn[-1]["tool_call_id"] == "call_1"
        assert json.loads(second_turn[-1]["content"])["data"]["count"] == 1

    @pytest.mark.asyncio
    async def test_only_role_tools_are_offered(self, make_context, audit_recorder):
        model = ScriptedModel(ModelResponse(text="Hello"))
        await _orchestrator(model, audit_recorder).run(make_context("customer"), "hi")

        offered = {tool["function"]["name"] for tool in model.calls[0]["tools"]}
        assert offered == {"search_products", "check_product_availability", "place_customer_order"}

    @pytest.mark.asyncio
    async def test_text_only_response_ends_immediately(self, make_context, audit_recorder):
        model = ScriptedModel(ModelResponse(text="Good morning!"))
        result = await _orchestrator(model, audit_recorder).run(make_context("client"), "hello")

        assert result.final_text == "Good morning!"
        assert result.executed_tools == []
        assert len(model.calls) == 1

    @pytest.mark.asyncio
    async def test_iteration_ceiling(self, make_context, audit_recorder):
        model = AlwaysToolModel()
        orchestrator = _orchestrator(model, audit_recorder, max_iterations=3)

        result = await orchestrator.run(make_context("driver"), "loop forever")
        await audit_recorder.drain()

        assert len(model.calls) == 3
        assert len(result.executed_tools) == 3
        assert result.final_text == "checking (3)"

    @pytest.mark.asyncio
    async def test_denied_tool_is_reported_back_to_model(self, make_context, audit_recorder):
        model = ScriptedModel(
            _tool_call("create_user", '{"email": "x@example.com", "full_name": "X", "role": "driver"}'),
            ModelResponse(text="Sorry, you cannot do that."),
        )
        result = await _orchestrator(model, audit_recorder).run(make_context("customer"), "make me a user")
        await audit_recorder.drain()

        payload = result.executed_tools[0].result
        assert payload == {"success": False, "error": "Access denied: Required roles: admin, tenant_admin"}
        assert result.final_text == "Sorry, you cannot do that."

    @pytest.mark.asyncio
    async def test_unknown_tool_and_bad_arguments(self, make_context, audit_recorder):
        model = ScriptedModel(
            ModelResponse(tool_calls=[
                ToolCallRequest(id="a", name="drop_tables", arguments="{}"),
                ToolCallRequest(id="b", name="get_my_deliveries", arguments="{not json"),
            ]),
            ModelResponse(text="done"),
        )
        result = await _orchestrator(model, audit_recorder).run(make_context("driver"), "go")
        await audit_recorder.drain()

        unknown, deliveries = result.executed_tools
        assert unknown.result["error"] == "Tool 'drop_tables' not found"
        assert deliveries.result["success"]
        tool_messages = [m for m in model.calls[1]["messages"] if m["role"] == "tool"]
        assert [m["tool_call_id"] for m in tool_messages] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_model_failure_raises_unavailable(self, make_context, audit_recorder):
        model = ScriptedModel(RuntimeError("invalid request"))
        with pytest.raises(ModelUnavailableError):
            await _orchestrator(model, audit_recorder).run(make_context("client"), "hi")

    @pytest.mark.asyncio
    async def test_transient_model_failure_is_retried(self, make_context, audit_recorder):
        model = ScriptedModel(ConnectionError("connection reset"), ModelResponse(text="recovered"))
        orchestrator = _orchestrator(model, audit_recorder, max_retries=2)

        result = await orchestrator.run(make_context("client"), "hi")

        assert result.final_text == "recovered"
        assert len(model.calls) == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, make_context, audit_recorder):
        model = ScriptedModel(*[ConnectionError("connection reset")] * 3)
        orchestrator = _orchestrator(model, audit_recorder, max_retries=2)

        with pytest.raises(ModelUnavailableError):
            await orchestrator.run(make_context("client"), "hi")
        assert len(model.calls) == 3

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self, make_context, audit_recorder):
        model = ScriptedModel(ModelResponse(text="never"))
        breaker = CircuitBreaker(service="test-llm-open", failure_threshold=1)
        breaker._record_failure()
        orchestrator = ConversationOrchestrator(
            registry=build_default_registry(audit_recorder=audit_recorder),
            model_client=model,
            max_retries=0,
            circuit_breaker=breaker,
        )

        with pytest.raises(ModelUnavailableError):
            await orchestrator.run(make_context("client"), "hi")
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_model_timeouts_open_the_circuit(self, make_context, audit_recorder):
        model = HangingModel()
        breaker = CircuitBreaker(service="test-llm-hang", failure_threshold=2)
        orchestrator = ConversationOrchestrator(
            registry=build_default_registry(audit_recorder=audit_recorder),
            model_client=model,
            model_timeout=0.05,
            max_retries=0,
            circuit_breaker=breaker,
        )

        for _ in range(2):
            with pytest.raises(ModelUnavailableError):
                await orchestrator.run(make_context("client"), "hi")
        assert breaker.state == CircuitState.OPEN
        assert breaker.failure_count == 2

        with pytest.raises(ModelUnavailableError):
            await orchestrator.run(make_context("client"), "hi")
        assert model.calls == 2

    @pytest.mark.asyncio
    async def test_tool_timeout_is_reported_and_rolled_back(self, make_context, audit_recorder, fetch_scalar):
        registry = build_default_registry(audit_recorder=audit_recorder)
        registry.register(StockWriterTool(audit_recorder=audit_recorder))
        model = ScriptedModel(
            _tool_call("stock_writer", '{"product_id": 1}'),
            ModelResponse(text="That took too long."),
        )
        orchestrator = ConversationOrchestrator(
            registry=registry,
            model_client=model,
            tool_timeout=0.05,
            max_retries=0,
            circuit_breaker=CircuitBreaker(service="test-llm-tool-timeout", failure_threshold=10),
        )
        context = make_context("client")

        result = await orchestrator.run(context, "zero out the bagels")

        assert result.executed_tools[0].result == {"success": False, "error": "Operation timed out"}
        assert await wait_for_idle_session(context, timeout=2)
        assert fetch_scalar("SELECT current_stock FROM products WHERE id = 1") == 120
        await audit_recorder.drain()

    @pytest.mark.asyncio
    async def test_run_waits_for_idle_session(self, make_context, audit_recorder):
        orchestrator = _orchestrator(ScriptedModel(ModelResponse(text="hello")), audit_recorder, tool_timeout=7)
        context = make_context("client")

        with patch("bakeryhub.services.orchestrator.wait_for_idle_session", new=AsyncMock(return_value=True)) as idle:
            await orchestrator.run(context, "hi")

        idle.assert_awaited_once_with(context, 7)

    @pytest.mark.asyncio
    async def test_run_waits_for_idle_session_when_model_fails(self, make_context, audit_recorder):
        orchestrator = _orchestrator(ScriptedModel(ConnectionError("down")), audit_recorder)

        with patch("bakeryhub.services.orchestrator.wait_for_idle_session", new=AsyncMock(return_value=True)) as idle:
            with pytest.raises(ModelUnavailableError):
                await orchestrator.run(make_context("client"), "hi")

        idle.assert_awaited_once()
