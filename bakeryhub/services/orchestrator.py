"""Bounded tool-calling conversation loop."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

from bakeryhub.adapters.llm_client import ModelClient
from bakeryhub.exceptions import ModelUnavailableError
from bakeryhub.infra.circuit_breaker import CircuitBreaker
from bakeryhub.infra.config import config
from bakeryhub.infra.error_handler import retry_with_backoff
from bakeryhub.infra.metrics import conversation_iterations, model_call_duration, model_calls_total
from bakeryhub.models.context import ExecutionContext
from bakeryhub.models.conversation import (
    ConversationResult,
    ConversationState,
    ExecutedTool,
    ModelResponse,
    ToolCallRequest,
)
from bakeryhub.services.prompt_builder import build_initial_messages
from bakeryhub.tools.base import wait_for_idle_session
from bakeryhub.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def decode_arguments(call: ToolCallRequest) -> Dict[str, Any]:
    """Parse model-produced argument JSON; anything unusable becomes {}."""
    try:
        arguments = json.loads(call.arguments) if call.arguments else {}
    except json.JSONDecodeError:
        logger.warning("Tool call arguments are not valid JSON", extra={"tool_name": call.name})
        return {}
    if not isinstance(arguments, dict):
        logger.warning("Tool call arguments are not an object", extra={"tool_name": call.name})
        return {}
    return arguments


class ConversationOrchestrator:
    """
    Runs one request's conversation with the model.

    Each model round either ends the conversation with text or requests
    tools. Requested tools are dispatched one at a time, in order, and their
    results appended to the transcript. At most ``max_iterations`` model calls
    are made.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        model_client: ModelClient,
        max_iterations: Optional[int] = None,
        model_timeout: Optional[float] = None,
        tool_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_initial_delay: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.registry = registry
        self.model_client = model_client
        self.max_iterations = max_iterations or config.MAX_TOOL_ITERATIONS
        self.model_timeout = model_timeout or config.MODEL_CALL_TIMEOUT
        self.tool_timeout = tool_timeout or config.TOOL_CALL_TIMEOUT
        self.max_retries = config.MODEL_MAX_RETRIES if max_retries is None else max_retries
        self.retry_initial_delay = retry_initial_delay
        self.circuit_breaker = circuit_breaker or CircuitBreaker(service="llm", failure_threshold=5, recovery_timeout=60)

    @property
    def fallback_mode(self) -> bool:
        return bool(getattr(self.model_client, "is_fallback", False))

    async def _complete_with_timeout(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ModelResponse:
        # inside the breaker call so a timeout counts as a failure
        return await asyncio.wait_for(self.model_client.complete(messages, tools), timeout=self.model_timeout)

    async def _call_model(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ModelResponse:
        model_name = getattr(self.model_client, "model_name", "unknown")

        async def _attempt():
            return await self.circuit_breaker.call_async(self._complete_with_timeout, messages, tools)

        def _on_retry(error: Exception, attempt: int):
            logger.warning(
                "Retrying model call",
                extra={"model": model_name, "attempt": attempt, "error": str(error)},
            )

        start_time = time.time()
        try:
            response = await retry_with_backoff(
                _attempt,
                max_retries=self.max_retries,
                initial_delay=self.retry_initial_delay,
                on_retry=_on_retry,
            )
        except Exception as e:
            model_calls_total.labels(model=model_name, status="failure").inc()
            raise ModelUnavailableError(f"Model call failed: {type(e).__name__}") from e

        model_calls_total.labels(model=model_name, status="success").inc()
        model_call_duration.labels(model=model_name).observe(time.time() - start_time)
        return response

    async def run(self, context: ExecutionContext, user_message: str) -> ConversationResult:
        """
        Raises:
            ModelUnavailableError: If the model cannot be reached
        """
        state = ConversationState(messages=build_initial_messages(context.role, user_message))
        tools = self.registry.schema_for_role(context.role)
        final_text = ""

        try:
            while True:
                response = await self._call_model(state.messages, tools)
                state.messages.append(response.to_message())
                if response.text:
                    final_text = response.text

                if not response.tool_calls:
                    break

                for call in response.tool_calls:
                    result = await self.registry.dispatch(
                        call.name,
                        decode_arguments(call),
                        context,
                        timeout=self.tool_timeout,
                    )
                    payload = result.to_payload()
                    state.executed_tools.append(ExecutedTool(name=call.name, result=payload))
                    state.messages.append({
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(payload, default=str),
                    })

                state.iteration_count += 1
                if state.iteration_count >= self.max_iterations:
                    logger.info(
                        "Tool iteration ceiling reached",
                        extra={
                            "tenant_id": context.tenant_id,
                            "user_id": context.user_id,
                            "iterations": state.iteration_count,
                        },
                    )
                    break
        finally:
            # the caller closes the session after this returns
            await wait_for_idle_session(context, self.tool_timeout)

        conversation_iterations.observe(state.iteration_count)
        return ConversationResult(
            final_text=final_text,
            executed_tools=state.executed_tools,
            role_used=context.role,
            fallback_mode=self.fallback_mode,
        )
