"""Chat request handling shared by the agent routes."""

import logging
import uuid
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from bakeryhub.api.models import ChatMetadata, ChatRequest, ChatResponse, ToolCallSummary
from bakeryhub.exceptions import ContextRefusedError
from bakeryhub.infra.metrics import conversations_total
from bakeryhub.infra.validation import validate_chat_input
from bakeryhub.services.context_factory import ContextFactory
from bakeryhub.services.orchestrator import ConversationOrchestrator

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I encountered an error while processing your request. "
    "Please try again in a moment."
)


def _fallback_response(role: str, user_id: int, request_id: Optional[str]) -> ChatResponse:
    return ChatResponse(
        response=FALLBACK_RESPONSE,
        tool_calls=[],
        metadata=ChatMetadata(
            role=role,
            user_id=user_id,
            executed_tool_count=0,
            fallback_mode=True,
            request_id=request_id,
        ),
    )


async def handle_chat_request(
    request: ChatRequest,
    db: Session,
    orchestrator: ConversationOrchestrator,
    context_factory: ContextFactory,
    request_id: Optional[str] = None,
) -> ChatResponse:
    """
    Validate input, bind the request to a verified context and run the
    conversation.

    Invalid input is rejected with 400 and an unverifiable (tenant, user)
    with 403. Failures after that point return a generic apology with
    ``fallbackMode`` set; details go to the logs only.
    """
    try:
        message, claimed_role = validate_chat_input(request.message, request.role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    log_extra = {"request_id": request_id, "tenant_id": request.tenant_id, "user_id": request.user_id}

    try:
        context = context_factory.create(request.tenant_id, request.user_id, db)
    except ContextRefusedError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    except Exception:
        error_id = str(uuid.uuid4())
        logger.error("Context creation failed", extra={**log_extra, "error_id": error_id}, exc_info=True)
        conversations_total.labels(role=claimed_role.value, mode="error").inc()
        return _fallback_response(claimed_role.value, request.user_id, request_id)

    if claimed_role != context.role:
        logger.warning(
            "Claimed role differs from stored role, using stored role",
            extra={**log_extra, "claimed_role": claimed_role.value, "stored_role": context.role.value},
        )

    try:
        result = await orchestrator.run(context, message)
    except Exception:
        error_id = str(uuid.uuid4())
        logger.error("Conversation failed", extra={**log_extra, "error_id": error_id}, exc_info=True)
        conversations_total.labels(role=context.role.value, mode="error").inc()
        return _fallback_response(context.role.value, context.user_id, request_id)

    conversations_total.labels(
        role=context.role.value,
        mode="fallback" if result.fallback_mode else "model",
    ).inc()
    logger.info(
        "Conversation completed",
        extra={**log_extra, "role": context.role.value, "executed_tools": len(result.executed_tools)},
    )

    return ChatResponse(
        response=result.final_text,
        tool_calls=[ToolCallSummary(name=tool.name, result=tool.result) for tool in result.executed_tools],
        metadata=ChatMetadata(
            role=result.role_used.value,
            user_id=context.user_id,
            executed_tool_count=len(result.executed_tools),
            fallback_mode=result.fallback_mode,
            request_id=request_id,
        ),
    )
