"""Agent chat API router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from bakeryhub.api.models import (
    AgentHealthResponse,
    ChatRequest,
    ChatResponse,
    ComponentStatus,
    RoleToolsResponse,
    ToolInfo,
)
from bakeryhub.api.utils import handle_chat_request
from bakeryhub.infra.auth import verify_api_key
from bakeryhub.infra.database import get_db
from bakeryhub.infra.validation import validate_role
from bakeryhub.models.context import Role
from bakeryhub.services.prompt_builder import ROLE_CAPABILITIES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["Agent"])


@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(verify_api_key)],
    summary="Send a message to the bakery assistant",
    responses={
        400: {"description": "Invalid message or role"},
        403: {"description": "User is not an active member of an active tenant"},
    },
)
async def chat(request: Request, body: ChatRequest, db: Session = Depends(get_db)) -> ChatResponse:
    """
    Run one conversation turn for a user.

    The user's role is read from the database; the ``role`` field is only
    used for validation and logging.
    """
    return await handle_chat_request(
        body,
        db,
        orchestrator=request.app.state.orchestrator,
        context_factory=request.app.state.context_factory,
        request_id=getattr(request.state, "request_id", None),
    )


@router.get(
    "/tools",
    response_model=RoleToolsResponse,
    dependencies=[Depends(verify_api_key)],
    summary="List the tools available to a role",
)
async def list_tools(request: Request, role: str = Query(..., description="Role to list tools for")):
    try:
        role_enum = validate_role(role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    registry = request.app.state.registry
    return RoleToolsResponse(
        role=role_enum.value,
        tools=[
            ToolInfo(name=tool.name, description=tool.description, parameters=tool.parameters_schema())
            for tool in registry.tools_for_role(role_enum)
        ],
        capabilities=ROLE_CAPABILITIES.get(role_enum, []),
    )


@router.get("/health", response_model=AgentHealthResponse, summary="Agent component health")
async def agent_health(request: Request, db: Session = Depends(get_db)):
    orchestrator = request.app.state.orchestrator
    components = {}

    if orchestrator.fallback_mode:
        components["model"] = ComponentStatus(status="degraded", detail="No model API key configured, keyword fallback active")
    else:
        breaker_state = orchestrator.circuit_breaker.state.value
        components["model"] = ComponentStatus(
            status="ok" if breaker_state == "closed" else "degraded",
            detail=f"circuit {breaker_state}",
        )

    try:
        db.execute(text("SELECT 1"))
        components["database"] = ComponentStatus(status="ok")
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        components["database"] = ComponentStatus(status="error", detail="unreachable")

    overall = "ok"
    if components["database"].status != "ok":
        overall = "error"
    elif components["model"].status != "ok":
        overall = "degraded"

    return AgentHealthResponse(
        status=overall,
        components=components,
        supported_roles=Role.values(),
        tool_count=len(request.app.state.registry),
        fallback_mode=orchestrator.fallback_mode,
    )
