"""Request and response models for the agent API."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_CamelModel):
    """Inbound chat message from the authenticated web tier."""
    message: str = Field(..., description="User message (1-4000 characters)")
    tenant_id: int = Field(..., alias="tenantId", description="Tenant the user belongs to")
    user_id: int = Field(..., alias="userId", description="Authenticated user id")
    role: str = Field(..., description="Role claimed by the caller; the stored role is authoritative")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "How many deliveries do I have today?",
                "tenantId": 1,
                "userId": 3,
                "role": "driver",
            }
        },
    )


class ToolCallSummary(_CamelModel):
    name: str
    result: Dict[str, Any]


class ChatMetadata(_CamelModel):
    role: str
    user_id: int = Field(..., alias="userId")
    executed_tool_count: int = Field(..., alias="executedToolCount")
    fallback_mode: bool = Field(default=False, alias="fallbackMode")
    request_id: Optional[str] = Field(default=None, alias="requestId")


class ChatResponse(_CamelModel):
    response: str
    tool_calls: List[ToolCallSummary] = Field(default_factory=list, alias="toolCalls")
    metadata: ChatMetadata


class ToolInfo(BaseModel):
    name: str
    description: str
    parameters: Dict[str, Any]


class RoleToolsResponse(BaseModel):
    role: str
    tools: List[ToolInfo]
    capabilities: List[str]


class ComponentStatus(BaseModel):
    status: str
    detail: Optional[str] = None


class AgentHealthResponse(_CamelModel):
    status: str
    components: Dict[str, ComponentStatus]
    supported_roles: List[str] = Field(..., alias="supportedRoles")
    tool_count: int = Field(..., alias="toolCount")
    fallback_mode: bool = Field(..., alias="fallbackMode")
