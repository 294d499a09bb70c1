from .context import ExecutionContext, Role, QuotaOperation
from .tool import ToolDescriptor, ToolInvocationResult, Rejection
from .conversation import (
    ToolCallRequest,
    ModelResponse,
    ExecutedTool,
    ConversationState,
    ConversationResult,
)

__all__ = [
    "ExecutionContext",
    "Role",
    "QuotaOperation",
    "ToolDescriptor",
    "ToolInvocationResult",
    "Rejection",
    "ToolCallRequest",
    "ModelResponse",
    "ExecutedTool",
    "ConversationState",
    "ConversationResult",
]
