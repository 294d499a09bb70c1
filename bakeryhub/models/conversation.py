"""Conversation loop models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bakeryhub.models.context import Role


@dataclass
class ToolCallRequest:
    """A tool call requested by the model."""
    id: str
    name: str
    arguments: str  # Raw JSON text as produced by the model


@dataclass
class ModelResponse:
    """Normalized assistant turn: either final text, tool calls, or both."""
    text: Optional[str] = None
    tool_calls: List[ToolCallRequest] = field(default_factory=list)

    def to_message(self) -> Dict[str, Any]:
        """Assistant message in chat-completions form."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.text}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


@dataclass
class ExecutedTool:
    name: str
    result: Dict[str, Any]


@dataclass
class ConversationState:
    """Working transcript for one request; never persisted."""
    messages: List[Dict[str, Any]]
    iteration_count: int = 0
    executed_tools: List[ExecutedTool] = field(default_factory=list)


@dataclass
class ConversationResult:
    final_text: str
    executed_tools: List[ExecutedTool]
    role_used: Role
    fallback_mode: bool = False
