"""Keyword-driven stand-in for the language model.

Used when no model API key is configured. It picks at most one tool from the
user's message, lets the normal loop dispatch it through the registry, then
summarizes the result.
"""

import json
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple

from bakeryhub.models.conversation import ModelResponse, ToolCallRequest

# (keywords, tool name), checked in order against tools visible to the role
KEYWORD_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("earning", "paid", "income"), "get_driver_earnings"),
    (("deliver", "how many", "route"), "get_my_deliveries"),
    (("pending", "incoming"), "get_pending_orders"),
    (("usage", "limit", "subscription"), "get_tenant_usage"),
    (("status", "overview", "health"), "get_system_status"),
    (("stock", "inventory", "low on"), "get_inventory_status"),
    (("order history", "past orders", "my orders", "orders"), "get_order_history"),
    (("search", "find", "looking for", "do you have", "menu"), "search_products"),
]

_STOPWORDS = {
    "the", "and", "for", "you", "your", "have", "any", "what", "show", "find", "search",
    "looking", "some", "with", "are", "there", "menu", "please", "can", "today",
}

HELP_TEXT = (
    "I'm running in limited mode right now and can only handle simple requests. "
    "Try asking about your deliveries, earnings, stock levels, orders or products."
)


def _search_term(message: str) -> Optional[str]:
    words = [w for w in re.findall(r"[a-zA-Z]{3,}", message.lower()) if w not in _STOPWORDS]
    return max(words, key=len) if words else None


def _tool_arguments(tool_name: str, message: str) -> Optional[Dict[str, Any]]:
    if tool_name == "search_products":
        term = _search_term(message)
        return {"query": term} if term else None
    if tool_name == "get_driver_earnings":
        lowered = message.lower()
        period = "week" if "week" in lowered else "month" if "month" in lowered else "today"
        return {"period": period}
    return {}


def _summarize(name: str, payload: Dict[str, Any]) -> str:
    if not payload.get("success"):
        return f"I couldn't complete {name}: {payload.get('error', 'unknown error')}"
    data = payload.get("data")
    if isinstance(data, dict) and "count" in data:
        return f"{name} returned {data['count']} result(s): {json.dumps(data, default=str)}"
    return f"{name} result: {json.dumps(data, default=str)}"


class KeywordFallbackModel:
    """Deterministic model stand-in used without a model API key."""
    model_name = "keyword-fallback"
    is_fallback = True

    async def complete(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ModelResponse:
        if messages and messages[-1].get("role") == "tool":
            return ModelResponse(text=self._summarize_results(messages))

        user_message = next(
            (m.get("content") or "" for m in reversed(messages) if m.get("role") == "user"),
            "",
        )
        visible = {tool["function"]["name"] for tool in tools}
        lowered = user_message.lower()
        for keywords, tool_name in KEYWORD_RULES:
            if tool_name in visible and any(keyword in lowered for keyword in keywords):
                arguments = _tool_arguments(tool_name, user_message)
                if arguments is None:
                    continue
                call = ToolCallRequest(
                    id=f"call_{uuid.uuid4().hex[:12]}",
                    name=tool_name,
                    arguments=json.dumps(arguments),
                )
                return ModelResponse(text=None, tool_calls=[call])

        return ModelResponse(text=HELP_TEXT)

    def _summarize_results(self, messages: List[Dict[str, Any]]) -> str:
        names = {}
        for message in messages:
            for call in message.get("tool_calls") or []:
                names[call["id"]] = call["function"]["name"]

        lines = []
        for message in reversed(messages):
            if message.get("role") != "tool":
                break
            try:
                payload = json.loads(message.get("content") or "{}")
            except json.JSONDecodeError:
                payload = {"success": False, "error": "unreadable result"}
            lines.append(_summarize(names.get(message.get("tool_call_id"), "tool"), payload))
        return "\n".join(reversed(lines))
