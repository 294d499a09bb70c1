"""Language model clients used by the conversation loop."""

import logging
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from bakeryhub.infra.config import config
from bakeryhub.infra.error_handler import wrap_llm_error
from bakeryhub.models.conversation import ModelResponse, ToolCallRequest

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    """Accepts a transcript and tool schema; returns final text or tool calls."""
    model_name: str
    is_fallback: bool

    async def complete(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ModelResponse:
        ...


def parse_chat_completion(response_obj: Any) -> ModelResponse:
    """Normalize a chat.completions response into a ModelResponse."""
    if not response_obj.choices:
        return ModelResponse(text="")
    message = response_obj.choices[0].message
    return ModelResponse(
        text=message.content,
        tool_calls=[
            ToolCallRequest(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (message.tool_calls or [])
        ],
    )


class OpenAIChatClient:
    """Chat Completions client with function calling."""
    is_fallback = False

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_completion_tokens: Optional[int] = None,
    ):
        self._api_key = api_key or config.OPENAI_API_KEY
        self.model_name = model or config.LLM_MODEL
        self.max_completion_tokens = max_completion_tokens or config.LLM_MAX_COMPLETION_TOKENS
        self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise ValueError("OPENAI_API_KEY not configured")
            # Retries are handled by retry_with_backoff around the whole call
            self._client = AsyncOpenAI(api_key=self._api_key, max_retries=0)
        return self._client

    async def complete(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ModelResponse:
        request_params: Dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "max_completion_tokens": self.max_completion_tokens,
        }
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = "auto"

        try:
            response_obj = await self.client.chat.completions.create(**request_params)
        except Exception as e:
            raise wrap_llm_error(e, "openai") from e
        return parse_chat_completion(response_obj)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


def build_model_client() -> ModelClient:
    """OpenAI client when a key is configured, otherwise the keyword fallback."""
    if config.OPENAI_API_KEY:
        return OpenAIChatClient()

    from bakeryhub.services.fallback_model import KeywordFallbackModel
    logger.warning("OPENAI_API_KEY not configured, using keyword fallback model")
    return KeywordFallbackModel()
