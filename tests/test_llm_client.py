"""Tests for the OpenAI chat client adapter."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bakeryhub.adapters.llm_client import OpenAIChatClient, build_model_client, parse_chat_completion
from bakeryhub.infra.error_handler import NetworkError
from bakeryhub.services.fallback_model import KeywordFallbackModel


def _completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class TestParseChatCompletion:

    def test_text_response(self):
        response = parse_chat_completion(_completion(content="Hi there"))
        assert response.text == "Hi there"
        assert response.tool_calls == []

    def test_tool_calls(self):
        response = parse_chat_completion(
            _completion(tool_calls=[_tool_call("call_1", "get_my_deliveries", '{"limit": 5}')])
        )
        assert response.text is None
        assert response.tool_calls[0].id == "call_1"
        assert response.tool_calls[0].name == "get_my_deliveries"
        assert response.tool_calls[0].arguments == '{"limit": 5}'

    def test_empty_choices(self):
        assert parse_chat_completion(SimpleNamespace(choices=[])).text == ""


class TestOpenAIChatClient:

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        client = OpenAIChatClient(api_key="sk-test", model="gpt-test", max_completion_tokens=50)
        create = AsyncMock(return_value=_completion(content="ok"))
        client._client = MagicMock()
        client._client.chat.completions.create = create
        tools = [{"type": "function", "function": {"name": "t", "parameters": {"type": "object"}}}]

        response = await client.complete([{"role": "user", "content": "hi"}], tools)

        assert response.text == "ok"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["max_completion_tokens"] == 50
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_no_tools_omits_tool_choice(self):
        client = OpenAIChatClient(api_key="sk-test")
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=_completion(content="ok"))

        await client.complete([{"role": "user", "content": "hi"}], [])

        assert "tool_choice" not in client._client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self):
        client = OpenAIChatClient(api_key="sk-test")
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(side_effect=ConnectionError("connection reset"))

        with pytest.raises(NetworkError):
            await client.complete([{"role": "user", "content": "hi"}], [])


class TestBuildModelClient:

    def test_fallback_without_key(self):
        with patch("bakeryhub.adapters.llm_client.config") as mock_config:
            mock_config.OPENAI_API_KEY = None
            assert isinstance(build_model_client(), KeywordFallbackModel)

    def test_openai_with_key(self):
        with patch("bakeryhub.adapters.llm_client.config") as mock_config:
            mock_config.OPENAI_API_KEY = "sk-test"
            mock_config.LLM_MODEL = "gpt-test"
            mock_config.LLM_MAX_COMPLETION_TOKENS = 100
            client = build_model_client()
        assert isinstance(client, OpenAIChatClient)
        assert not client.is_fallback
