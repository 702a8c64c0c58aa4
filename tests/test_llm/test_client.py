"""Tests for LLM client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from mail_triage.exceptions import LLMError
from mail_triage.llm.client import DEFAULT_MODEL, AsyncLLMClient


def test_async_init_requires_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(LLMError, match="API key is required"):
        AsyncLLMClient(api_key="")


def test_async_init_accepts_none_api_key_with_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key-123")
    client = AsyncLLMClient(api_key=None)
    assert client.model == DEFAULT_MODEL


def test_client_property(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    client = AsyncLLMClient()
    assert client.client is client._client


def _response(*blocks):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason="tool_use",
        usage=SimpleNamespace(input_tokens=12, output_tokens=34),
    )


def test_generate_with_tools_collects_tool_calls(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    client = AsyncLLMClient(model="test-model")
    client._client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(
        return_value=_response(
            SimpleNamespace(type="text", text="thinking"),
            SimpleNamespace(type="tool_use", name="record", input={"a": 1}, id="t1"),
        )
    )))
    tool = {"name": "record", "input_schema": {"type": "object"}}

    result = asyncio.run(client.generate_with_tools(
        "system", "hello", tools=[tool], tool_choice={"type": "tool", "name": "record"},
    ))

    assert result["text"] == "thinking"
    assert result["tool_calls"] == [{"name": "record", "input": {"a": 1}, "id": "t1"}]
    assert result["model"] == "test-model"
    kwargs = client._client.messages.create.call_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert kwargs["tool_choice"] == {"type": "tool", "name": "record"}
