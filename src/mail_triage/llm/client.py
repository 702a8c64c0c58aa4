"""Async Claude API client used for forced-tool classification calls."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from mail_triage.exceptions import LLMError

logger = logging.getLogger(__name__)


DEFAULT_MODEL = os.environ.get("DEFAULT_LLM_MODEL", "claude-haiku-4-5-20251001")


class AsyncLLMClient:
    """Asynchronous wrapper around the Anthropic SDK.

    Rate limits and timeouts are retried with exponential backoff; any other
    API error is raised immediately as ``LLMError``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 3,
    ):
        if not api_key and not os.environ.get("ANTHROPIC_API_KEY"):
            raise LLMError(
                "Anthropic API key is required. "
                "Pass it directly or set ANTHROPIC_API_KEY in your environment."
            )
        from anthropic import AsyncAnthropic

        self._client = AsyncAnthropic(api_key=api_key or None)
        self.model = model
        self.max_retries = max_retries

    @property
    def client(self):
        """Access the underlying AsyncAnthropic SDK client for advanced usage."""
        return self._client

    async def generate_with_tools(
        self,
        system_prompt: str,
        messages: str | list[dict],
        tools: list[dict],
        tool_choice: dict | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        model: str | None = None,
    ) -> dict:
        """Message call with tool definitions.

        Pass ``tool_choice={"type": "tool", "name": ...}`` to force a
        structured answer through a single tool.

        Returns:
            dict with keys: text, tool_calls, stop_reason, input_tokens, output_tokens, model
            tool_calls is a list of dicts with keys: name, input, id
        """
        request: dict[str, Any] = {
            "model": model or self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": _as_messages(messages),
            "tools": tools,
        }
        if tool_choice:
            request["tool_choice"] = tool_choice

        response = await self._create(request)

        text_parts = [b.text for b in response.content if b.type == "text"]
        tool_calls = [
            {"name": b.name, "input": b.input, "id": b.id}
            for b in response.content
            if b.type == "tool_use"
        ]
        return {
            "text": "\n".join(text_parts),
            "tool_calls": tool_calls,
            "stop_reason": response.stop_reason,
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
            "model": request["model"],
        }

    async def _create(self, request: dict[str, Any]):
        from anthropic import APIError, APITimeoutError, RateLimitError

        for attempt in range(self.max_retries):
            try:
                return await self._client.messages.create(**request)
            except RateLimitError:
                wait = 2 ** (attempt + 1)
                logger.warning(f"Rate limited, retrying in {wait}s (attempt {attempt + 1})")
            except APITimeoutError:
                wait = 2 ** attempt
                logger.warning(f"API timeout, retrying in {wait}s (attempt {attempt + 1})")
            except APIError as e:
                raise LLMError(f"Claude API error: {e}") from e
            await asyncio.sleep(wait)

        raise LLMError(f"Failed after {self.max_retries} retries")


def _as_messages(content: str | list[dict]) -> list[dict]:
    if isinstance(content, str):
        return [{"role": "user", "content": content}]
    return content
