"""LLM client wrapper (Anthropic Claude)."""

from mail_triage.llm.client import DEFAULT_MODEL, AsyncLLMClient

__all__ = ["DEFAULT_MODEL", "AsyncLLMClient"]
