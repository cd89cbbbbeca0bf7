"""LLM provider registry."""

from __future__ import annotations

from src.llm.providers.anthropic_provider import AnthropicProvider
from src.llm.providers.base import AbstractProvider
from src.llm.providers.openai_compat import OpenAICompatProvider

__all__ = ["AbstractProvider", "AnthropicProvider", "OpenAICompatProvider"]
