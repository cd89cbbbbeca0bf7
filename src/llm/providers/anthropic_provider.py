"""Anthropic native SDK provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import anthropic

from src.llm.models import StreamDone, StreamEvent, TextDelta, Usage
from src.llm.providers.base import AbstractProvider

logger = logging.getLogger(__name__)

# Server-side tool: Anthropic runs the searches, we only see the final text
WEB_SEARCH_TOOL: dict[str, Any] = {
    "type": "web_search_20250305",
    "name": "web_search",
    "max_uses": 5,
}


class AnthropicProvider(AbstractProvider):
    """LLM provider using the Anthropic Python SDK (AsyncAnthropic)."""

    def __init__(self, api_key: str, model: str) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        system: str | None,
        max_tokens: int,
        web_search: bool = False,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if web_search:
            kwargs["tools"] = [WEB_SEARCH_TOOL]
        return kwargs

    async def health_check(self) -> bool:
        try:
            await self._client.models.list(limit=1)
            return True
        except Exception:
            logger.warning("Anthropic health check failed", exc_info=True)
            return False

    async def close(self) -> None:
        await self._client.close()

    async def stream(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        max_tokens: int = 1024,
        web_search: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        kwargs = self._request_kwargs(messages, system, max_tokens, web_search)

        async with self._client.messages.stream(**kwargs) as stream:
            async for event in stream:
                if event.type == "content_block_start":
                    if event.content_block.type == "server_tool_use":
                        logger.info("Web search tool used by %s", self._model)
                elif event.type == "content_block_delta":
                    if event.delta.type == "text_delta":
                        yield TextDelta(text=event.delta.text)

            final = await stream.get_final_message()
            yield StreamDone(
                stop_reason=final.stop_reason or "end_turn",
                usage=Usage(
                    input_tokens=final.usage.input_tokens,
                    output_tokens=final.usage.output_tokens,
                ),
            )
