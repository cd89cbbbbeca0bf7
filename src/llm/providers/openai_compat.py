"""OpenAI-compatible provider using raw aiohttp.

Talks to any endpoint exposing `/chat/completions` (OpenAI and compatible
gateways). No openai SDK dependency.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from src.llm.format_converter import anthropic_messages_to_openai, openai_stream_chunk_to_events
from src.llm.models import StreamDone, Usage
from src.llm.providers.base import AbstractProvider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.llm.models import StreamEvent

logger = logging.getLogger(__name__)

# Research prompts with web search can take minutes
_REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=300)


class OpenAICompatProvider(AbstractProvider):
    """LLM provider for OpenAI-compatible APIs.

    Uses raw aiohttp POST to {base_url}/chat/completions.
    """

    def __init__(self, api_key: str, model: str, base_url: str) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None
        # Only the *-search-* chat models accept web_search_options
        self._supports_web_search = "search" in model
        # Newer OpenAI models require max_completion_tokens
        # instead of the deprecated max_tokens parameter.
        self._use_max_completion_tokens = "api.openai.com" in self._base_url

    def _max_tokens_param(self, value: int) -> dict[str, int]:
        """Return the correct max tokens parameter for the API."""
        key = "max_completion_tokens" if self._use_max_completion_tokens else "max_tokens"
        return {key: value}

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=_REQUEST_TIMEOUT,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._session

    async def stream(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        max_tokens: int = 1024,
        web_search: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": anthropic_messages_to_openai(messages, system),
            "stream": True,
            "stream_options": {"include_usage": True},
            **self._max_tokens_param(max_tokens),
        }
        if web_search and self._supports_web_search:
            body["web_search_options"] = {}

        session = await self._get_session()
        url = f"{self._base_url}/chat/completions"

        done = False
        async with session.post(url, json=body) as resp:
            if resp.status != 200:
                error_text = await resp.text()
                raise RuntimeError(
                    f"OpenAI-compat streaming error {resp.status}: {error_text[:300]}"
                )
            async for line in resp.content:
                text = line.decode("utf-8").strip()
                if not text or not text.startswith("data: "):
                    continue
                payload = text[6:]  # strip "data: "
                if payload == "[DONE]":
                    break
                for event in openai_stream_chunk_to_events(json.loads(payload)):
                    done = done or isinstance(event, StreamDone)
                    yield event

        if not done:
            yield StreamDone(stop_reason="end_turn", usage=Usage(0, 0))

    async def health_check(self) -> bool:
        try:
            session = await self._get_session()
            async with session.get(
                f"{self._base_url}/models",
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                return resp.status == 200
        except Exception:
            logger.warning("OpenAI-compat health check failed", exc_info=True)
            return False

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None
