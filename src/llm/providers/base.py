"""Abstract base class for LLM providers."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.llm.models import StreamEvent


class AbstractProvider(abc.ABC):
    """Abstract LLM provider interface.

    Messages are in Anthropic format (`{"role": ..., "content": ...}`);
    OpenAI-compatible providers convert internally. Every request streams;
    callers that need the whole answer drain the stream.
    """

    @abc.abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        max_tokens: int = 1024,
        web_search: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion as TextDelta events followed by one StreamDone."""

    @abc.abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable. Returns True if healthy."""

    async def close(self) -> None:  # noqa: B027
        """Close any open connections. Override if cleanup is needed."""
