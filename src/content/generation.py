"""One generation operation shared by buffered and streaming callers.

`generate()` yields text increments. Streaming endpoints forward them as they
arrive; buffered callers use `generate_text()`, which drains the same
iterator before anything is persisted.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from src.llm.models import StreamDone, TextDelta

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.llm.providers.base import AbstractProvider

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The provider failed while producing text."""


async def generate(
    provider: AbstractProvider,
    prompt: str,
    *,
    system: str | None = None,
    max_tokens: int = 8192,
    web_search: bool = False,
) -> AsyncIterator[str]:
    """Yield text increments for a single-turn prompt.

    Any provider failure is re-raised as GenerationError.
    """
    messages = [{"role": "user", "content": prompt}]
    start = time.monotonic()
    chars = 0

    try:
        async for event in provider.stream(
            messages, system=system, max_tokens=max_tokens, web_search=web_search
        ):
            if isinstance(event, TextDelta) and event.text:
                chars += len(event.text)
                yield event.text
            elif isinstance(event, StreamDone):
                logger.info(
                    "Generation finished: stop_reason=%s input_tokens=%d output_tokens=%d",
                    event.stop_reason,
                    event.usage.input_tokens,
                    event.usage.output_tokens,
                    extra={"duration_ms": int((time.monotonic() - start) * 1000)},
                )
    except GenerationError:
        raise
    except Exception as e:
        logger.error("Generation failed after %d chars: %s", chars, e)
        raise GenerationError(str(e)) from e


async def generate_text(
    provider: AbstractProvider,
    prompt: str,
    *,
    system: str | None = None,
    max_tokens: int = 8192,
    web_search: bool = False,
) -> str:
    """Drain `generate()` into one string."""
    parts: list[str] = []
    async for chunk in generate(
        provider, prompt, system=system, max_tokens=max_tokens, web_search=web_search
    ):
        parts.append(chunk)
    return "".join(parts)
