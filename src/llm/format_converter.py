"""Format conversion between Anthropic-style messages and the OpenAI chat API.

Messages are built in Anthropic format (canonical). This module converts
to/from OpenAI format when using an OpenAI-compatible provider.
"""

from __future__ import annotations

from typing import Any

from src.llm.models import StreamDone, StreamEvent, TextDelta, Usage


def anthropic_messages_to_openai(
    messages: list[dict[str, Any]],
    system: str | None = None,
) -> list[dict[str, Any]]:
    """Convert Anthropic message format to OpenAI chat messages format.

    Handles:
    - system prompt → {"role": "system", "content": ...}
    - string content → passed through
    - text blocks → joined into one string
    """
    result: list[dict[str, Any]] = []

    if system:
        result.append({"role": "system", "content": system})

    for msg in messages:
        content = msg["content"]
        if not isinstance(content, str):
            content = "".join(
                block.get("text", "") for block in content if block.get("type") == "text"
            )
        result.append({"role": msg["role"], "content": content})

    return result


def _stop_reason(finish_reason: str | None) -> str:
    return "max_tokens" if finish_reason == "length" else "end_turn"


def _usage(data: dict[str, Any] | None) -> Usage:
    data = data or {}
    return Usage(
        input_tokens=data.get("prompt_tokens", 0),
        output_tokens=data.get("completion_tokens", 0),
    )


def openai_stream_chunk_to_events(chunk: dict[str, Any]) -> list[StreamEvent]:
    """Convert one `chat.completion.chunk` payload to stream events.

    With `stream_options.include_usage` the final chunk has no choices and
    carries the usage totals; that chunk becomes StreamDone.
    """
    events: list[StreamEvent] = []
    choices = chunk.get("choices") or []

    for choice in choices:
        content = (choice.get("delta") or {}).get("content")
        if content:
            events.append(TextDelta(text=content))

    if not choices and chunk.get("usage"):
        events.append(StreamDone(stop_reason="end_turn", usage=_usage(chunk["usage"])))
    elif choices and choices[0].get("finish_reason") == "length":
        events.append(StreamDone(stop_reason="max_tokens", usage=_usage(chunk.get("usage"))))

    return events
