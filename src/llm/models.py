"""Data models shared by the LLM providers."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ProviderType(enum.StrEnum):
    """Supported LLM provider types."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass(frozen=True)
class Usage:
    """Token usage for an LLM response."""

    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class TextDelta:
    """Incremental text chunk from streaming."""

    text: str


@dataclass(frozen=True)
class StreamDone:
    """Stream finished. Carries final aggregated metadata."""

    stop_reason: str
    usage: Usage


# Union type for type hints
StreamEvent = TextDelta | StreamDone
