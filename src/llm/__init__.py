"""Text-generation providers behind one streaming interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.llm.models import ProviderType, StreamDone, StreamEvent, TextDelta, Usage
from src.llm.providers import AbstractProvider, AnthropicProvider, OpenAICompatProvider

if TYPE_CHECKING:
    from src.config import Settings

__all__ = [
    "AbstractProvider",
    "ProviderType",
    "StreamDone",
    "StreamEvent",
    "TextDelta",
    "Usage",
    "create_provider",
    "get_provider",
    "set_provider",
]

# Shared provider reference, created lazily or installed at startup
_provider_instance: AbstractProvider | None = None


def create_provider(settings: Settings) -> AbstractProvider:
    """Build the provider selected by LLM_PROVIDER."""
    provider_type = ProviderType(settings.llm.provider)
    if provider_type == ProviderType.OPENAI:
        return OpenAICompatProvider(
            api_key=settings.openai.api_key,
            model=settings.openai.model,
            base_url=settings.openai.base_url,
        )
    return AnthropicProvider(api_key=settings.anthropic.api_key, model=settings.anthropic.model)


def set_provider(provider: AbstractProvider | None) -> None:
    """Set the global provider instance (called from main at startup)."""
    global _provider_instance
    _provider_instance = provider


def get_provider() -> AbstractProvider:
    """Get the global provider, creating it from settings on first use."""
    global _provider_instance
    if _provider_instance is None:
        from src.config import get_settings

        _provider_instance = create_provider(get_settings())
    return _provider_instance
