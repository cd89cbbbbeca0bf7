"""Tests for LLM providers with mocked HTTP for both provider types."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import AnthropicSettings, LLMSettings, OpenAISettings, Settings
from src.llm import AbstractProvider, create_provider, get_provider, set_provider
from src.llm.models import StreamDone, TextDelta
from src.llm.providers.anthropic_provider import WEB_SEARCH_TOOL, AnthropicProvider
from src.llm.providers.openai_compat import OpenAICompatProvider


class _FakeContent:
    """Async-iterable body yielding raw SSE lines like aiohttp's StreamReader."""

    def __init__(self, lines: list[bytes]) -> None:
        self._lines = lines

    def __aiter__(self) -> _FakeContent:
        self._iter = iter(self._lines)
        return self

    async def __anext__(self) -> bytes:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None


class _FakeAiohttpResponse:
    """Fake aiohttp response that works as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        text: str = "",
        lines: list[bytes] | None = None,
    ) -> None:
        self.status = status
        self._text = text
        self.content = _FakeContent(lines or [])

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeAiohttpResponse:
        return self

    async def __aexit__(self, *args: object) -> None:
        pass


class _FakeAnthropicStream:
    """Stand-in for the SDK's MessageStream context manager."""

    def __init__(self, events: list[Any], final: Any) -> None:
        self._events = events
        self._final = final

    async def __aenter__(self) -> _FakeAnthropicStream:
        return self

    async def __aexit__(self, *args: object) -> None:
        pass

    def __aiter__(self) -> _FakeAnthropicStream:
        self._iter = iter(self._events)
        return self

    async def __anext__(self) -> Any:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None

    async def get_final_message(self) -> Any:
        return self._final


def _sse(payload: dict[str, Any] | str) -> bytes:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n".encode()


def _mock_session(response: _FakeAiohttpResponse) -> MagicMock:
    session = MagicMock()
    session.post.return_value = response
    session.get.return_value = response
    session.closed = False
    return session


class TestAnthropicProvider:
    """Test AnthropicProvider with mocked SDK client."""

    @pytest.fixture()
    def provider(self) -> AnthropicProvider:
        return AnthropicProvider(api_key="test-key", model="claude-sonnet-4-5-20250929")

    def _make_mock_response(self, text: str = "Hello", stop_reason: str = "end_turn") -> MagicMock:
        text_block = MagicMock()
        text_block.type = "text"
        text_block.text = text
        search_block = MagicMock()
        search_block.type = "server_tool_use"

        mock_resp = MagicMock()
        mock_resp.content = [search_block, text_block]
        mock_resp.stop_reason = stop_reason
        mock_resp.usage.input_tokens = 100
        mock_resp.usage.output_tokens = 50
        return mock_resp

    def _delta(self, text: str) -> MagicMock:
        event = MagicMock()
        event.type = "content_block_delta"
        event.delta.type = "text_delta"
        event.delta.text = text
        return event

    @pytest.mark.asyncio()
    async def test_stream_request_kwargs(self, provider: AnthropicProvider) -> None:
        provider._client.messages.stream = MagicMock(
            return_value=_FakeAnthropicStream([], self._make_mock_response())
        )

        _ = [
            e
            async for e in provider.stream(
                [{"role": "user", "content": "Hello"}], system="Be helpful", max_tokens=100
            )
        ]

        kwargs = provider._client.messages.stream.call_args.kwargs
        assert kwargs["system"] == "Be helpful"
        assert kwargs["model"] == "claude-sonnet-4-5-20250929"
        assert "tools" not in kwargs

    @pytest.mark.asyncio()
    async def test_stream_text_and_usage(self, provider: AnthropicProvider) -> None:
        final = self._make_mock_response(stop_reason="end_turn")
        provider._client.messages.stream = MagicMock(
            return_value=_FakeAnthropicStream([self._delta("Hel"), self._delta("lo")], final)
        )

        events = [e async for e in provider.stream([{"role": "user", "content": "Hi"}])]

        assert events[:2] == [TextDelta(text="Hel"), TextDelta(text="lo")]
        assert isinstance(events[-1], StreamDone)
        assert events[-1].usage.output_tokens == 50

    @pytest.mark.asyncio()
    async def test_stream_web_search_adds_tool(self, provider: AnthropicProvider) -> None:
        provider._client.messages.stream = MagicMock(
            return_value=_FakeAnthropicStream([], self._make_mock_response())
        )

        _ = [
            e
            async for e in provider.stream(
                [{"role": "user", "content": "Hi"}], max_tokens=500, web_search=True
            )
        ]

        kwargs = provider._client.messages.stream.call_args.kwargs
        assert kwargs["tools"] == [WEB_SEARCH_TOOL]
        assert kwargs["max_tokens"] == 500

    @pytest.mark.asyncio()
    async def test_health_check_success(self, provider: AnthropicProvider) -> None:
        provider._client.models.list = AsyncMock(return_value=[])
        assert await provider.health_check() is True

    @pytest.mark.asyncio()
    async def test_health_check_failure(self, provider: AnthropicProvider) -> None:
        provider._client.models.list = AsyncMock(side_effect=Exception("Network error"))
        assert await provider.health_check() is False


class TestOpenAICompatProvider:
    """Test OpenAICompatProvider with mocked aiohttp."""

    @pytest.fixture()
    def provider(self) -> OpenAICompatProvider:
        return OpenAICompatProvider(
            api_key="test-key",
            model="gpt-4o",
            base_url="https://api.openai.com/v1",
        )

    @pytest.mark.asyncio()
    async def test_stream_request_body(self, provider: OpenAICompatProvider) -> None:
        provider._session = _mock_session(_FakeAiohttpResponse(200, lines=[_sse("[DONE]")]))

        _ = [
            e
            async for e in provider.stream(
                [{"role": "user", "content": "Hello"}], system="Be helpful"
            )
        ]

        body = provider._session.post.call_args.kwargs["json"]
        assert body["messages"][0] == {"role": "system", "content": "Be helpful"}
        assert body["stream"] is True
        assert body["model"] == "gpt-4o"
        assert "max_completion_tokens" in body

    @pytest.mark.asyncio()
    async def test_stream_parses_sse(self, provider: OpenAICompatProvider) -> None:
        lines = [
            b"\n",
            _sse({"choices": [{"delta": {"content": "Hel"}}]}),
            b": keep-alive\n",
            _sse({"choices": [{"delta": {"content": "lo"}, "finish_reason": "stop"}]}),
            _sse({"choices": [], "usage": {"prompt_tokens": 5, "completion_tokens": 2}}),
            _sse("[DONE]"),
        ]
        provider._session = _mock_session(_FakeAiohttpResponse(200, lines=lines))

        events = [e async for e in provider.stream([{"role": "user", "content": "Hi"}])]

        assert events == [
            TextDelta(text="Hel"),
            TextDelta(text="lo"),
            StreamDone(stop_reason="end_turn", usage=events[-1].usage),
        ]
        assert events[-1].usage.input_tokens == 5

    @pytest.mark.asyncio()
    async def test_stream_without_usage_still_finishes(
        self, provider: OpenAICompatProvider
    ) -> None:
        lines = [_sse({"choices": [{"delta": {"content": "x"}}]}), _sse("[DONE]")]
        provider._session = _mock_session(_FakeAiohttpResponse(200, lines=lines))

        events = [e async for e in provider.stream([{"role": "user", "content": "Hi"}])]

        assert isinstance(events[-1], StreamDone)

    @pytest.mark.asyncio()
    async def test_stream_error_status(self, provider: OpenAICompatProvider) -> None:
        provider._session = _mock_session(_FakeAiohttpResponse(429, text="rate limited"))

        with pytest.raises(RuntimeError, match="429"):
            _ = [e async for e in provider.stream([{"role": "user", "content": "Hi"}])]

    @pytest.mark.asyncio()
    async def test_web_search_only_for_search_models(self) -> None:
        lines = [_sse("[DONE]")]
        plain = OpenAICompatProvider("k", "gpt-4o", "https://api.openai.com/v1")
        search = OpenAICompatProvider("k", "gpt-4o-search-preview", "https://api.openai.com/v1")
        plain._session = _mock_session(_FakeAiohttpResponse(200, lines=lines))
        search._session = _mock_session(_FakeAiohttpResponse(200, lines=list(lines)))

        for provider in (plain, search):
            _ = [
                e
                async for e in provider.stream(
                    [{"role": "user", "content": "Hi"}], web_search=True
                )
            ]

        assert "web_search_options" not in plain._session.post.call_args.kwargs["json"]
        assert "web_search_options" in search._session.post.call_args.kwargs["json"]

    def test_max_tokens_param_for_compatible_gateways(self) -> None:
        provider = OpenAICompatProvider("k", "llama", "http://localhost:8000/v1/")
        assert provider._max_tokens_param(10) == {"max_tokens": 10}
        assert provider._base_url == "http://localhost:8000/v1"

    @pytest.mark.asyncio()
    async def test_health_check_success(self, provider: OpenAICompatProvider) -> None:
        provider._session = _mock_session(_FakeAiohttpResponse(200))
        assert await provider.health_check() is True

    @pytest.mark.asyncio()
    async def test_health_check_failure(self, provider: OpenAICompatProvider) -> None:
        session = _mock_session(_FakeAiohttpResponse(200))
        session.get.side_effect = Exception("Connection refused")
        provider._session = session

        assert await provider.health_check() is False


class TestProviderFactory:
    def test_anthropic_by_default(self) -> None:
        settings = Settings(anthropic=AnthropicSettings(api_key="sk-ant-x"))
        assert isinstance(create_provider(settings), AnthropicProvider)

    def test_openai_selected(self) -> None:
        settings = Settings(
            llm=LLMSettings(provider="openai"),
            openai=OpenAISettings(api_key="sk-x", model="gpt-4o-mini"),
        )
        provider = create_provider(settings)
        assert isinstance(provider, OpenAICompatProvider)
        assert provider._model == "gpt-4o-mini"

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValueError):
            create_provider(Settings(llm=LLMSettings(provider="gemini")))

    def test_installed_provider_returned(self) -> None:
        provider = MagicMock()
        set_provider(provider)
        try:
            assert get_provider() is provider
        finally:
            set_provider(None)

    def test_provider_must_implement_stream(self) -> None:
        class _HealthOnly(AbstractProvider):
            async def health_check(self) -> bool:
                return True

        with pytest.raises(TypeError):
            _HealthOnly()  # type: ignore[abstract]
