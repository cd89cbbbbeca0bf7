"""Unit tests for research, datasheet and streaming prompt endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.errors import install_error_handlers
from src.api.generation import router
from src.api.permissions import Products
from src.config import Settings
from src.content.prompts import (
    DEFAULT_PRODUCTS_PROMPT,
    PRODUCTS_SYSTEM_TYPE,
    WEB_SEARCH_INSTRUCTION,
)
from tests.helpers.sessions import auth_headers
from tests.unit.mocks.fake_stores import FakeProductStore, FakeSystemPromptStore
from tests.unit.mocks.mock_provider import MockProvider

RESEARCH = auth_headers([Products.RESEARCH])
DATASHEET = auth_headers([Products.DATASHEET])


@pytest.fixture()
def products() -> FakeProductStore:
    return FakeProductStore()


@pytest.fixture()
def prompts() -> FakeSystemPromptStore:
    return FakeSystemPromptStore()


@pytest.fixture()
def provider_slot() -> MagicMock:
    """Holds the provider handed to the endpoints; tests assign `.return_value`."""
    return MagicMock(return_value=MockProvider())


@pytest.fixture()
def client(
    patched_auth: Settings,
    products: FakeProductStore,
    prompts: FakeSystemPromptStore,
    provider_slot: MagicMock,
) -> Iterator[TestClient]:
    app = FastAPI()
    app.include_router(router)
    install_error_handlers(app)
    with (
        patch("src.api.generation._product_store", new_callable=AsyncMock, return_value=products),
        patch("src.api.generation._prompt_store", new_callable=AsyncMock, return_value=prompts),
        patch("src.api.generation.get_provider", provider_slot),
    ):
        yield TestClient(app, raise_server_exceptions=False)


def _use(provider_slot: MagicMock, provider: MockProvider) -> MockProvider:
    provider_slot.return_value = provider
    return provider


class TestResearch:
    def test_json_output_stored_as_structure(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(brand="Acme", model="X1")
        _use(provider_slot, MockProvider(chunks=['{"description": ', '"A widget"}']))

        response = client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert response.status_code == 200
        assert response.json()["product"]["research_data"] == {"description": "A widget"}
        assert products.rows[product["id"]]["research_data"] == {"description": "A widget"}

    def test_non_json_output_wrapped_as_raw(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add()
        _use(provider_slot, MockProvider(chunks=["Plain ", "prose answer"]))

        response = client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert response.json()["product"]["research_data"] == {"raw": "Plain prose answer"}

    def test_shared_prompt_created_once_and_rendered(
        self,
        client: TestClient,
        products: FakeProductStore,
        prompts: FakeSystemPromptStore,
        provider_slot: MagicMock,
    ) -> None:
        product = products.add(brand="Acme", model="X1")
        provider = _use(provider_slot, MockProvider(chunks=["{}"]))

        client.post(f"/products/{product['id']}/research", headers=RESEARCH)
        client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert prompts.created == 1
        assert prompts.rows[PRODUCTS_SYSTEM_TYPE]["prompt"] == DEFAULT_PRODUCTS_PROMPT
        assert provider.last_prompt.startswith(WEB_SEARCH_INSTRUCTION)
        assert "Product: Acme X1" in provider.last_prompt
        assert "{brand}" not in provider.last_prompt

    def test_request_prompt_overrides_product_prompt(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(brand="Acme", model="X1", custom_prompt="Stored {model}")
        provider = _use(provider_slot, MockProvider(chunks=["{}"]))

        client.post(
            f"/products/{product['id']}/research",
            json={"custom_prompt": "Ad hoc {brand}/{model}"},
            headers=RESEARCH,
        )

        assert "Ad hoc Acme/X1" in provider.last_prompt
        assert "Stored" not in provider.last_prompt

    def test_product_prompt_beats_shared_prompt(
        self,
        client: TestClient,
        products: FakeProductStore,
        prompts: FakeSystemPromptStore,
        provider_slot: MagicMock,
    ) -> None:
        product = products.add(brand="Acme", model="X1", custom_prompt="Stored {model}")
        provider = _use(provider_slot, MockProvider(chunks=["{}"]))

        client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert "Stored X1" in provider.last_prompt
        assert prompts.created == 0

    def test_web_search_requested(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add()
        provider = _use(provider_slot, MockProvider(chunks=["{}"]))

        client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert provider.calls[-1]["web_search"] is True

    def test_provider_failure_keeps_previous_research(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(research_data={"description": "old"})
        _use(provider_slot, MockProvider(error=RuntimeError("upstream down")))

        response = client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to research product"}
        assert products.rows[product["id"]]["research_data"] == {"description": "old"}

    def test_failure_part_way_stores_nothing(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add()
        _use(provider_slot, MockProvider(chunks=['{"a":', " 1}"], fail_after=1))

        response = client.post(f"/products/{product['id']}/research", headers=RESEARCH)

        assert response.status_code == 500
        assert products.rows[product["id"]]["research_data"] is None

    def test_requires_research_permission(
        self, client: TestClient, products: FakeProductStore
    ) -> None:
        product = products.add()
        response = client.post(
            f"/products/{product['id']}/research", headers=auth_headers([Products.EDIT])
        )
        assert response.status_code == 403

    def test_missing_product_is_404(self, client: TestClient) -> None:
        response = client.post(
            "/products/11111111-1111-1111-1111-111111111111/research", headers=RESEARCH
        )
        assert response.status_code == 404


class TestDatasheet:
    def test_requires_research_first(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add()
        provider = _use(provider_slot, MockProvider())

        response = client.post(f"/products/{product['id']}/datasheet", headers=DATASHEET)

        assert response.status_code == 400
        assert provider.calls == []

    @pytest.mark.parametrize("research", [{}, []])
    def test_empty_research_is_accepted(
        self,
        client: TestClient,
        products: FakeProductStore,
        provider_slot: MagicMock,
        research: Any,
    ) -> None:
        product = products.add(research_data=research)
        _use(provider_slot, MockProvider(chunks=["<h1>Acme X1</h1>"]))

        response = client.post(f"/products/{product['id']}/datasheet", headers=DATASHEET)

        assert response.status_code == 200
        assert response.json()["datasheet"] == "<h1>Acme X1</h1>"

    def test_code_fences_stripped(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(research_data={"description": "A widget"})
        _use(provider_slot, MockProvider(chunks=["```html\n<h1>Acme X1</h1>", "\n```"]))

        response = client.post(f"/products/{product['id']}/datasheet", headers=DATASHEET)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["datasheet"] == "<h1>Acme X1</h1>"
        assert products.rows[product["id"]]["datasheet_content"] == "<h1>Acme X1</h1>"

    def test_prompt_includes_research(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(brand="Acme", model="X1", research_data={"price": "$10"})
        provider = _use(provider_slot, MockProvider(chunks=["<h1>x</h1>"]))

        client.post(f"/products/{product['id']}/datasheet", headers=DATASHEET)

        assert "Product: Acme X1" in provider.last_prompt
        assert '"price": "$10"' in provider.last_prompt

    def test_provider_failure_is_500(
        self, client: TestClient, products: FakeProductStore, provider_slot: MagicMock
    ) -> None:
        product = products.add(research_data={"a": 1}, datasheet_content="<h1>old</h1>")
        _use(provider_slot, MockProvider(error=RuntimeError("boom")))

        response = client.post(f"/products/{product['id']}/datasheet", headers=DATASHEET)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate datasheet"}
        assert products.rows[product["id"]]["datasheet_content"] == "<h1>old</h1>"

    def test_requires_datasheet_permission(
        self, client: TestClient, products: FakeProductStore
    ) -> None:
        product = products.add(research_data={"a": 1})
        response = client.post(f"/products/{product['id']}/datasheet", headers=RESEARCH)
        assert response.status_code == 403


class TestStreamingPrompt:
    def test_streams_text_increments(self, client: TestClient, provider_slot: MagicMock) -> None:
        provider = _use(provider_slot, MockProvider(chunks=["Hel", "lo", " there"]))

        response = client.post(
            "/generate/prompt", json={"input": "Say hello"}, headers=RESEARCH
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Hello there"
        assert provider.last_prompt == "Say hello"

    def test_any_authenticated_user_may_stream(
        self, client: TestClient, provider_slot: MagicMock
    ) -> None:
        _use(provider_slot, MockProvider(chunks=["ok"]))
        response = client.post("/generate/prompt", json={"input": "x"}, headers=auth_headers([]))
        assert response.status_code == 200

    def test_unauthenticated_is_401(self, client: TestClient) -> None:
        response = client.post("/generate/prompt", json={"input": "x"})
        assert response.status_code == 401

    def test_immediate_failure_is_json_500(
        self, client: TestClient, provider_slot: MagicMock
    ) -> None:
        _use(provider_slot, MockProvider(error=RuntimeError("upstream down")))

        response = client.post("/generate/prompt", json={"input": "x"}, headers=RESEARCH)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate response"}

    def test_failure_after_start_truncates_stream(
        self, client: TestClient, provider_slot: MagicMock
    ) -> None:
        _use(provider_slot, MockProvider(chunks=["partial", " rest"], fail_after=1))

        response = client.post("/generate/prompt", json={"input": "x"}, headers=RESEARCH)

        assert response.status_code == 200
        assert response.text == "partial"

    def test_empty_input_is_400(self, client: TestClient) -> None:
        response = client.post("/generate/prompt", json={"input": ""}, headers=RESEARCH)
        assert response.status_code == 400
