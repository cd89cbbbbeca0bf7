"""AI content generation endpoints.

Research and datasheet generation drain the provider stream server-side and
persist the result; `/generate/prompt` forwards text increments to the
client as they arrive.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from src.api.auth import Session, require_any, require_session
from src.api.permissions import Products
from src.config import get_settings
from src.content.generation import GenerationError, generate, generate_text
from src.content.research import (
    build_datasheet_prompt,
    build_research_prompt,
    clean_datasheet_html,
    parse_research_output,
)
from src.content.templates import render_template, resolve_product_template
from src.llm import get_provider
from src.store.engine import get_engine
from src.store.products import ProductStore
from src.store.system_prompts import SystemPromptStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)
router = APIRouter(tags=["generation"])

# Module-level dependencies to satisfy B008 lint rule
_session_dep = Depends(require_session)
_perm_research = Depends(
    require_any(Products.RESEARCH, detail="You don't have permission to research products")
)
_perm_datasheet = Depends(
    require_any(Products.DATASHEET, detail="You don't have permission to generate datasheets")
)


async def _product_store() -> ProductStore:
    return ProductStore(await get_engine())


async def _prompt_store() -> SystemPromptStore:
    return SystemPromptStore(await get_engine())


class ResearchRequest(BaseModel):
    custom_prompt: str | None = None


class PromptRequest(BaseModel):
    input: str = Field(min_length=1)


@router.post("/products/{product_id}/research")
async def research_product(
    product_id: UUID,
    req: ResearchRequest | None = None,
    session: Session = _perm_research,
) -> dict[str, Any]:
    """Run web-assisted research for a product and store the result.

    Output that is not valid JSON is kept as `{"raw": text}`.
    """
    store = await _product_store()
    product = await store.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    settings = get_settings()
    template = await resolve_product_template(
        product, await _prompt_store(), req.custom_prompt if req else None
    )
    prompt = build_research_prompt(render_template(template, product["brand"], product["model"]))

    logger.info("Researching product %s for %s", product_id, session.user_id)
    try:
        raw_text = await generate_text(
            get_provider(),
            prompt,
            max_tokens=settings.llm.max_tokens,
            web_search=settings.llm.web_search,
        )
    except GenerationError as e:
        raise HTTPException(status_code=500, detail="Failed to research product") from e

    updated = await store.update_product(
        product_id, {"research_data": parse_research_output(raw_text)}
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"product": updated}


@router.post("/products/{product_id}/datasheet")
async def generate_datasheet(
    product_id: UUID,
    session: Session = _perm_datasheet,
) -> dict[str, Any]:
    """Generate an HTML datasheet from the product's stored research."""
    store = await _product_store()
    product = await store.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.get("research_data") is None:
        raise HTTPException(
            status_code=400,
            detail="Product has no research data. Run research before generating a datasheet",
        )

    logger.info("Generating datasheet for product %s for %s", product_id, session.user_id)
    try:
        text = await generate_text(
            get_provider(),
            build_datasheet_prompt(product),
            max_tokens=get_settings().llm.max_tokens,
        )
    except GenerationError as e:
        raise HTTPException(status_code=500, detail="Failed to generate datasheet") from e

    datasheet = clean_datasheet_html(text)
    updated = await store.update_product(product_id, {"datasheet_content": datasheet})
    if not updated:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "datasheet": datasheet, "product": updated}


@router.post("/generate/prompt")
async def stream_prompt(
    req: PromptRequest,
    _: Session = _session_dep,
) -> StreamingResponse:
    """Stream raw text increments for a free-form prompt.

    The first increment is awaited before the response starts, so a provider
    that fails immediately still yields a JSON 500.
    """
    stream = generate(get_provider(), req.input, max_tokens=get_settings().llm.max_tokens)
    try:
        first = await anext(stream)
    except StopAsyncIteration:
        first = ""
    except GenerationError as e:
        raise HTTPException(status_code=500, detail="Failed to generate response") from e

    async def _body() -> AsyncIterator[str]:
        try:
            if first:
                yield first
            async for chunk in stream:
                yield chunk
        except GenerationError:
            logger.warning("Prompt stream interrupted after it started")
        finally:
            await stream.aclose()

    return StreamingResponse(_body(), media_type="text/plain; charset=utf-8")
