"""Prompt template resolution and placeholder substitution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from src.content.prompts import DEFAULT_PRODUCTS_PROMPT, PRODUCTS_SYSTEM_TYPE

if TYPE_CHECKING:
    from src.store.system_prompts import SystemPromptStore


def render_template(template: str, brand: str, model: str) -> str:
    """Replace every `{brand}` and `{model}`. Case-sensitive, no escaping."""
    return template.replace("{brand}", brand).replace("{model}", model)


async def resolve_product_template(
    product: dict[str, Any],
    prompts: SystemPromptStore,
    custom_prompt: str | None = None,
) -> str:
    """Pick the research template for a product.

    Order: caller-supplied prompt, the product's own custom prompt, the shared
    PRODUCTS prompt (created from the default on first use).
    """
    for candidate in (custom_prompt, product.get("custom_prompt")):
        if candidate and candidate.strip():
            return candidate

    system_prompt = await prompts.get_or_create(PRODUCTS_SYSTEM_TYPE, DEFAULT_PRODUCTS_PROMPT)
    return str(system_prompt["prompt"])
