"""Product research and datasheet prompt building and output parsing."""

from __future__ import annotations

import json
import re
from typing import Any, NoReturn

from src.content.prompts import (
    DATASHEET_OUTPUT_RULES,
    DATASHEET_SYSTEM_PROMPT,
    WEB_SEARCH_INSTRUCTION,
)

_CODE_FENCE_RE = re.compile(r"```(?:html)?\n?")


def build_research_prompt(rendered_template: str) -> str:
    """Prefix the rendered template with the web-search instruction."""
    return f"{WEB_SEARCH_INSTRUCTION}\n\n{rendered_template}"


def _reject_constant(name: str) -> NoReturn:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_research_output(raw_text: str) -> Any:
    """Keep valid JSON as structured data, otherwise wrap the text as `{"raw": ...}`.

    `NaN` and `Infinity` are not JSON and cannot be stored as JSONB.
    """
    try:
        return json.loads(raw_text, parse_constant=_reject_constant)
    except ValueError:
        return {"raw": raw_text}


def build_datasheet_prompt(product: dict[str, Any]) -> str:
    research = json.dumps(product["research_data"], indent=2, ensure_ascii=False)
    return (
        f"{DATASHEET_SYSTEM_PROMPT}\n\n"
        "Generate a complete datasheet for the following product using the "
        "available research:\n\n"
        f"Product: {product['brand']} {product['model']}\n\n"
        f"Research data:\n{research}\n\n"
        f"{DATASHEET_OUTPUT_RULES}"
    )


def clean_datasheet_html(text: str) -> str:
    """Strip Markdown code fences the model sometimes wraps HTML in."""
    return _CODE_FENCE_RE.sub("", text).strip()
