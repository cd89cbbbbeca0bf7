"""Shared system prompt storage, keyed by system type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

SYSTEM_TYPES = ("PRODUCTS", "BLOG", "MARKETING")

_COLUMNS = "id, system_type, prompt, created_at, updated_at"


class SystemPromptStore:
    """One prompt per system type (upsert semantics)."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def list_prompts(self) -> list[dict[str, Any]]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM system_prompts ORDER BY system_type")
            )
            return [dict(row._mapping) for row in result]

    async def get_prompt(self, system_type: str) -> dict[str, Any] | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM system_prompts WHERE system_type = :system_type"),
                {"system_type": system_type},
            )
            row = result.first()
        return dict(row._mapping) if row else None

    async def upsert_prompt(self, system_type: str, prompt: str) -> dict[str, Any]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    INSERT INTO system_prompts (system_type, prompt)
                    VALUES (:system_type, :prompt)
                    ON CONFLICT (system_type)
                    DO UPDATE SET prompt = EXCLUDED.prompt, updated_at = now()
                    RETURNING {_COLUMNS}
                """),
                {"system_type": system_type, "prompt": prompt},
            )
            return dict(result.first()._mapping)  # type: ignore[union-attr]

    async def get_or_create(self, system_type: str, default_prompt: str) -> dict[str, Any]:
        """Return the prompt for `system_type`, creating it from the default if missing.

        ON CONFLICT DO NOTHING keeps concurrent first reads from creating
        two rows; the follow-up SELECT returns whichever insert won.
        """
        async with self._engine.begin() as conn:
            inserted = await conn.execute(
                text("""
                    INSERT INTO system_prompts (system_type, prompt)
                    VALUES (:system_type, :prompt)
                    ON CONFLICT (system_type) DO NOTHING
                    RETURNING id
                """),
                {"system_type": system_type, "prompt": default_prompt},
            )
            if inserted.first() is not None:
                logger.info("Created default system prompt for %s", system_type)

            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM system_prompts WHERE system_type = :system_type"),
                {"system_type": system_type},
            )
            return dict(result.first()._mapping)  # type: ignore[union-attr]
