"""Product storage."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from src.store.engine import decode_json, set_clause

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine

DEFAULT_ICON = "Package"

_COLUMNS = """
    id, brand, model, icon, finished, custom_prompt,
    research_data, datasheet_content, created_at, updated_at
"""
_UPDATABLE = (
    "brand",
    "model",
    "icon",
    "finished",
    "custom_prompt",
    "research_data",
    "datasheet_content",
)
_CASTS = {"research_data": "jsonb"}


def _row_to_product(row: Any) -> dict[str, Any]:
    product = dict(row._mapping)
    product["research_data"] = decode_json(product.get("research_data"))
    return product


class ProductStore:
    """CRUD for products. Every update is a blind partial write."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def list_products(self) -> list[dict[str, Any]]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM products ORDER BY created_at DESC")
            )
            return [_row_to_product(row) for row in result]

    async def get_product(self, product_id: UUID | str) -> dict[str, Any] | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM products WHERE id = :product_id"),
                {"product_id": str(product_id)},
            )
            row = result.first()
        return _row_to_product(row) if row else None

    async def create_product(
        self, *, brand: str, model: str, icon: str | None = None
    ) -> dict[str, Any]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    INSERT INTO products (brand, model, icon)
                    VALUES (:brand, :model, :icon)
                    RETURNING {_COLUMNS}
                """),
                {"brand": brand, "model": model, "icon": icon or DEFAULT_ICON},
            )
            return _row_to_product(result.first())

    async def update_product(
        self, product_id: UUID | str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Partially update a product. Returns None if it does not exist."""
        updates = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if "research_data" in updates and updates["research_data"] is not None:
            updates["research_data"] = json.dumps(updates["research_data"], ensure_ascii=False)

        params: dict[str, Any] = {**updates, "product_id": str(product_id)}
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE products
                    SET {set_clause(updates, _CASTS)}
                    WHERE id = :product_id
                    RETURNING {_COLUMNS}
                """),
                params,
            )
            row = result.first()
        return _row_to_product(row) if row else None

    async def delete_product(self, product_id: UUID | str) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text("DELETE FROM products WHERE id = :product_id RETURNING id"),
                {"product_id": str(product_id)},
            )
            return result.first() is not None
