"""Shared async database engine."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.config import get_settings

_engine: AsyncEngine | None = None


async def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database.url, pool_pre_ping=True)
    return _engine


async def dispose_engine() -> None:
    """Dispose the shared engine (called on application shutdown)."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def decode_json(value: Any) -> Any:
    """asyncpg returns JSONB columns as text unless a codec is registered."""
    if isinstance(value, str):
        return json.loads(value)
    return value


def set_clause(fields: dict[str, Any], casts: dict[str, str] | None = None) -> str:
    """Build `col = :col, ...` for a partial UPDATE, always bumping updated_at.

    Column names come from the caller's whitelist, never from request data.
    """
    casts = casts or {}
    parts = []
    for name in fields:
        if name in casts:
            parts.append(f"{name} = CAST(:{name} AS {casts[name]})")
        else:
            parts.append(f"{name} = :{name}")
    parts.append("updated_at = now()")
    return ", ".join(parts)
