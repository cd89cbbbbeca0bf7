"""Prompt-builder project storage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from src.store.engine import set_clause

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine

RESPONSE_MODES = ("PROMPT", "AI_RESPONSE")

_COLUMNS = """
    id, name, description, tags, available_variables, response_mode,
    is_public, user_id, created_at, updated_at
"""
_UPDATABLE = ("name", "description", "tags", "available_variables", "response_mode", "is_public")


class ProjectStore:
    """CRUD for projects, listed by most recent update."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def list_projects(
        self, *, owner_id: UUID | str | None = None, public_only: bool = False
    ) -> list[dict[str, Any]]:
        conditions = ["1=1"]
        params: dict[str, Any] = {}
        if owner_id is not None:
            conditions.append("user_id = :owner_id")
            params["owner_id"] = str(owner_id)
        if public_only:
            conditions.append("is_public = true")

        where_clause = " AND ".join(conditions)
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    SELECT {_COLUMNS}
                    FROM projects
                    WHERE {where_clause}
                    ORDER BY updated_at DESC
                """),
                params,
            )
            return [dict(row._mapping) for row in result]

    async def get_project(self, project_id: UUID | str) -> dict[str, Any] | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT {_COLUMNS} FROM projects WHERE id = :project_id"),
                {"project_id": str(project_id)},
            )
            row = result.first()
        return dict(row._mapping) if row else None

    async def create_project(
        self,
        *,
        owner_id: UUID | str,
        name: str,
        description: str,
        tags: list[str],
        available_variables: list[str],
        response_mode: str,
        is_public: bool = False,
    ) -> dict[str, Any]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    INSERT INTO projects
                        (name, description, tags, available_variables,
                         response_mode, is_public, user_id)
                    VALUES
                        (:name, :description, :tags, :available_variables,
                         :response_mode, :is_public, :user_id)
                    RETURNING {_COLUMNS}
                """),
                {
                    "name": name,
                    "description": description,
                    "tags": tags,
                    "available_variables": available_variables,
                    "response_mode": response_mode,
                    "is_public": is_public,
                    "user_id": str(owner_id),
                },
            )
            return dict(result.first()._mapping)  # type: ignore[union-attr]

    async def update_project(
        self, project_id: UUID | str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        updates = {k: v for k, v in fields.items() if k in _UPDATABLE}
        params: dict[str, Any] = {**updates, "project_id": str(project_id)}
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE projects
                    SET {set_clause(updates)}
                    WHERE id = :project_id
                    RETURNING {_COLUMNS}
                """),
                params,
            )
            row = result.first()
        return dict(row._mapping) if row else None

    async def delete_project(self, project_id: UUID | str) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text("DELETE FROM projects WHERE id = :project_id RETURNING id"),
                {"project_id": str(project_id)},
            )
            return result.first() is not None
