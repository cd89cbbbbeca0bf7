"""User storage.

Users carry an explicit permission set (`TEXT[]`). Password hashes are only
returned by `get_user_by_email`, which is reserved for authentication.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from src.store.engine import set_clause

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine


_PUBLIC_COLUMNS = "u.id, u.email, u.name, u.permissions, u.created_at, u.updated_at"
_PROJECT_COUNT = "(SELECT COUNT(*) FROM projects p WHERE p.user_id = u.id) AS project_count"
_UPDATABLE = ("email", "name", "password_hash", "permissions")


class DuplicateEmailError(Exception):
    """Raised when an email is already registered."""


def normalize_permissions(permissions: Iterable[str]) -> list[str]:
    """Collapse a permission collection to a sorted list without duplicates."""
    return sorted(set(permissions))


def _row_to_user(row: Any) -> dict[str, Any]:
    user = dict(row._mapping)
    user["permissions"] = normalize_permissions(user.get("permissions") or [])
    return user


class UserStore:
    """CRUD for users."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def list_users(self) -> list[dict[str, Any]]:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    SELECT {_PUBLIC_COLUMNS}, {_PROJECT_COUNT}
                    FROM users u
                    ORDER BY u.created_at DESC
                """)
            )
            return [_row_to_user(row) for row in result]

    async def get_user(self, user_id: UUID | str) -> dict[str, Any] | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    SELECT {_PUBLIC_COLUMNS}, {_PROJECT_COUNT}
                    FROM users u
                    WHERE u.id = :user_id
                """),
                {"user_id": str(user_id)},
            )
            row = result.first()
        return _row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Fetch a user including the password hash."""
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text("""
                    SELECT id, email, name, password_hash, permissions
                    FROM users
                    WHERE email = :email
                """),
                {"email": email},
            )
            row = result.first()
        return _row_to_user(row) if row else None

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        permissions: Iterable[str],
    ) -> dict[str, Any]:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(
                    text("""
                        INSERT INTO users (email, name, password_hash, permissions)
                        VALUES (:email, :name, :password_hash, :permissions)
                        RETURNING id, email, name, permissions, created_at, updated_at
                    """),
                    {
                        "email": email,
                        "name": name,
                        "password_hash": password_hash,
                        "permissions": normalize_permissions(permissions),
                    },
                )
                row = result.first()
        except IntegrityError as e:
            raise DuplicateEmailError(email) from e
        return _row_to_user(row)

    async def update_user(
        self, user_id: UUID | str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Partially update a user. Returns None if the user does not exist."""
        updates = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if "permissions" in updates:
            updates["permissions"] = normalize_permissions(updates["permissions"])

        params: dict[str, Any] = {**updates, "user_id": str(user_id)}
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(
                    text(f"""
                        UPDATE users
                        SET {set_clause(updates)}
                        WHERE id = :user_id
                        RETURNING id, email, name, permissions, created_at, updated_at
                    """),
                    params,
                )
                row = result.first()
        except IntegrityError as e:
            raise DuplicateEmailError(str(fields.get("email", ""))) from e
        return _row_to_user(row) if row else None

    async def set_permissions(
        self, user_id: UUID | str, permissions: Iterable[str]
    ) -> dict[str, Any] | None:
        return await self.update_user(user_id, {"permissions": list(permissions)})

    async def delete_user(self, user_id: UUID | str) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text("DELETE FROM users WHERE id = :user_id RETURNING id"),
                {"user_id": str(user_id)},
            )
            return result.first() is not None
