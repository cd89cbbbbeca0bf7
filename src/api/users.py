"""User management API endpoints.

Which fields of a PATCH are present decides the permission required:
changing a permission set needs users:manage_permissions (and never applies
to the caller's own account); name, email and password need users:edit.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.auth import (
    Session,
    check_permissions,
    forbid_self_action,
    hash_password,
    require_any,
    require_session,
)
from src.api.permissions import PERMISSION_GROUPS, Users, invalid_permissions
from src.store.engine import get_engine
from src.store.users import DuplicateEmailError, UserStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 6

# Module-level dependencies to satisfy B008 lint rule
_session_dep = Depends(require_session)
_perm_view = Depends(
    require_any(Users.VIEW, detail="You don't have permission to view users")
)
_perm_create = Depends(
    require_any(Users.CREATE, detail="You don't have permission to create users")
)
_perm_delete = Depends(
    require_any(Users.DELETE, detail="You don't have permission to delete users")
)

_PROFILE_FIELDS = ("name", "email", "password")


async def _store() -> UserStore:
    return UserStore(await get_engine())


class CreateUserRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)
    permissions: list[str] = Field(min_length=1)


class UpdateUserRequest(BaseModel):
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=MIN_PASSWORD_LENGTH, max_length=72)
    permissions: list[str] | None = None


def _validate_permissions(permissions: list[str]) -> None:
    """Reject the whole set if any entry is unknown."""
    if not permissions:
        raise HTTPException(status_code=400, detail="At least one permission is required")
    invalid = invalid_permissions(permissions)
    if invalid:
        raise HTTPException(
            status_code=400, detail=f"Invalid permissions: {', '.join(invalid)}"
        )


@router.get("")
async def list_users(
    _: Session = _perm_view,
) -> dict[str, Any]:
    """List all users, newest first, with their project counts."""
    store = await _store()
    return {"users": await store.list_users()}


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    _: Session = _perm_view,
) -> dict[str, Any]:
    store = await _store()
    user = await store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": user}


@router.post("", status_code=201)
async def create_user(
    req: CreateUserRequest,
    session: Session = _perm_create,
) -> dict[str, Any]:
    """Create a user with an explicit permission set."""
    _validate_permissions(req.permissions)

    store = await _store()
    try:
        user = await store.create_user(
            email=req.email,
            name=req.name,
            password_hash=hash_password(req.password),
            permissions=req.permissions,
        )
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail="A user with this email already exists") from e

    logger.info("User %s created by %s", user["email"], session.user_id)
    return {"user": user}


@router.patch("/{user_id}")
async def update_user(
    user_id: UUID,
    req: UpdateUserRequest,
    session: Session = _session_dep,
) -> dict[str, Any]:
    """Partially update a user's profile and/or permission set."""
    provided = req.model_dump(exclude_unset=True)
    if not provided:
        raise HTTPException(status_code=400, detail="No fields to update")

    if "permissions" in provided:
        check_permissions(
            session,
            [Users.MANAGE_PERMISSIONS],
            detail="You don't have permission to manage user permissions",
        )
        forbid_self_action(session, user_id, "You cannot modify your own permissions")
        _validate_permissions(provided["permissions"] or [])

    if any(field in provided for field in _PROFILE_FIELDS):
        check_permissions(session, [Users.EDIT], detail="You don't have permission to edit users")
        for field in _PROFILE_FIELDS:
            if field in provided and provided[field] is None:
                raise HTTPException(status_code=400, detail=f"{field}: must not be null")

    updates = {k: v for k, v in provided.items() if k != "password"}
    if "password" in provided:
        updates["password_hash"] = hash_password(provided["password"])

    store = await _store()
    try:
        user = await store.update_user(user_id, updates)
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail="A user with this email already exists") from e
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if "permissions" in provided:
        logger.info(
            "Permissions of user %s set to %s by %s",
            user_id,
            ",".join(user["permissions"]),
            session.user_id,
        )
    return {"user": user}


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    session: Session = _perm_delete,
) -> dict[str, str]:
    forbid_self_action(session, user_id, "You cannot delete your own account")

    store = await _store()
    if not await store.delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")

    logger.info("User %s deleted by %s", user_id, session.user_id)
    return {"status": "deleted"}


permissions_router = APIRouter(prefix="/permissions", tags=["permissions"])


@permissions_router.get("")
async def list_permission_groups(
    session: Session = _session_dep,
) -> dict[str, Any]:
    """Permission registry grouped for UI rendering, plus the caller's own set."""
    return {
        "groups": [asdict(group) for group in PERMISSION_GROUPS],
        "granted": sorted(session.permissions),
    }
