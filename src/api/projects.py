"""Prompt-builder project API endpoints.

Callers holding system:manage_settings see and manage their own projects;
everyone else only sees public projects.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.auth import Session, require_any, require_session
from src.api.permissions import System, has_permission
from src.store.engine import get_engine
from src.store.projects import RESPONSE_MODES, ProjectStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/projects", tags=["projects"])

# Module-level dependencies to satisfy B008 lint rule
_session_dep = Depends(require_session)
_perm_manage = Depends(
    require_any(System.MANAGE_SETTINGS, detail="You don't have permission to manage projects")
)

_RESPONSE_MODE_PATTERN = f"^({'|'.join(RESPONSE_MODES)})$"


async def _store() -> ProjectStore:
    return ProjectStore(await get_engine())


def _is_manager(session: Session) -> bool:
    return has_permission(session.permissions, System.MANAGE_SETTINGS)


def _is_visible(session: Session, project: dict[str, Any]) -> bool:
    if _is_manager(session):
        return str(project["user_id"]) == session.user_id
    return bool(project["is_public"])


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    available_variables: list[str] = Field(default_factory=list)
    response_mode: str = Field(default="PROMPT", pattern=_RESPONSE_MODE_PATTERN)
    is_public: bool = False


class UpdateProjectRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
    available_variables: list[str] | None = None
    response_mode: str | None = Field(default=None, pattern=_RESPONSE_MODE_PATTERN)
    is_public: bool | None = None


async def _owned_project(store: ProjectStore, project_id: UUID, session: Session) -> dict[str, Any]:
    project = await store.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    if str(project["user_id"]) != session.user_id:
        raise HTTPException(status_code=403, detail="You can only modify your own projects")
    return project


@router.get("")
async def list_projects(
    session: Session = _session_dep,
) -> dict[str, Any]:
    """List visible projects, most recently updated first."""
    store = await _store()
    if _is_manager(session):
        projects = await store.list_projects(owner_id=session.user_id)
    else:
        projects = await store.list_projects(public_only=True)
    return {"projects": projects}


@router.get("/{project_id}")
async def get_project(
    project_id: UUID,
    session: Session = _session_dep,
) -> dict[str, Any]:
    store = await _store()
    project = await store.get_project(project_id)
    if not project or not _is_visible(session, project):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"project": project}


@router.post("", status_code=201)
async def create_project(
    req: CreateProjectRequest,
    session: Session = _perm_manage,
) -> dict[str, Any]:
    if not req.name.strip() or not req.description.strip():
        raise HTTPException(status_code=400, detail="Name and description are required")

    store = await _store()
    project = await store.create_project(
        owner_id=session.user_id,
        name=req.name,
        description=req.description,
        tags=req.tags,
        available_variables=req.available_variables,
        response_mode=req.response_mode,
        is_public=req.is_public,
    )
    logger.info("Project %s created by %s", project["id"], session.user_id)
    return {"project": project}


@router.patch("/{project_id}")
async def update_project(
    project_id: UUID,
    req: UpdateProjectRequest,
    session: Session = _perm_manage,
) -> dict[str, Any]:
    updates = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    store = await _store()
    await _owned_project(store, project_id, session)
    project = await store.update_project(project_id, updates)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"project": project}


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    session: Session = _perm_manage,
) -> dict[str, str]:
    store = await _store()
    await _owned_project(store, project_id, session)
    if not await store.delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    logger.info("Project %s deleted by %s", project_id, session.user_id)
    return {"status": "deleted"}
