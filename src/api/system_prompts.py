"""Shared system prompt API endpoints (one prompt per system type)."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.api.auth import Session, require_any, require_session
from src.api.permissions import System
from src.store.engine import get_engine
from src.store.system_prompts import SYSTEM_TYPES, SystemPromptStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/system-prompts", tags=["system-prompts"])

# Module-level dependencies to satisfy B008 lint rule
_session_dep = Depends(require_session)
_perm_manage = Depends(
    require_any(System.MANAGE_SETTINGS, detail="You don't have permission to manage system prompts")
)

_SYSTEM_TYPE_PATTERN = f"^({'|'.join(SYSTEM_TYPES)})$"


async def _store() -> SystemPromptStore:
    return SystemPromptStore(await get_engine())


class UpsertSystemPromptRequest(BaseModel):
    system_type: str = Field(pattern=_SYSTEM_TYPE_PATTERN)
    prompt: str = Field(min_length=1)


@router.get("")
async def get_system_prompts(
    system_type: str | None = Query(None, pattern=_SYSTEM_TYPE_PATTERN),
    _: Session = _session_dep,
) -> dict[str, Any]:
    """List all system prompts, or the one for `system_type` (null if unset)."""
    store = await _store()
    if system_type:
        return {"system_prompt": await store.get_prompt(system_type)}
    return {"system_prompts": await store.list_prompts()}


@router.post("")
async def upsert_system_prompt(
    req: UpsertSystemPromptRequest,
    session: Session = _perm_manage,
) -> dict[str, Any]:
    """Create or replace the prompt for a system type."""
    if not req.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt must not be empty")

    store = await _store()
    system_prompt = await store.upsert_prompt(req.system_type, req.prompt)
    logger.info("System prompt %s updated by %s", req.system_type, session.user_id)
    return {"system_prompt": system_prompt}
