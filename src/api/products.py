"""Product CRUD API endpoints.

Updates are partial: only fields present in the request body are written.
Marking a product finished is a separate capability (products:finish) from
editing its other fields (products:edit).
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.auth import Session, check_permissions, require_any, require_session
from src.api.permissions import Products
from src.store.engine import get_engine
from src.store.products import DEFAULT_ICON, ProductStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/products", tags=["products"])

# Module-level dependencies to satisfy B008 lint rule
_session_dep = Depends(require_session)
_perm_read = Depends(
    require_any(
        Products.VIEW,
        Products.RESEARCH,
        Products.DATASHEET,
        detail="You don't have permission to view products",
    )
)
_perm_create = Depends(
    require_any(Products.CREATE, detail="You don't have permission to create products")
)
_perm_delete = Depends(
    require_any(Products.DELETE, detail="You don't have permission to delete products")
)
_perm_prompt = Depends(
    require_any(
        Products.RESEARCH,
        Products.EDIT,
        detail="You don't have permission to edit the product prompt",
    )
)
_perm_datasheet_edit = Depends(
    require_any(
        Products.DATASHEET,
        Products.EDIT,
        detail="You don't have permission to edit datasheets",
    )
)

_EDIT_FIELDS = ("brand", "model", "icon")


async def _store() -> ProductStore:
    return ProductStore(await get_engine())


class CreateProductRequest(BaseModel):
    brand: str = Field(min_length=1, max_length=255)
    model: str = Field(min_length=1, max_length=255)
    icon: str | None = Field(default=None, max_length=100)


class UpdateProductRequest(BaseModel):
    brand: str | None = Field(default=None, min_length=1, max_length=255)
    model: str | None = Field(default=None, min_length=1, max_length=255)
    icon: str | None = Field(default=None, max_length=100)
    finished: bool | None = None


class UpdatePromptRequest(BaseModel):
    custom_prompt: str | None = None


class UpdateDatasheetRequest(BaseModel):
    content: str


@router.get("")
async def list_products(
    _: Session = _perm_read,
) -> dict[str, Any]:
    """List all products, newest first."""
    store = await _store()
    return {"products": await store.list_products()}


@router.get("/{product_id}")
async def get_product(
    product_id: UUID,
    _: Session = _perm_read,
) -> dict[str, Any]:
    store = await _store()
    product = await store.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"product": product}


@router.post("", status_code=201)
async def create_product(
    req: CreateProductRequest,
    session: Session = _perm_create,
) -> dict[str, Any]:
    brand, model = req.brand.strip(), req.model.strip()
    if not brand or not model:
        raise HTTPException(status_code=400, detail="Brand and model are required")

    store = await _store()
    product = await store.create_product(brand=brand, model=model, icon=req.icon)
    logger.info("Product %s %s created by %s", brand, model, session.user_id)
    return {"product": product}


@router.patch("/{product_id}")
async def update_product(
    product_id: UUID,
    req: UpdateProductRequest,
    session: Session = _session_dep,
) -> dict[str, Any]:
    """Partially update a product.

    `finished` requires products:finish or products:edit; any other field
    requires products:edit. Both rules apply when both kinds are present.
    """
    updates = req.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    if "finished" in updates:
        check_permissions(
            session,
            [Products.FINISH, Products.EDIT],
            detail="You don't have permission to change the finished status",
        )
        if updates["finished"] is None:
            raise HTTPException(status_code=400, detail="finished: must be a boolean")

    if any(field in updates for field in _EDIT_FIELDS):
        check_permissions(
            session, [Products.EDIT], detail="You don't have permission to edit products"
        )
        for field in ("brand", "model"):
            if field in updates and not (updates[field] or "").strip():
                raise HTTPException(status_code=400, detail=f"{field}: must not be empty")
        if "icon" in updates and not updates["icon"]:
            updates["icon"] = DEFAULT_ICON

    store = await _store()
    product = await store.update_product(product_id, updates)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"product": product}


@router.delete("/{product_id}")
async def delete_product(
    product_id: UUID,
    session: Session = _perm_delete,
) -> dict[str, str]:
    store = await _store()
    if not await store.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    logger.info("Product %s deleted by %s", product_id, session.user_id)
    return {"status": "deleted"}


@router.patch("/{product_id}/prompt")
async def update_product_prompt(
    product_id: UUID,
    req: UpdatePromptRequest,
    _: Session = _perm_prompt,
) -> dict[str, Any]:
    """Set or clear the product's own research template."""
    custom_prompt = req.custom_prompt if req.custom_prompt and req.custom_prompt.strip() else None

    store = await _store()
    product = await store.update_product(product_id, {"custom_prompt": custom_prompt})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"product": product}


@router.patch("/{product_id}/datasheet")
async def update_datasheet(
    product_id: UUID,
    req: UpdateDatasheetRequest,
    _: Session = _perm_datasheet_edit,
) -> dict[str, Any]:
    """Overwrite the generated datasheet with a manually edited one."""
    store = await _store()
    product = await store.update_product(product_id, {"datasheet_content": req.content})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "product": product}
