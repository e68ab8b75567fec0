"""Category and subcategory endpoints. Reads are public, writes admin-only."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.application.schemas import (
    CategoryCreate,
    CategoryUpdate,
    SubcategoryCreate,
    SubcategoryUpdate,
)
from src.gm_catalog.application.service import CatalogService
from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_roles
from src.gm_gateway.auth.principal import Principal

router = APIRouter(tags=["catalog"])

_service = CatalogService()
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.get("/categories")
async def list_categories(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_categories(db)
    return respond(request, {"items": [c.model_dump() for c in items]})


@router.get("/categories/{category_id}")
async def get_category(
    category_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_category(db, category_id)
    return respond(request, data.model_dump())


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_category(db, body)
    return respond(request, data.model_dump(), "Category created successfully")


@router.put("/categories/{category_id}")
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_category(db, category_id, body)
    return respond(request, data.model_dump(), "Category updated successfully")


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_category(db, category_id)
    return respond(request, None, "Category deleted successfully")


@router.get("/subcategories")
async def list_subcategories(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    category_id: str | None = Query(None),
) -> ApiResponse:
    items = await _service.list_subcategories(db, category_id)
    return respond(request, {"items": [s.model_dump() for s in items]})


@router.get("/subcategories/{subcategory_id}")
async def get_subcategory(
    subcategory_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_subcategory(db, subcategory_id)
    return respond(request, data.model_dump())


@router.post("/subcategories", status_code=status.HTTP_201_CREATED)
async def create_subcategory(
    body: SubcategoryCreate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_subcategory(db, body)
    return respond(request, data.model_dump(), "Subcategory created successfully")


@router.put("/subcategories/{subcategory_id}")
async def update_subcategory(
    subcategory_id: str,
    body: SubcategoryUpdate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_subcategory(db, subcategory_id, body)
    return respond(request, data.model_dump(), "Subcategory updated successfully")


@router.delete("/subcategories/{subcategory_id}")
async def delete_subcategory(
    subcategory_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_subcategory(db, subcategory_id)
    return respond(request, None, "Subcategory deleted successfully")
