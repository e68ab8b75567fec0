"""Service and add-on endpoints."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.application.schemas import (
    AddOnCreate,
    AddOnUpdate,
    ServiceCreate,
    ServiceUpdate,
)
from src.gm_catalog.application.service import CatalogService
from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import (
    get_current_principal,
    get_optional_principal,
    require_roles,
)
from src.gm_gateway.auth.principal import Principal

router = APIRouter(tags=["services"])

_service = CatalogService()
_freelancer_only = require_roles(PrincipalKind.FREELANCER)
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.get("/services")
async def list_services(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    category_id: str | None = Query(None),
    subcategory_id: str | None = Query(None),
    freelancer_id: str | None = Query(None),
) -> ApiResponse:
    items = await _service.list_services(
        db, principal, category_id, subcategory_id, freelancer_id
    )
    return respond(request, {"items": [s.model_dump() for s in items]})


@router.get("/services/grouped/{key}")
async def grouped_services(
    key: Literal["category", "subcategory"],
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    groups = await _service.grouped_services(db, principal, key)
    return respond(request, {"groups": [g.model_dump() for g in groups]})


@router.get("/services/{service_id}")
async def get_service(
    service_id: str,
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_service(db, principal, service_id)
    return respond(request, data.model_dump())


@router.post("/services", status_code=status.HTTP_201_CREATED)
async def create_service(
    body: ServiceCreate,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_service(db, principal.id, body)
    return respond(request, data.model_dump(), "Service created successfully")


@router.put("/services/{service_id}")
async def update_service(
    service_id: str,
    body: ServiceUpdate,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_service(db, principal, service_id, body)
    return respond(request, data.model_dump(), "Service updated successfully")


@router.put("/services/{service_id}/image")
async def upload_service_image(
    service_id: str,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    image: UploadFile = File(...),
) -> ApiResponse:
    content = await image.read()
    data = await _service.upload_image(
        db, principal, service_id, image.filename or "upload", content
    )
    return respond(request, data.model_dump(), "Image uploaded successfully")


@router.patch("/services/{service_id}/approval")
async def toggle_approval(
    service_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.toggle_approval(db, service_id)
    return respond(request, data.model_dump(), "Service approval updated")


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_service(db, principal, service_id)
    return respond(request, None, "Service deleted successfully")


@router.get("/services/{service_id}/add-ons")
async def list_add_ons(
    service_id: str,
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_add_ons(db, principal, service_id)
    return respond(request, {"items": [a.model_dump() for a in items]})


@router.post("/services/{service_id}/add-ons", status_code=status.HTTP_201_CREATED)
async def create_add_on(
    service_id: str,
    body: AddOnCreate,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_add_on(db, principal, service_id, body)
    return respond(request, data.model_dump(), "Add-on created successfully")


@router.put("/add-ons/{add_on_id}")
async def update_add_on(
    add_on_id: str,
    body: AddOnUpdate,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_add_on(db, principal, add_on_id, body)
    return respond(request, data.model_dump(), "Add-on updated successfully")


@router.delete("/add-ons/{add_on_id}")
async def delete_add_on(
    add_on_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_add_on(db, principal, add_on_id)
    return respond(request, None, "Add-on deleted successfully")
