"""Admin REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_admin.application.service import AdminService
from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_roles
from src.gm_gateway.auth.principal import Principal

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.get("/invariants")
async def verify_invariants(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return respond(request, result)


@router.get("/stats")
async def get_platform_stats(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.get_platform_stats(db)
    return respond(request, result)
