"""gm_cart REST API — the buyer's cart and purchase history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_cart.application.schemas import SetPlatformFeeRequest
from src.gm_cart.application.service import CartService
from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_roles
from src.gm_gateway.auth.principal import Principal

router = APIRouter(prefix="/cart", tags=["cart"])

_service = CartService()
_user_only = require_roles(PrincipalKind.USER)
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.get("")
async def get_current(
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_current(db, principal.id)
    return respond(request, data.model_dump())


@router.get("/history")
async def get_history(
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    batches = await _service.get_history(db, principal.id)
    return respond(request, {"history": [b.model_dump() for b in batches]})


@router.delete("")
async def clear(
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.clear(db, principal.id)
    return respond(request, data.model_dump(), "Cart cleared successfully")


@router.put("/platform-fee")
async def set_platform_fee(
    body: SetPlatformFeeRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    updated = await _service.set_platform_fee(db, body.fee_cents)
    return respond(
        request,
        {"fee_cents": body.fee_cents, "carts_updated": updated},
        "Platform fee updated successfully",
    )
