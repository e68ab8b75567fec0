"""gm_wallet REST API. Reads for wallet owners, everything else admin-only."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind, WalletOwnerKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_principal, require_roles
from src.gm_gateway.auth.principal import Principal
from src.gm_wallet.application.schemas import AdjustBalanceRequest, AdminSetBalanceRequest
from src.gm_wallet.application.service import WalletApplicationService

router = APIRouter(prefix="/wallets", tags=["wallets"])

_service = WalletApplicationService()
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.get("/me")
async def get_my_wallet(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_my_wallet(db, principal)
    return respond(request, data.model_dump())


@router.get("")
async def list_wallets(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    owner_kind: WalletOwnerKind | None = Query(None),
) -> ApiResponse:
    data = await _service.list_wallets(db, owner_kind.value if owner_kind else None)
    return respond(request, data.model_dump())


@router.get("/{wallet_id}")
async def get_wallet(
    wallet_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_wallet(db, principal, wallet_id)
    return respond(request, data.model_dump())


@router.put("/{wallet_id}/balance")
async def admin_set_balance(
    wallet_id: str,
    body: AdminSetBalanceRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.admin_set_balance(db, principal.id, wallet_id, body.balance_cents)
    return respond(request, data.model_dump(), "Wallet balance updated")


@router.post("/owners/{owner_id}/credit")
async def credit(
    owner_id: str,
    body: AdjustBalanceRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.credit(db, owner_id, body.amount_cents)
    return respond(request, data.model_dump(), "Wallet credited")


@router.post("/owners/{owner_id}/debit")
async def debit(
    owner_id: str,
    body: AdjustBalanceRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.debit(db, owner_id, body.amount_cents)
    return respond(request, data.model_dump(), "Wallet debited")


@router.get("/owners/{owner_id}/balance")
async def get_balance(
    owner_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    balance = await _service.get_balance(db, owner_id)
    return respond(request, {"owner_id": owner_id, "balance_cents": balance})
