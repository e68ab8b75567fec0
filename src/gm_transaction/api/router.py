"""gm_transaction REST API — checkout, retry, and the transaction log."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind, TransactionStatus
from src.gm_common.errors import PaymentFailedError
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_principal, require_roles
from src.gm_gateway.auth.principal import Principal
from src.gm_transaction.application.checkout import CheckoutService
from src.gm_transaction.application.schemas import (
    CheckoutRequest,
    RetryCheckoutRequest,
    UpdateStatusRequest,
)
from src.gm_transaction.application.service import TransactionApplicationService

router = APIRouter(tags=["transactions"])

_checkout = CheckoutService()
_service = TransactionApplicationService()
_user_only = require_roles(PrincipalKind.USER)
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.post("/checkout")
async def checkout(
    body: CheckoutRequest,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    response: Response,
) -> ApiResponse:
    data = await _checkout.checkout(
        db, principal.id, body.payment_method.value, body.status.value
    )
    if data.payment_failed:
        # Failed transactions are committed; only the HTTP outcome is an error.
        err = PaymentFailedError()
        response.status_code = err.http_status
        resp = respond(request, data.model_dump(), err.message)
        resp.code = err.code
        return resp
    return respond(request, data.model_dump(), "Checkout completed successfully")


@router.post("/checkout/retry")
async def retry_failed_checkout(
    body: RetryCheckoutRequest,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _checkout.retry_failed_checkout(db, principal.id, body.payment_method.value)
    return respond(request, data.model_dump(), "Failed payments retried successfully")


@router.get("/transactions/mine")
async def list_my_transactions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_my_transactions(db, principal)
    return respond(request, {"items": [t.model_dump() for t in items]})


@router.get("/transactions")
async def list_all_transactions(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    tx_status: TransactionStatus | None = Query(None, alias="status"),
    from_id: str | None = Query(None),
) -> ApiResponse:
    items = await _service.list_all_transactions(
        db, tx_status.value if tx_status else None, from_id
    )
    return respond(request, {"items": [t.model_dump() for t in items]})


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_transaction(db, principal, transaction_id)
    return respond(request, data.model_dump())


@router.patch("/transactions/{transaction_id}/status", status_code=status.HTTP_200_OK)
async def update_status(
    transaction_id: str,
    body: UpdateStatusRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_status(db, principal.id, transaction_id, body.status.value)
    return respond(request, data.model_dump(), "Transaction status updated")
