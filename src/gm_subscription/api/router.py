"""gm_subscription REST API — plans (admin writes, public reads) and subscribing."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import PaymentFailedError
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_roles
from src.gm_gateway.auth.principal import Principal
from src.gm_subscription.application.schemas import PlanCreate, PlanUpdate, SubscribeRequest
from src.gm_subscription.application.service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

_service = SubscriptionService()
_admin_only = require_roles(PrincipalKind.ADMIN)
_influencer_only = require_roles(PrincipalKind.INFLUENCER)


@router.get("/plans")
async def list_plans(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_plans(db)
    return respond(request, {"items": [p.model_dump() for p in items]})


@router.get("/plans/{plan_id}")
async def get_plan(
    plan_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_plan(db, plan_id)
    return respond(request, data.model_dump())


@router.post("/plans", status_code=status.HTTP_201_CREATED)
async def create_plan(
    body: PlanCreate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_plan(db, body)
    return respond(request, data.model_dump(), "Subscription plan created successfully")


@router.put("/plans/{plan_id}")
async def update_plan(
    plan_id: str,
    body: PlanUpdate,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_plan(db, plan_id, body)
    return respond(request, data.model_dump(), "Subscription plan updated successfully")


@router.delete("/plans/{plan_id}")
async def delete_plan(
    plan_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_plan(db, plan_id)
    return respond(request, None, "Subscription plan deleted successfully")


@router.get("/me")
async def get_my_subscription(
    principal: Annotated[Principal, Depends(_influencer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_my_subscription(db, principal.id)
    return respond(request, data.model_dump())


@router.post("/plans/{plan_id}/subscribe")
async def subscribe(
    plan_id: str,
    body: SubscribeRequest,
    principal: Annotated[Principal, Depends(_influencer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    response: Response,
) -> ApiResponse:
    data = await _service.subscribe(
        db, principal.id, plan_id, body.payment_method.value, body.status.value
    )
    if data.payment_failed:
        err = PaymentFailedError()
        response.status_code = err.http_status
        resp = respond(request, data.model_dump(), err.message)
        resp.code = err.code
        return resp
    return respond(request, data.model_dump(), f"Subscription process complete. Status: {data.status}")
