"""gm_order REST API — buyer, freelancer and admin views of orders."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.enums import OrderStatus, PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_principal, require_roles
from src.gm_gateway.auth.principal import Principal
from src.gm_order.application.schemas import (
    AddOrderRequest,
    RateOrderRequest,
    UpdateAddOnsRequest,
)
from src.gm_order.application.service import OrderApplicationService

router = APIRouter(tags=["orders"])

_service = OrderApplicationService()
_user_only = require_roles(PrincipalKind.USER)
_freelancer_only = require_roles(PrincipalKind.FREELANCER)
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def add_order(
    body: AddOrderRequest,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.add_order(db, principal.id, body.service_id, body.add_on_ids)
    return respond(request, data.model_dump(), "Order added successfully")


@router.get("/orders/mine")
async def get_all_user_orders(
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.get_all_user_orders(db, principal.id)
    return respond(request, {"items": [o.model_dump() for o in items]})


@router.get("/orders/assigned")
async def list_freelancer_orders(
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    order_status: OrderStatus | None = Query(None, alias="status"),
) -> ApiResponse:
    items = await _service.list_freelancer_orders(
        db, principal.id, order_status.value if order_status else None
    )
    return respond(request, {"items": [o.model_dump() for o in items]})


@router.get("/orders/completed/count")
async def completed_orders_count(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    count = await _service.completed_orders_count(db)
    return respond(request, {"completed_orders": count})


@router.get("/orders")
async def list_all_orders(
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    order_status: OrderStatus | None = Query(None, alias="status"),
) -> ApiResponse:
    items = await _service.list_all_orders(db, order_status.value if order_status else None)
    return respond(request, {"items": [o.model_dump() for o in items]})


@router.get("/orders/{order_id}")
async def get_order(
    order_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_order(db, principal, order_id)
    return respond(request, data.model_dump())


@router.put("/orders/{order_id}/add-ons")
async def update_add_ons(
    order_id: str,
    body: UpdateAddOnsRequest,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_add_ons(db, principal.id, order_id, body.add_on_ids)
    return respond(request, data.model_dump(), "Order updated successfully")


@router.delete("/orders/{order_id}")
async def delete_order(
    order_id: str,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.delete_order(db, principal.id, order_id)
    return respond(request, {"cart": data.model_dump()}, "Order deleted successfully")


@router.post("/orders/{order_id}/start")
async def start_order(
    order_id: str,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.start_order(db, principal.id, order_id)
    return respond(request, data.model_dump(), "Order started successfully")


@router.post("/orders/{order_id}/end")
async def end_order(
    order_id: str,
    principal: Annotated[Principal, Depends(_freelancer_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.end_order(db, principal.id, order_id)
    return respond(request, data.model_dump(), "Order completed successfully")


@router.post("/orders/{order_id}/rating", status_code=status.HTTP_201_CREATED)
async def rate_order(
    order_id: str,
    body: RateOrderRequest,
    principal: Annotated[Principal, Depends(_user_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.rate_order(db, principal.id, order_id, body.rate, body.comment)
    return respond(request, data.model_dump(), "Rating added successfully")


@router.get("/freelancers/{freelancer_id}/ratings")
async def list_ratings_for_freelancer(
    freelancer_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_ratings_for_freelancer(db, freelancer_id)
    return respond(request, {"items": [r.model_dump() for r in items]})


@router.delete("/ratings/{rating_id}")
async def delete_rating(
    rating_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_rating(db, principal, rating_id)
    return respond(request, None, "Rating deleted successfully")
