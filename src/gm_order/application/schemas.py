"""Pydantic schemas for gm_order API."""

from pydantic import BaseModel, Field

from src.gm_cart.domain.models import CartTotals
from src.gm_common.cents import cents_to_display
from src.gm_common.datetime_utils import iso_or_none
from src.gm_order.domain.models import Order, Rating


class AddOrderRequest(BaseModel):
    service_id: str
    add_on_ids: list[str] = Field(default_factory=list, max_length=20)


class UpdateAddOnsRequest(BaseModel):
    add_on_ids: list[str] = Field(default_factory=list, max_length=20)


class RateOrderRequest(BaseModel):
    rate: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class OrderResponse(BaseModel):
    id: str
    user_id: str
    service_id: str
    freelancer_id: str
    status: str
    order_price_cents: int
    order_price_display: str
    add_on_ids: list[str]
    rating_id: str | None
    transaction_id: str | None
    settlement_transaction_id: str | None
    created_at: str | None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_id=order.user_id,
            service_id=order.service_id,
            freelancer_id=order.freelancer_id,
            status=order.status,
            order_price_cents=order.order_price,
            order_price_display=cents_to_display(order.order_price),
            add_on_ids=list(order.add_on_ids),
            rating_id=order.rating_id,
            transaction_id=order.transaction_id,
            settlement_transaction_id=order.settlement_transaction_id,
            created_at=iso_or_none(order.created_at),
        )


class CartTotalsResponse(BaseModel):
    subtotal_cents: int
    platform_fee_cents: int
    total_cents: int

    @classmethod
    def from_totals(cls, totals: CartTotals) -> "CartTotalsResponse":
        return cls(
            subtotal_cents=totals.subtotal,
            platform_fee_cents=totals.platform_fee,
            total_cents=totals.total,
        )


class OrderWithCartResponse(BaseModel):
    order: OrderResponse
    cart: CartTotalsResponse


class RatingResponse(BaseModel):
    id: str
    order_id: str
    user_id: str
    freelancer_id: str
    rate: int
    comment: str | None
    created_at: str | None

    @classmethod
    def from_rating(cls, rating: Rating) -> "RatingResponse":
        return cls(
            id=rating.id,
            order_id=rating.order_id,
            user_id=rating.user_id,
            freelancer_id=rating.freelancer_id,
            rate=rating.rate,
            comment=rating.comment,
            created_at=iso_or_none(rating.created_at),
        )
