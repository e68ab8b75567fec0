"""Pydantic schemas for gm_cart API."""

from pydantic import BaseModel, Field

from src.gm_cart.domain.models import Cart, CartLine, CartTotals, HistoryBatch
from src.gm_common.cents import cents_to_display


class SetPlatformFeeRequest(BaseModel):
    fee_cents: int = Field(..., ge=0, description="Flat platform fee per cart, in cents")


class CartLineResponse(BaseModel):
    order_id: str
    service_id: str
    service_title: str
    status: str
    service_price_cents: int
    add_on_total_cents: int
    line_price_cents: int

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineResponse":
        return cls(
            order_id=line.order_id,
            service_id=line.service_id,
            service_title=line.service_title,
            status=line.status,
            service_price_cents=line.service_price,
            add_on_total_cents=line.add_on_total,
            line_price_cents=line.line_price,
        )


class CartResponse(BaseModel):
    cart_id: str
    user_id: str
    orders: list[CartLineResponse]
    subtotal_cents: int
    platform_fee_cents: int
    total_cents: int
    total_display: str

    @classmethod
    def build(cls, cart: Cart, lines: list[CartLine], totals: CartTotals) -> "CartResponse":
        return cls(
            cart_id=cart.id,
            user_id=cart.user_id,
            orders=[CartLineResponse.from_line(line) for line in lines],
            subtotal_cents=totals.subtotal,
            platform_fee_cents=totals.platform_fee,
            total_cents=totals.total,
            total_display=cents_to_display(totals.total),
        )


class HistoryOrderResponse(BaseModel):
    order_id: str
    service_title: str | None
    order_price_cents: int | None


class HistoryBatchResponse(BaseModel):
    id: str
    total_cents: int
    total_display: str
    purchased_at: str
    orders: list[HistoryOrderResponse]

    @classmethod
    def from_batch(cls, batch: HistoryBatch) -> "HistoryBatchResponse":
        return cls(
            id=batch.id,
            total_cents=batch.total,
            total_display=cents_to_display(batch.total),
            purchased_at=batch.purchased_at.isoformat(),
            orders=[
                HistoryOrderResponse(
                    order_id=line.order_id,
                    service_title=line.service_title,
                    order_price_cents=line.order_price,
                )
                for line in batch.lines
            ],
        )
