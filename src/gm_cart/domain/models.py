"""Cart domain — pure dataclasses and the totals function.

Totals are never patched incrementally: every mutation recomputes them from
the live orders' current service and add-on prices.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from src.gm_common.cents import floor_zero, sum_cents


@dataclass(frozen=True)
class CartLine:
    """One live order in a cart, priced from the catalog as it is now."""

    order_id: str
    service_id: str
    service_title: str
    service_price: int
    add_on_total: int
    order_price: int = 0  # price frozen on the order at create/update time
    status: str = "PENDING"

    @property
    def line_price(self) -> int:
        return self.service_price + self.add_on_total


@dataclass(frozen=True)
class CartTotals:
    subtotal: int
    platform_fee: int
    total: int


@dataclass
class Cart:
    id: str
    user_id: str
    subtotal: int
    platform_fee: int
    total: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class HistoryLine:
    order_id: str
    service_title: str
    order_price: int


@dataclass
class HistoryBatch:
    id: str
    total: int
    purchased_at: datetime
    lines: list[HistoryLine] = field(default_factory=list)


def compute_totals(lines: Iterable[CartLine], platform_fee: int) -> CartTotals:
    """subtotal = max(0, Σ line prices); total = subtotal + platform_fee."""
    subtotal = floor_zero(sum_cents(line.line_price for line in lines))
    return CartTotals(subtotal=subtotal, platform_fee=platform_fee, total=subtotal + platform_fee)


def empty_totals(platform_fee: int) -> CartTotals:
    return CartTotals(subtotal=0, platform_fee=platform_fee, total=platform_fee)
