"""Order domain models — pure dataclasses, no SQLAlchemy dependency.

State machine: PENDING -> IN_PROGRESS -> COMPLETED. There is no cancel
after start; deleting a PENDING order is the only way out.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.gm_common.enums import OrderStatus

_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PROGRESS}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
}


@dataclass
class Order:
    id: str
    user_id: str
    service_id: str
    freelancer_id: str  # denormalised from the service at creation
    status: str = OrderStatus.PENDING.value
    order_price: int = 0  # cents: service price + Σ add-on prices, frozen
    add_on_ids: list[str] = field(default_factory=list)
    rating_id: str | None = None
    transaction_id: str | None = None  # buyer payment (USER_PAYMENT or retry)
    settlement_transaction_id: str | None = None  # platform -> freelancer payout
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    @property
    def is_active(self) -> bool:
        return self.status == OrderStatus.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    def can_transition(self, target: str) -> bool:
        return target in _TRANSITIONS.get(self.status, frozenset())

    def is_party(self, principal_id: str) -> bool:
        return principal_id in (self.user_id, self.freelancer_id)


@dataclass
class Rating:
    id: str
    order_id: str
    user_id: str
    freelancer_id: str
    rate: int  # 1..5
    comment: str | None = None
    created_at: datetime | None = None
