"""Transaction domain model — append-only money movement record."""

from dataclasses import dataclass
from datetime import datetime

from src.gm_common.enums import TransactionStatus
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID


@dataclass
class Transaction:
    id: str
    from_id: str
    from_kind: str  # PrincipalKind value
    to_id: str
    to_kind: str  # PrincipalKind value
    type: str  # TransactionType value
    amount: int  # cents, > 0
    status: str  # TransactionStatus value
    payment_method: str | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def involves(self, party_id: str) -> bool:
        return party_id in (self.from_id, self.to_id)

    @property
    def credits_platform(self) -> bool:
        return self.to_id == PLATFORM_OWNER_ID


def reconcile_delta(old_status: str, new_status: str, amount: int) -> int:
    """Platform wallet adjustment for a status correction.

    Moving into success credits the amount, moving out of success debits it,
    any other change moves nothing.
    """
    was = old_status == TransactionStatus.SUCCESS
    now = new_status == TransactionStatus.SUCCESS
    if now and not was:
        return amount
    if was and not now:
        return -amount
    return 0
