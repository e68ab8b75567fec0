"""Pydantic schemas for gm_transaction API."""

from pydantic import BaseModel

from src.gm_common.cents import cents_to_display
from src.gm_common.datetime_utils import iso_or_none
from src.gm_common.enums import PaymentMethod, TransactionStatus
from src.gm_transaction.domain.models import Transaction


class CheckoutRequest(BaseModel):
    payment_method: PaymentMethod
    status: TransactionStatus


class RetryCheckoutRequest(BaseModel):
    payment_method: PaymentMethod


class UpdateStatusRequest(BaseModel):
    status: TransactionStatus


class TransactionResponse(BaseModel):
    id: str
    from_id: str
    from_kind: str
    to_id: str
    to_kind: str
    type: str
    amount_cents: int
    amount_display: str
    payment_method: str | None
    status: str
    paid_at: str | None
    created_at: str | None

    @classmethod
    def from_tx(cls, tx: Transaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            from_id=tx.from_id,
            from_kind=tx.from_kind,
            to_id=tx.to_id,
            to_kind=tx.to_kind,
            type=tx.type,
            amount_cents=tx.amount,
            amount_display=cents_to_display(tx.amount),
            payment_method=tx.payment_method,
            status=tx.status,
            paid_at=iso_or_none(tx.paid_at),
            created_at=iso_or_none(tx.created_at),
        )


class CheckoutResponse(BaseModel):
    status: str
    transactions_created: int
    transactions: list[TransactionResponse]
    amount_cents: int
    platform_fee_cents: int
    total_cents: int
    history_id: str | None = None

    @property
    def payment_failed(self) -> bool:
        return self.status == TransactionStatus.FAILED
