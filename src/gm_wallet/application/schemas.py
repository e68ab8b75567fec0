"""Pydantic schemas for gm_wallet API."""

from pydantic import BaseModel, Field

from src.gm_common.cents import cents_to_display
from src.gm_common.datetime_utils import iso_or_none
from src.gm_wallet.domain.models import Wallet


class AdminSetBalanceRequest(BaseModel):
    balance_cents: int = Field(..., description="New balance in cents; may be negative")


class AdjustBalanceRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount in cents")


class WalletResponse(BaseModel):
    wallet_id: str
    owner_id: str
    owner_kind: str
    balance_cents: int
    balance_display: str
    updated_at: str | None

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "WalletResponse":
        return cls(
            wallet_id=wallet.id,
            owner_id=wallet.owner_id,
            owner_kind=wallet.owner_kind,
            balance_cents=wallet.balance,
            balance_display=cents_to_display(wallet.balance),
            updated_at=iso_or_none(wallet.updated_at),
        )


class WalletListResponse(BaseModel):
    items: list[WalletResponse]
