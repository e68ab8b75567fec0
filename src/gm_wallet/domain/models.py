"""Wallet domain model — pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.gm_common.enums import WalletOwnerKind

# Owner id of the single platform wallet (seeded by migration 004).
PLATFORM_OWNER_ID = "PLATFORM"


@dataclass
class Wallet:
    id: str
    owner_id: str
    owner_kind: str  # WalletOwnerKind value
    balance: int  # cents, signed: freelancer balances may go negative
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_platform(self) -> bool:
        return self.owner_kind == WalletOwnerKind.ADMIN
