"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_wallet.domain.models import Wallet


class WalletRepositoryProtocol(Protocol):
    async def get_by_owner(self, db: AsyncSession, owner_id: str) -> Wallet | None: ...

    async def get_by_id(self, db: AsyncSession, wallet_id: str) -> Wallet | None: ...

    async def get_platform(self, db: AsyncSession) -> Wallet | None: ...

    async def list_all(
        self, db: AsyncSession, owner_kind: str | None
    ) -> list[Wallet]: ...

    async def create_for_owner(
        self, db: AsyncSession, owner_id: str, owner_kind: str
    ) -> Wallet: ...

    async def credit(self, db: AsyncSession, owner_id: str, amount: int) -> Wallet | None: ...

    async def debit(self, db: AsyncSession, owner_id: str, amount: int) -> Wallet | None: ...

    async def set_balance(
        self, db: AsyncSession, wallet_id: str, balance: int
    ) -> Wallet | None: ...

    async def delete_for_owner(self, db: AsyncSession, owner_id: str) -> bool: ...
