"""Repository Protocol for the transaction log."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_transaction.domain.models import Transaction


class TransactionRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, tx: Transaction) -> Transaction: ...

    async def get(self, db: AsyncSession, transaction_id: str) -> Transaction | None: ...

    async def get_for_update(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def list_for_party(self, db: AsyncSession, party_id: str) -> list[Transaction]: ...

    async def list_all(
        self, db: AsyncSession, status: str | None, from_id: str | None
    ) -> list[Transaction]: ...

    async def update_status(
        self, db: AsyncSession, transaction_id: str, status: str
    ) -> Transaction | None: ...
