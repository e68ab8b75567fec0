"""TransactionApplicationService — reads and the admin status correction.

A status correction on a transaction paid to the platform reconciles the
platform wallet: into success credits the amount, out of success debits it.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.errors import ForbiddenError, TransactionNotFoundError
from src.gm_gateway.auth.principal import Principal
from src.gm_transaction.application.schemas import TransactionResponse
from src.gm_transaction.domain.models import reconcile_delta
from src.gm_transaction.domain.repository import TransactionRepositoryProtocol
from src.gm_transaction.infrastructure.persistence import TransactionRepository
from src.gm_wallet.application.movements import credit_platform, debit_platform
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


def _party_id(principal: Principal) -> str:
    # Admins act for the platform wallet.
    return PLATFORM_OWNER_ID if principal.is_admin else principal.id


class TransactionApplicationService:
    def __init__(
        self,
        repo: TransactionRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
    ) -> None:
        self._repo: TransactionRepositoryProtocol = repo or TransactionRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()

    async def list_my_transactions(
        self, db: AsyncSession, principal: Principal
    ) -> list[TransactionResponse]:
        txs = await self._repo.list_for_party(db, _party_id(principal))
        return [TransactionResponse.from_tx(tx) for tx in txs]

    async def list_all_transactions(
        self, db: AsyncSession, status: str | None, from_id: str | None
    ) -> list[TransactionResponse]:
        txs = await self._repo.list_all(db, status, from_id)
        return [TransactionResponse.from_tx(tx) for tx in txs]

    async def get_transaction(
        self, db: AsyncSession, principal: Principal, transaction_id: str
    ) -> TransactionResponse:
        tx = await self._repo.get(db, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(transaction_id)
        if not principal.is_admin and not tx.involves(principal.id):
            raise ForbiddenError("Not a party to this transaction")
        return TransactionResponse.from_tx(tx)

    async def update_status(
        self, db: AsyncSession, admin_id: str, transaction_id: str, status: str
    ) -> TransactionResponse:
        try:
            tx = await self._repo.get_for_update(db, transaction_id)
            if tx is None:
                raise TransactionNotFoundError(transaction_id)
            old_status = tx.status
            updated = await self._repo.update_status(db, transaction_id, status)
            if updated is None:
                raise TransactionNotFoundError(transaction_id)
            delta = reconcile_delta(old_status, status, tx.amount) if tx.credits_platform else 0
            reason = f"status correction {transaction_id}"
            if delta > 0:
                await credit_platform(self._wallets, db, delta, reason)
            elif delta < 0:
                await debit_platform(self._wallets, db, -delta, reason)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Admin %s changed transaction %s status %s -> %s (platform delta %d)",
            admin_id,
            transaction_id,
            old_status,
            status,
            delta,
        )
        return TransactionResponse.from_tx(updated)
