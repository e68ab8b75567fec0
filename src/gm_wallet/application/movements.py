"""Wallet movements shared by the order, checkout and subscription flows.

These run inside the caller's unit of work and never commit. Each movement
is logged at INFO so a settlement can be reconstructed from the logs.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.errors import PlatformWalletMissingError, WalletNotFoundError
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID, Wallet
from src.gm_wallet.domain.repository import WalletRepositoryProtocol

logger = logging.getLogger(__name__)


async def credit_platform(
    repo: WalletRepositoryProtocol, db: AsyncSession, amount: int, reason: str
) -> Wallet:
    wallet = await repo.credit(db, PLATFORM_OWNER_ID, amount)
    if wallet is None:
        raise PlatformWalletMissingError()
    logger.info("Platform wallet +%d (%s) -> %d", amount, reason, wallet.balance)
    return wallet


async def debit_platform(
    repo: WalletRepositoryProtocol, db: AsyncSession, amount: int, reason: str
) -> Wallet:
    wallet = await repo.debit(db, PLATFORM_OWNER_ID, amount)
    if wallet is None:
        raise PlatformWalletMissingError()
    logger.info("Platform wallet -%d (%s) -> %d", amount, reason, wallet.balance)
    return wallet


async def credit_owner(
    repo: WalletRepositoryProtocol, db: AsyncSession, owner_id: str, amount: int, reason: str
) -> Wallet:
    wallet = await repo.credit(db, owner_id, amount)
    if wallet is None:
        raise WalletNotFoundError(owner_id)
    logger.info("Wallet %s +%d (%s) -> %d", owner_id, amount, reason, wallet.balance)
    return wallet


async def debit_owner(
    repo: WalletRepositoryProtocol, db: AsyncSession, owner_id: str, amount: int, reason: str
) -> Wallet:
    wallet = await repo.debit(db, owner_id, amount)
    if wallet is None:
        raise WalletNotFoundError(owner_id)
    logger.info("Wallet %s -%d (%s) -> %d", owner_id, amount, reason, wallet.balance)
    return wallet
