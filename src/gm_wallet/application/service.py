"""WalletApplicationService — balance reads, admin adjustments and overrides.

Credit/debit here are standalone admin operations with their own unit of
work. The order, checkout and subscription flows move money through
application/movements.py inside their own transactions instead.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.cents import validate_positive_cents
from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import (
    ForbiddenError,
    InvalidAmountError,
    PlatformWalletMissingError,
    WalletNotFoundError,
)
from src.gm_gateway.auth.principal import Principal
from src.gm_wallet.application.movements import credit_owner, debit_owner
from src.gm_wallet.application.schemas import WalletListResponse, WalletResponse
from src.gm_wallet.domain.models import Wallet
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    try:
        validate_positive_cents(amount)
    except ValueError as exc:
        raise InvalidAmountError(str(exc)) from None


class WalletApplicationService:
    def __init__(self, repo: WalletRepositoryProtocol | None = None) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()

    async def get_balance(self, db: AsyncSession, owner_id: str) -> int:
        wallet = await self._repo.get_by_owner(db, owner_id)
        if wallet is None:
            raise WalletNotFoundError(owner_id)
        return wallet.balance

    async def credit(self, db: AsyncSession, owner_id: str, amount: int) -> WalletResponse:
        _check_amount(amount)
        try:
            wallet = await credit_owner(self._repo, db, owner_id, amount, "admin credit")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WalletResponse.from_wallet(wallet)

    async def debit(self, db: AsyncSession, owner_id: str, amount: int) -> WalletResponse:
        """Debit without a negative-balance guard."""
        _check_amount(amount)
        try:
            wallet = await debit_owner(self._repo, db, owner_id, amount, "admin debit")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WalletResponse.from_wallet(wallet)

    async def admin_set_balance(
        self, db: AsyncSession, admin_id: str, wallet_id: str, new_balance: int
    ) -> WalletResponse:
        try:
            before = await self._repo.get_by_id(db, wallet_id)
            if before is None:
                raise WalletNotFoundError(wallet_id)
            wallet = await self._repo.set_balance(db, wallet_id, new_balance)
            if wallet is None:
                raise WalletNotFoundError(wallet_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Admin %s overrode wallet %s balance: %d -> %d",
            admin_id,
            wallet_id,
            before.balance,
            new_balance,
        )
        return WalletResponse.from_wallet(wallet)

    async def list_wallets(
        self, db: AsyncSession, owner_kind: str | None
    ) -> WalletListResponse:
        wallets = await self._repo.list_all(db, owner_kind)
        return WalletListResponse(items=[WalletResponse.from_wallet(w) for w in wallets])

    async def get_wallet(
        self, db: AsyncSession, principal: Principal, wallet_id: str
    ) -> WalletResponse:
        wallet = await self._repo.get_by_id(db, wallet_id)
        if wallet is None:
            raise WalletNotFoundError(wallet_id)
        if not principal.is_admin and wallet.owner_id != principal.id:
            raise ForbiddenError("Not the owner of this wallet")
        return WalletResponse.from_wallet(wallet)

    async def get_my_wallet(self, db: AsyncSession, principal: Principal) -> WalletResponse:
        wallet: Wallet | None
        if principal.kind == PrincipalKind.ADMIN:
            wallet = await self._repo.get_platform(db)
            if wallet is None:
                raise PlatformWalletMissingError()
        elif principal.kind == PrincipalKind.FREELANCER:
            wallet = await self._repo.get_by_owner(db, principal.id)
            if wallet is None:
                raise WalletNotFoundError(principal.id)
        else:
            raise ForbiddenError("Only freelancers and admins hold wallets")
        return WalletResponse.from_wallet(wallet)
