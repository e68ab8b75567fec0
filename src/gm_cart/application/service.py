"""CartService — one cart per user, totals recomputed from source.

Methods without a commit (lock, recalculate_cart, append_order,
reprice_carts_holding) run inside a caller's unit of work: the order, checkout
and catalog services use them so their mutation and the cart update share one
DB transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_cart.application.schemas import CartResponse, HistoryBatchResponse
from src.gm_cart.domain.models import Cart, CartTotals, compute_totals, empty_totals
from src.gm_cart.domain.repository import CartRepositoryProtocol
from src.gm_cart.infrastructure.persistence import CartRepository
from src.gm_common.errors import CartHistoryEmptyError, CartNotFoundError

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, repo: CartRepositoryProtocol | None = None) -> None:
        self._repo: CartRepositoryProtocol = repo or CartRepository()

    @property
    def repo(self) -> CartRepositoryProtocol:
        return self._repo

    # ------------------------------------------------------------------
    # Building blocks for other units of work (no commit)
    # ------------------------------------------------------------------

    async def lock(self, db: AsyncSession, user_id: str) -> Cart:
        return await self._repo.get_or_create_for_update(
            db, user_id, settings.DEFAULT_PLATFORM_FEE_CENTS
        )

    async def recalculate_cart(self, db: AsyncSession, cart: Cart) -> CartTotals:
        lines = await self._repo.live_lines(db, cart.id)
        totals = compute_totals(lines, cart.platform_fee)
        await self._repo.save_totals(db, cart.id, totals)
        return totals

    async def append_order(self, db: AsyncSession, user_id: str, order_id: str) -> CartTotals:
        cart = await self.lock(db, user_id)
        await self._repo.add_item(db, cart.id, order_id)
        return await self.recalculate_cart(db, cart)

    async def reprice_carts_holding(
        self, db: AsyncSession, service_id: str | None = None, add_on_id: str | None = None
    ) -> int:
        """Bring every cart using a repriced service or add-on back to live prices."""
        return await self._repo.reprice_carts_holding(db, service_id, add_on_id)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def get_current(self, db: AsyncSession, user_id: str) -> CartResponse:
        cart = await self._repo.get(db, user_id)
        if cart is None:
            raise CartNotFoundError()
        lines = await self._repo.live_lines(db, cart.id)
        return CartResponse.build(cart, lines, compute_totals(lines, cart.platform_fee))

    async def get_history(self, db: AsyncSession, user_id: str) -> list[HistoryBatchResponse]:
        cart = await self._repo.get(db, user_id)
        if cart is None:
            raise CartHistoryEmptyError()
        batches = await self._repo.list_history(db, cart.id)
        if not batches:
            raise CartHistoryEmptyError()
        return [HistoryBatchResponse.from_batch(b) for b in batches]

    async def clear(self, db: AsyncSession, user_id: str) -> CartResponse:
        """Delete every live order; subtotal 0 and total = platform fee."""
        try:
            cart = await self._repo.get_for_update(db, user_id)
            if cart is None:
                raise CartNotFoundError()
            order_ids = await self._repo.clear_items(db, cart.id)
            deleted = await self._repo.delete_pending_orders(db, order_ids)
            totals = empty_totals(cart.platform_fee)
            await self._repo.save_totals(db, cart.id, totals)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Cleared cart of %s (%d orders deleted)", user_id, deleted)
        return CartResponse.build(cart, [], totals)

    async def set_platform_fee(self, db: AsyncSession, fee: int) -> int:
        """Rewrite the global fee and every cart's fee/total in one transaction."""
        try:
            updated = await self._repo.set_platform_fee(db, fee)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Platform fee set to %d; %d carts repriced", fee, updated)
        return updated
