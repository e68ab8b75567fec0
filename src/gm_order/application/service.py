"""OrderApplicationService — the order lifecycle.

Every mutation is one unit of work: the order row, the buyer's cart, the
wallets and the transaction log change together or not at all. Lock order
is always cart first, then order, matching checkout.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_cart.application.service import CartService
from src.gm_catalog.domain.models import Service
from src.gm_catalog.domain.repository import CatalogRepositoryProtocol
from src.gm_catalog.infrastructure.persistence import CatalogRepository
from src.gm_common.collaborators import Notifier, RedisNotifier, publish_quietly
from src.gm_common.database import violated_constraint
from src.gm_common.datetime_utils import utc_now
from src.gm_common.enums import (
    OrderStatus,
    PrincipalKind,
    SettlementMode,
    TransactionStatus,
    TransactionType,
)
from src.gm_common.errors import (
    DuplicateRatingError,
    FreelancerBusyError,
    InvalidOrderTransitionError,
    NotOrderPartyError,
    OrderNotFoundError,
    OrderNotPendingError,
    OrderNotRateableError,
    RatingNotFoundError,
    ServiceNotFoundError,
)
from src.gm_common.id_generator import generate_id
from src.gm_gateway.auth.principal import Principal
from src.gm_order.application.schemas import (
    CartTotalsResponse,
    OrderResponse,
    OrderWithCartResponse,
    RatingResponse,
)
from src.gm_order.domain.models import Order, Rating
from src.gm_order.domain.pricing import order_price, select_add_ons
from src.gm_order.domain.repository import OrderRepositoryProtocol
from src.gm_order.domain.settlement import PLATFORM, WalletMove, end_moves, start_moves
from src.gm_order.infrastructure.persistence import ONE_IN_PROGRESS_INDEX, OrderRepository
from src.gm_transaction.domain.models import Transaction
from src.gm_transaction.domain.repository import TransactionRepositoryProtocol
from src.gm_transaction.infrastructure.persistence import TransactionRepository
from src.gm_wallet.application.movements import (
    credit_owner,
    credit_platform,
    debit_owner,
    debit_platform,
)
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class OrderApplicationService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        catalog_repo: CatalogRepositoryProtocol | None = None,
        cart_service: CartService | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        settlement_mode: SettlementMode | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._catalog: CatalogRepositoryProtocol = catalog_repo or CatalogRepository()
        self._cart = cart_service or CartService()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._txs: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._notifier: Notifier = notifier or RedisNotifier()
        self._mode = settlement_mode or SettlementMode(settings.SETTLEMENT_MODE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _service(self, db: AsyncSession, service_id: str) -> Service:
        service = await self._catalog.get_service(db, service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    async def _priced_selection(
        self, db: AsyncSession, service: Service, add_on_ids: list[str]
    ) -> int:
        known = {a.id for a in await self._catalog.get_add_ons(db, add_on_ids)}
        add_ons = select_add_ons(service, add_on_ids, known)
        return order_price(service, add_ons)

    async def _order(self, db: AsyncSession, order_id: str, lock: bool = False) -> Order:
        if lock:
            order = await self._repo.get_for_update(db, order_id)
        else:
            order = await self._repo.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _apply_moves(
        self, db: AsyncSession, order: Order, moves: list[WalletMove], reason: str
    ) -> None:
        for move in moves:
            amount = abs(move.delta)
            if move.party == PLATFORM:
                if move.delta > 0:
                    await credit_platform(self._wallets, db, amount, reason)
                else:
                    await debit_platform(self._wallets, db, amount, reason)
            elif move.delta > 0:
                await credit_owner(self._wallets, db, order.freelancer_id, amount, reason)
            else:
                await debit_owner(self._wallets, db, order.freelancer_id, amount, reason)

    # ------------------------------------------------------------------
    # Buyer operations
    # ------------------------------------------------------------------

    async def add_order(
        self, db: AsyncSession, user_id: str, service_id: str, add_on_ids: list[str]
    ) -> OrderWithCartResponse:
        """Create a PENDING order and append it to the buyer's cart."""
        try:
            service = await self._service(db, service_id)
            if not service.is_approved:
                raise ServiceNotFoundError(service_id)
            if await self._repo.freelancer_has_active(db, service.freelancer_id):
                raise FreelancerBusyError()
            price = await self._priced_selection(db, service, add_on_ids)
            order = await self._repo.insert(
                db,
                Order(
                    id=generate_id(),
                    user_id=user_id,
                    service_id=service.id,
                    freelancer_id=service.freelancer_id,
                    status=OrderStatus.PENDING.value,
                    order_price=price,
                    add_on_ids=list(add_on_ids),
                ),
            )
            totals = await self._cart.append_order(db, user_id, order.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s created by %s for %d", order.id, user_id, price)
        return OrderWithCartResponse(
            order=OrderResponse.from_order(order),
            cart=CartTotalsResponse.from_totals(totals),
        )

    async def update_add_ons(
        self, db: AsyncSession, user_id: str, order_id: str, add_on_ids: list[str]
    ) -> OrderWithCartResponse:
        """Replace the add-on selection of a PENDING order and reprice it."""
        try:
            cart = await self._cart.lock(db, user_id)
            order = await self._order(db, order_id, lock=True)
            if order.user_id != user_id:
                raise NotOrderPartyError(order_id)
            if not order.is_pending:
                raise OrderNotPendingError(order_id, order.status)
            service = await self._service(db, order.service_id)
            price = await self._priced_selection(db, service, add_on_ids)
            await self._repo.replace_add_ons(db, order_id, list(add_on_ids), price)
            totals = await self._cart.recalculate_cart(db, cart)
            updated = await self._order(db, order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return OrderWithCartResponse(
            order=OrderResponse.from_order(updated),
            cart=CartTotalsResponse.from_totals(totals),
        )

    async def delete_order(
        self, db: AsyncSession, user_id: str, order_id: str
    ) -> CartTotalsResponse:
        """Delete a PENDING order and drop it from the cart."""
        try:
            cart = await self._cart.lock(db, user_id)
            order = await self._order(db, order_id, lock=True)
            if order.user_id != user_id:
                raise NotOrderPartyError(order_id)
            if not order.is_pending:
                raise OrderNotPendingError(order_id, order.status)
            await self._cart.repo.remove_items(db, cart.id, [order_id])
            await self._repo.delete(db, order_id)
            totals = await self._cart.recalculate_cart(db, cart)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s deleted by %s", order_id, user_id)
        return CartTotalsResponse.from_totals(totals)

    async def rate_order(
        self,
        db: AsyncSession,
        user_id: str,
        order_id: str,
        rate: int,
        comment: str | None,
    ) -> RatingResponse:
        try:
            order = await self._order(db, order_id)
            if order.user_id != user_id:
                raise NotOrderPartyError(order_id)
            if not order.is_completed:
                raise OrderNotRateableError(order_id)
            if order.rating_id is not None:
                raise DuplicateRatingError(order_id)
            rating = await self._repo.insert_rating(
                db,
                Rating(
                    id=generate_id(),
                    order_id=order_id,
                    user_id=user_id,
                    freelancer_id=order.freelancer_id,
                    rate=rate,
                    comment=comment,
                ),
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateRatingError(order_id) from None
        except Exception:
            await db.rollback()
            raise
        return RatingResponse.from_rating(rating)

    # ------------------------------------------------------------------
    # Freelancer operations
    # ------------------------------------------------------------------

    def _check_transition(self, order: Order, freelancer_id: str, target: OrderStatus) -> None:
        if order.freelancer_id != freelancer_id:
            raise NotOrderPartyError(order.id)
        if not order.can_transition(target):
            raise InvalidOrderTransitionError(order.id, order.status, target.value)

    async def start_order(
        self, db: AsyncSession, freelancer_id: str, order_id: str
    ) -> OrderResponse:
        """PENDING -> IN_PROGRESS, at most one active order per freelancer."""
        try:
            order = await self._order(db, order_id)
            self._check_transition(order, freelancer_id, OrderStatus.IN_PROGRESS)
            if not await self._repo.start_if_pending(db, order_id):
                raise InvalidOrderTransitionError(
                    order_id, order.status, OrderStatus.IN_PROGRESS.value
                )
            await self._apply_moves(
                db, order, start_moves(self._mode, order.order_price), f"start {order_id}"
            )
            started = await self._order(db, order_id)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if violated_constraint(exc) == ONE_IN_PROGRESS_INDEX:
                raise FreelancerBusyError() from None
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s started by %s (%s)", order_id, freelancer_id, self._mode.value)
        await publish_quietly(
            self._notifier,
            f"order:{order_id}",
            "order.started",
            {"order_id": order_id, "status": started.status},
        )
        return OrderResponse.from_order(started)

    async def end_order(
        self, db: AsyncSession, freelancer_id: str, order_id: str
    ) -> OrderResponse:
        """IN_PROGRESS -> COMPLETED with a platform -> freelancer transaction."""
        try:
            order = await self._order(db, order_id)
            self._check_transition(order, freelancer_id, OrderStatus.COMPLETED)
            tx = await self._txs.insert(
                db,
                Transaction(
                    id=generate_id(),
                    from_id=PLATFORM_OWNER_ID,
                    from_kind=PrincipalKind.ADMIN.value,
                    to_id=freelancer_id,
                    to_kind=PrincipalKind.FREELANCER.value,
                    type=TransactionType.FREELANCE_PAYMENT.value,
                    amount=order.order_price,
                    status=TransactionStatus.SUCCESS.value,
                    paid_at=utc_now(),
                ),
            )
            if not await self._repo.complete_if_in_progress(db, order_id, tx.id):
                raise InvalidOrderTransitionError(
                    order_id, order.status, OrderStatus.COMPLETED.value
                )
            await self._apply_moves(
                db, order, end_moves(self._mode, order.order_price), f"end {order_id}"
            )
            completed = await self._order(db, order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s completed by %s (%s)", order_id, freelancer_id, self._mode.value)
        await publish_quietly(
            self._notifier,
            f"order:{order_id}",
            "order.completed",
            {"order_id": order_id, "transaction_id": tx.id},
        )
        return OrderResponse.from_order(completed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all_user_orders(self, db: AsyncSession, user_id: str) -> list[OrderResponse]:
        orders = await self._repo.list_for_user(db, user_id)
        return [OrderResponse.from_order(o) for o in orders]

    async def get_order(
        self, db: AsyncSession, principal: Principal, order_id: str
    ) -> OrderResponse:
        order = await self._order(db, order_id)
        if not principal.is_admin and not order.is_party(principal.id):
            raise NotOrderPartyError(order_id)
        return OrderResponse.from_order(order)

    async def list_freelancer_orders(
        self, db: AsyncSession, freelancer_id: str, status: str | None
    ) -> list[OrderResponse]:
        orders = await self._repo.list_for_freelancer(db, freelancer_id, status)
        return [OrderResponse.from_order(o) for o in orders]

    async def list_all_orders(
        self, db: AsyncSession, status: str | None
    ) -> list[OrderResponse]:
        return [OrderResponse.from_order(o) for o in await self._repo.list_all(db, status)]

    async def completed_orders_count(self, db: AsyncSession) -> int:
        return await self._repo.count_by_status(db, OrderStatus.COMPLETED.value)

    async def list_ratings_for_freelancer(
        self, db: AsyncSession, freelancer_id: str
    ) -> list[RatingResponse]:
        ratings = await self._repo.list_ratings_for_freelancer(db, freelancer_id)
        return [RatingResponse.from_rating(r) for r in ratings]

    async def delete_rating(
        self, db: AsyncSession, principal: Principal, rating_id: str
    ) -> None:
        try:
            rating = await self._repo.get_rating(db, rating_id)
            if rating is None:
                raise RatingNotFoundError(rating_id)
            if not principal.is_admin and rating.user_id != principal.id:
                raise NotOrderPartyError(rating.order_id)
            await self._repo.delete_rating(db, rating_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
