"""CheckoutService — turns a cart into transactions and moves the money.

checkout(status):
  failed  -> transactions recorded as failed, orders stay in the cart,
             no money moves (the router answers 402)
  pending -> transactions recorded, cart archived into history, no money moves
  success -> platform wallet += Σ amount + platform_fee, cart archived

All steps of one checkout are a single DB transaction, and the cart row is
locked FOR UPDATE so a concurrent order mutation cannot slip in between.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_cart.application.service import CartService
from src.gm_cart.domain.models import CartTotals
from src.gm_common.datetime_utils import utc_now
from src.gm_common.enums import PrincipalKind, TransactionStatus, TransactionType
from src.gm_common.errors import EmptyCartError, NoFailedTransactionsError
from src.gm_common.id_generator import generate_id
from src.gm_order.domain.repository import OrderRepositoryProtocol
from src.gm_order.infrastructure.persistence import OrderRepository
from src.gm_transaction.application.schemas import CheckoutResponse, TransactionResponse
from src.gm_transaction.domain.models import Transaction
from src.gm_transaction.domain.repository import TransactionRepositoryProtocol
from src.gm_transaction.infrastructure.persistence import TransactionRepository
from src.gm_wallet.application.movements import credit_platform
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


def _user_payment(
    user_id: str, amount: int, tx_type: TransactionType, payment_method: str, status: str
) -> Transaction:
    return Transaction(
        id=generate_id(),
        from_id=user_id,
        from_kind=PrincipalKind.USER.value,
        to_id=PLATFORM_OWNER_ID,
        to_kind=PrincipalKind.ADMIN.value,
        type=tx_type.value,
        amount=amount,
        payment_method=payment_method,
        status=status,
        paid_at=utc_now(),
    )


class CheckoutService:
    def __init__(
        self,
        cart_service: CartService | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
    ) -> None:
        self._cart = cart_service or CartService()
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._txs: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()

    async def checkout(
        self, db: AsyncSession, user_id: str, payment_method: str, status: str
    ) -> CheckoutResponse:
        cart_repo = self._cart.repo
        history_id: str | None = None
        try:
            cart = await cart_repo.get_for_update(db, user_id)
            if cart is None:
                raise EmptyCartError()
            lines = await cart_repo.live_lines(db, cart.id)
            if not lines:
                raise EmptyCartError()

            txs: list[Transaction] = []
            for line in lines:
                # Live price, not the frozen order_price: the buyer pays today's price.
                tx = await self._txs.insert(
                    db,
                    _user_payment(
                        user_id,
                        line.line_price,
                        TransactionType.USER_PAYMENT,
                        payment_method,
                        status,
                    ),
                )
                await self._orders.attach_transaction(db, line.order_id, tx.id, tx.amount)
                txs.append(tx)

            amount = sum(tx.amount for tx in txs)
            total = amount + cart.platform_fee

            if status != TransactionStatus.FAILED:
                if status == TransactionStatus.SUCCESS:
                    await credit_platform(
                        self._wallets, db, total, f"checkout by {user_id}"
                    )
                order_ids = [line.order_id for line in lines]
                history_id = await cart_repo.append_history(
                    db, cart.id, order_ids, total, utc_now()
                )
                await cart_repo.remove_items(db, cart.id, order_ids)
                await cart_repo.save_totals(
                    db, cart.id, CartTotals(subtotal=0, platform_fee=cart.platform_fee, total=0)
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Checkout by %s: %d orders, amount=%d fee=%d status=%s",
            user_id,
            len(txs),
            amount,
            cart.platform_fee,
            status,
        )
        return CheckoutResponse(
            status=status,
            transactions_created=len(txs),
            transactions=[TransactionResponse.from_tx(tx) for tx in txs],
            amount_cents=amount,
            platform_fee_cents=cart.platform_fee,
            total_cents=total,
            history_id=history_id,
        )

    async def retry_failed_checkout(
        self, db: AsyncSession, user_id: str, payment_method: str
    ) -> CheckoutResponse:
        """Pay again for every order of the user whose payment failed.

        Each order gets a fresh success transaction; the platform wallet is
        credited once with Σ amount + platform_fee, and the retried orders
        leave the live cart for a new history batch.
        """
        try:
            cart = await self._cart.lock(db, user_id)
            orders = await self._orders.list_with_failed_payment(db, user_id)
            if not orders:
                raise NoFailedTransactionsError()

            txs: list[Transaction] = []
            for order in orders:
                tx = await self._txs.insert(
                    db,
                    _user_payment(
                        user_id,
                        order.order_price,
                        TransactionType.RETRY_USER_PAYMENT,
                        payment_method,
                        TransactionStatus.SUCCESS.value,
                    ),
                )
                await self._orders.attach_transaction(db, order.id, tx.id, tx.amount)
                txs.append(tx)

            amount = sum(tx.amount for tx in txs)
            total = amount + cart.platform_fee
            await credit_platform(self._wallets, db, total, f"retried checkout by {user_id}")

            order_ids = [o.id for o in orders]
            history_id = await self._cart.repo.append_history(
                db, cart.id, order_ids, total, utc_now()
            )
            await self._cart.repo.remove_items(db, cart.id, order_ids)
            await self._cart.recalculate_cart(db, cart)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Retried checkout by %s: %d orders, total=%d", user_id, len(txs), total)
        return CheckoutResponse(
            status=TransactionStatus.SUCCESS.value,
            transactions_created=len(txs),
            transactions=[TransactionResponse.from_tx(tx) for tx in txs],
            amount_cents=amount,
            platform_fee_cents=cart.platform_fee,
            total_cents=total,
            history_id=history_id,
        )
