"""OrderRepository — orders, their add-on selections, and ratings.

Status changes are compare-and-set UPDATEs guarded by the current status,
and the partial unique index uq_orders_one_in_progress_per_freelancer makes
a second IN_PROGRESS order for the same freelancer fail with IntegrityError.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import OrderStatus, TransactionStatus
from src.gm_common.errors import InternalError
from src.gm_order.domain.models import Order, Rating

ONE_IN_PROGRESS_INDEX = "uq_orders_one_in_progress_per_freelancer"

_ORDER_SELECT = """
    SELECT o.id, o.user_id, o.service_id, o.freelancer_id, o.status,
           o.order_price, o.transaction_id, o.settlement_transaction_id,
           o.created_at, o.updated_at,
           r.id AS rating_id,
           COALESCE(
               array_agg(oa.add_on_id ORDER BY oa.position)
                   FILTER (WHERE oa.add_on_id IS NOT NULL),
               '{}'
           ) AS add_on_ids
    FROM orders o
    LEFT JOIN ratings r        ON r.order_id = o.id
    LEFT JOIN order_add_ons oa ON oa.order_id = o.id
"""

_GROUP_ORDER = " GROUP BY o.id, r.id ORDER BY o.created_at, o.id"

_GET_SQL = text(_ORDER_SELECT + " WHERE o.id = :id" + _GROUP_ORDER)

_LOCK_SQL = text("SELECT id FROM orders WHERE id = :id FOR UPDATE")

_LIST_FOR_USER_SQL = text(_ORDER_SELECT + " WHERE o.user_id = :user_id" + _GROUP_ORDER)

_LIST_FOR_FREELANCER_SQL = text(
    _ORDER_SELECT
    + """ WHERE o.freelancer_id = :freelancer_id
      AND (CAST(:status AS VARCHAR) IS NULL OR o.status = :status)"""
    + _GROUP_ORDER
)

_LIST_ALL_SQL = text(
    _ORDER_SELECT
    + " WHERE (CAST(:status AS VARCHAR) IS NULL OR o.status = :status)"
    + _GROUP_ORDER
)

_LIST_FAILED_PAYMENT_SQL = text(
    _ORDER_SELECT
    + """ JOIN transactions t ON t.id = o.transaction_id
    WHERE o.user_id = :user_id AND t.status = :failed"""
    + _GROUP_ORDER
)

_COUNT_BY_STATUS_SQL = text("SELECT COUNT(*) FROM orders WHERE status = :status")

_COUNT_FOR_FREELANCER_SQL = text(
    "SELECT COUNT(*) FROM orders WHERE freelancer_id = :freelancer_id"
)

# anything past PENDING, or with a payment attached, is part of the money trail
_COUNT_PAID_FOR_USER_SQL = text("""
    SELECT COUNT(*) FROM orders
    WHERE user_id = :user_id AND (status <> :pending OR transaction_id IS NOT NULL)
""")

_INSERT_SQL = text("""
    INSERT INTO orders (id, user_id, service_id, freelancer_id, status, order_price)
    VALUES (:id, :user_id, :service_id, :freelancer_id, :status, :order_price)
""")

_INSERT_ADD_ON_SQL = text("""
    INSERT INTO order_add_ons (order_id, add_on_id, position)
    VALUES (:order_id, :add_on_id, :position)
""")

_DELETE_ADD_ONS_SQL = text("DELETE FROM order_add_ons WHERE order_id = :order_id")

_SET_PRICE_SQL = text("""
    UPDATE orders SET order_price = :order_price, updated_at = NOW()
    WHERE id = :id
""")

_FREELANCER_ACTIVE_SQL = text("""
    SELECT EXISTS (
        SELECT 1 FROM orders WHERE freelancer_id = :freelancer_id AND status = :in_progress
    )
""")

_START_SQL = text("""
    UPDATE orders SET status = :in_progress, updated_at = NOW()
    WHERE id = :id AND status = :pending
    RETURNING id
""")

_COMPLETE_SQL = text("""
    UPDATE orders
    SET status = :completed, settlement_transaction_id = :transaction_id,
        updated_at = NOW()
    WHERE id = :id AND status = :in_progress
    RETURNING id
""")

_ATTACH_TX_SQL = text("""
    UPDATE orders
    SET transaction_id = :transaction_id, order_price = :order_price, updated_at = NOW()
    WHERE id = :id
""")

_DELETE_SQL = text("DELETE FROM orders WHERE id = :id RETURNING id")

_RATING_COLUMNS = "id, order_id, user_id, freelancer_id, rate, comment, created_at"

_INSERT_RATING_SQL = text(f"""
    INSERT INTO ratings (id, order_id, user_id, freelancer_id, rate, comment)
    VALUES (:id, :order_id, :user_id, :freelancer_id, :rate, :comment)
    RETURNING {_RATING_COLUMNS}
""")

_GET_RATING_SQL = text(f"SELECT {_RATING_COLUMNS} FROM ratings WHERE id = :id")

_LIST_RATINGS_SQL = text(f"""
    SELECT {_RATING_COLUMNS} FROM ratings
    WHERE freelancer_id = :freelancer_id
    ORDER BY created_at DESC, id DESC
""")

_DELETE_RATING_SQL = text("DELETE FROM ratings WHERE id = :id RETURNING id")


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        service_id=row.service_id,
        freelancer_id=row.freelancer_id,
        status=row.status,
        order_price=row.order_price,
        add_on_ids=list(row.add_on_ids),
        rating_id=row.rating_id,
        transaction_id=row.transaction_id,
        settlement_transaction_id=row.settlement_transaction_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_rating(row: Any) -> Rating:
    return Rating(
        id=row.id,
        order_id=row.order_id,
        user_id=row.user_id,
        freelancer_id=row.freelancer_id,
        rate=row.rate,
        comment=row.comment,
        created_at=row.created_at,
    )


class OrderRepository:
    async def _insert_add_ons(
        self, db: AsyncSession, order_id: str, add_on_ids: list[str]
    ) -> None:
        if not add_on_ids:
            return
        await db.execute(
            _INSERT_ADD_ON_SQL,
            [
                {"order_id": order_id, "add_on_id": aid, "position": pos}
                for pos, aid in enumerate(add_on_ids)
            ],
        )

    async def insert(self, db: AsyncSession, order: Order) -> Order:
        await db.execute(
            _INSERT_SQL,
            {
                "id": order.id,
                "user_id": order.user_id,
                "service_id": order.service_id,
                "freelancer_id": order.freelancer_id,
                "status": order.status,
                "order_price": order.order_price,
            },
        )
        await self._insert_add_ons(db, order.id, order.add_on_ids)
        created = await self.get(db, order.id)
        if created is None:
            raise InternalError(f"Order {order.id} missing after insert")
        return created

    async def get(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_GET_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        locked = (await db.execute(_LOCK_SQL, {"id": order_id})).fetchone()
        if locked is None:
            return None
        return await self.get(db, order_id)

    async def replace_add_ons(
        self, db: AsyncSession, order_id: str, add_on_ids: list[str], order_price: int
    ) -> None:
        await db.execute(_DELETE_ADD_ONS_SQL, {"order_id": order_id})
        await self._insert_add_ons(db, order_id, add_on_ids)
        await db.execute(_SET_PRICE_SQL, {"id": order_id, "order_price": order_price})

    async def freelancer_has_active(self, db: AsyncSession, freelancer_id: str) -> bool:
        result = await db.execute(
            _FREELANCER_ACTIVE_SQL,
            {"freelancer_id": freelancer_id, "in_progress": OrderStatus.IN_PROGRESS.value},
        )
        return bool(result.scalar_one())

    async def start_if_pending(self, db: AsyncSession, order_id: str) -> bool:
        """PENDING -> IN_PROGRESS. False if the order was not PENDING.

        Raises IntegrityError (ONE_IN_PROGRESS_INDEX) if the freelancer
        already has an IN_PROGRESS order.
        """
        result = await db.execute(
            _START_SQL,
            {
                "id": order_id,
                "pending": OrderStatus.PENDING.value,
                "in_progress": OrderStatus.IN_PROGRESS.value,
            },
        )
        return result.fetchone() is not None

    async def complete_if_in_progress(
        self, db: AsyncSession, order_id: str, transaction_id: str
    ) -> bool:
        """IN_PROGRESS -> COMPLETED, recording the payout transaction.

        transaction_id (the buyer payment) is left untouched.
        """
        result = await db.execute(
            _COMPLETE_SQL,
            {
                "id": order_id,
                "transaction_id": transaction_id,
                "in_progress": OrderStatus.IN_PROGRESS.value,
                "completed": OrderStatus.COMPLETED.value,
            },
        )
        return result.fetchone() is not None

    async def attach_transaction(
        self, db: AsyncSession, order_id: str, transaction_id: str, order_price: int
    ) -> None:
        await db.execute(
            _ATTACH_TX_SQL,
            {"id": order_id, "transaction_id": transaction_id, "order_price": order_price},
        )

    async def delete(self, db: AsyncSession, order_id: str) -> bool:
        result = await db.execute(_DELETE_SQL, {"id": order_id})
        return result.fetchone() is not None

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[Order]:
        result = await db.execute(_LIST_FOR_USER_SQL, {"user_id": user_id})
        return [_row_to_order(r) for r in result.fetchall()]

    async def list_for_freelancer(
        self, db: AsyncSession, freelancer_id: str, status: str | None
    ) -> list[Order]:
        result = await db.execute(
            _LIST_FOR_FREELANCER_SQL, {"freelancer_id": freelancer_id, "status": status}
        )
        return [_row_to_order(r) for r in result.fetchall()]

    async def list_all(self, db: AsyncSession, status: str | None) -> list[Order]:
        result = await db.execute(_LIST_ALL_SQL, {"status": status})
        return [_row_to_order(r) for r in result.fetchall()]

    async def count_by_status(self, db: AsyncSession, status: str) -> int:
        result = await db.execute(_COUNT_BY_STATUS_SQL, {"status": status})
        return int(result.scalar_one())

    async def count_for_freelancer(self, db: AsyncSession, freelancer_id: str) -> int:
        result = await db.execute(_COUNT_FOR_FREELANCER_SQL, {"freelancer_id": freelancer_id})
        return int(result.scalar_one())

    async def count_paid_for_user(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            _COUNT_PAID_FOR_USER_SQL,
            {"user_id": user_id, "pending": OrderStatus.PENDING.value},
        )
        return int(result.scalar_one())

    async def list_with_failed_payment(
        self, db: AsyncSession, user_id: str
    ) -> list[Order]:
        result = await db.execute(
            _LIST_FAILED_PAYMENT_SQL,
            {"user_id": user_id, "failed": TransactionStatus.FAILED.value},
        )
        return [_row_to_order(r) for r in result.fetchall()]

    # --- ratings ---

    async def insert_rating(self, db: AsyncSession, rating: Rating) -> Rating:
        result = await db.execute(
            _INSERT_RATING_SQL,
            {
                "id": rating.id,
                "order_id": rating.order_id,
                "user_id": rating.user_id,
                "freelancer_id": rating.freelancer_id,
                "rate": rating.rate,
                "comment": rating.comment,
            },
        )
        return _row_to_rating(result.fetchone())

    async def get_rating(self, db: AsyncSession, rating_id: str) -> Rating | None:
        row = (await db.execute(_GET_RATING_SQL, {"id": rating_id})).fetchone()
        return _row_to_rating(row) if row else None

    async def list_ratings_for_freelancer(
        self, db: AsyncSession, freelancer_id: str
    ) -> list[Rating]:
        result = await db.execute(_LIST_RATINGS_SQL, {"freelancer_id": freelancer_id})
        return [_row_to_rating(r) for r in result.fetchall()]

    async def delete_rating(self, db: AsyncSession, rating_id: str) -> bool:
        result = await db.execute(_DELETE_RATING_SQL, {"id": rating_id})
        return result.fetchone() is not None
