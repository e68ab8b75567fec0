"""CartRepository — carts, live cart items, purchase history, fee setting.

Live lines are priced straight from services/add_ons at read time. The cart
row is locked FOR UPDATE by every flow that changes its orders, so checkout
and order mutations on the same cart serialise.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_cart.domain.models import Cart, CartLine, CartTotals, HistoryBatch, HistoryLine
from src.gm_common.enums import OrderStatus
from src.gm_common.errors import InternalError
from src.gm_common.id_generator import generate_id

PLATFORM_FEE_KEY = "platform_fee_cents"

_CART_COLUMNS = "id, user_id, subtotal, platform_fee, total, created_at, updated_at"

_GET_CART_SQL = text(f"SELECT {_CART_COLUMNS} FROM carts WHERE user_id = :user_id")

_GET_CART_FOR_UPDATE_SQL = text(
    f"SELECT {_CART_COLUMNS} FROM carts WHERE user_id = :user_id FOR UPDATE"
)

_INSERT_CART_SQL = text("""
    WITH fee AS (
        SELECT COALESCE(
            (SELECT value FROM platform_settings WHERE key = :fee_key),
            :default_fee
        ) AS value
    )
    INSERT INTO carts (id, user_id, subtotal, platform_fee, total)
    SELECT :id, :user_id, 0, fee.value, fee.value FROM fee
    ON CONFLICT (user_id) DO NOTHING
""")

_LIVE_LINES_SQL = text("""
    SELECT ci.order_id, o.service_id, s.title AS service_title,
           s.price AS service_price,
           CAST(COALESCE(SUM(a.price), 0) AS BIGINT) AS add_on_total,
           o.order_price, o.status
    FROM cart_items ci
    JOIN orders o   ON o.id = ci.order_id
    JOIN services s ON s.id = o.service_id
    LEFT JOIN order_add_ons oa ON oa.order_id = o.id
    LEFT JOIN add_ons a        ON a.id = oa.add_on_id
    WHERE ci.cart_id = :cart_id
    GROUP BY ci.order_id, ci.added_at, o.service_id, s.title, s.price,
             o.order_price, o.status
    ORDER BY ci.added_at, ci.order_id
""")

_ADD_ITEM_SQL = text("""
    INSERT INTO cart_items (cart_id, order_id) VALUES (:cart_id, :order_id)
    ON CONFLICT DO NOTHING
""")

_REMOVE_ITEMS_SQL = text(
    "DELETE FROM cart_items WHERE cart_id = :cart_id AND order_id IN :order_ids"
).bindparams(bindparam("order_ids", expanding=True))

_CLEAR_ITEMS_SQL = text("DELETE FROM cart_items WHERE cart_id = :cart_id RETURNING order_id")

_DELETE_PENDING_ORDERS_SQL = text(
    "DELETE FROM orders WHERE id IN :order_ids AND status = :pending RETURNING id"
).bindparams(bindparam("order_ids", expanding=True))

_SAVE_TOTALS_SQL = text("""
    UPDATE carts
    SET subtotal = :subtotal, platform_fee = :platform_fee, total = :total,
        updated_at = NOW()
    WHERE id = :cart_id
""")

_INSERT_HISTORY_SQL = text("""
    INSERT INTO cart_history (id, cart_id, total, purchased_at)
    VALUES (:id, :cart_id, :total, :purchased_at)
""")

_INSERT_HISTORY_ORDER_SQL = text("""
    INSERT INTO cart_history_orders (history_id, order_id, position)
    VALUES (:history_id, :order_id, :position)
""")

_LIST_HISTORY_SQL = text("""
    SELECT h.id, h.total, h.purchased_at,
           ho.order_id, s.title AS service_title, o.order_price
    FROM cart_history h
    LEFT JOIN cart_history_orders ho ON ho.history_id = h.id
    LEFT JOIN orders o   ON o.id = ho.order_id
    LEFT JOIN services s ON s.id = o.service_id
    WHERE h.cart_id = :cart_id
    ORDER BY h.purchased_at DESC, h.id DESC, ho.position
""")

_UPSERT_FEE_SQL = text("""
    INSERT INTO platform_settings (key, value) VALUES (:key, :fee)
    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
""")

# Per-cart subtotal recomputed from live service and add-on prices.
_CART_SUMS_CTE = """
    lines AS (
        SELECT ci.cart_id,
               s.price + COALESCE((
                   SELECT SUM(a.price)
                   FROM order_add_ons oa JOIN add_ons a ON a.id = oa.add_on_id
                   WHERE oa.order_id = o.id
               ), 0) AS line_price
        FROM cart_items ci
        JOIN orders o   ON o.id = ci.order_id
        JOIN services s ON s.id = o.service_id
    ),
    sums AS (
        SELECT c2.id AS cart_id,
               CAST(GREATEST(COALESCE(SUM(lines.line_price), 0), 0) AS BIGINT) AS subtotal
        FROM carts c2
        LEFT JOIN lines ON lines.cart_id = c2.id
        GROUP BY c2.id
    )
"""

# One statement: every cart gets the new fee and a recomputed subtotal, so a
# crash can never leave carts on mixed fees.
_REPRICE_ALL_CARTS_SQL = text(f"""
    WITH {_CART_SUMS_CTE}
    UPDATE carts c
    SET platform_fee = :fee,
        subtotal     = sums.subtotal,
        total        = sums.subtotal + :fee,
        updated_at   = NOW()
    FROM sums
    WHERE c.id = sums.cart_id
    RETURNING c.id
""")

# Carts with a live order on the given service, or selecting the given add-on.
# Each keeps its own fee.
_REPRICE_CARTS_HOLDING_SQL = text(f"""
    WITH {_CART_SUMS_CTE}
    UPDATE carts c
    SET subtotal   = sums.subtotal,
        total      = sums.subtotal + c.platform_fee,
        updated_at = NOW()
    FROM sums
    WHERE c.id = sums.cart_id
      AND EXISTS (
          SELECT 1
          FROM cart_items ci
          JOIN orders o ON o.id = ci.order_id
          LEFT JOIN order_add_ons oa ON oa.order_id = o.id
          WHERE ci.cart_id = c.id
            AND (o.service_id = :service_id OR oa.add_on_id = :add_on_id)
      )
    RETURNING c.id
""")


def _row_to_cart(row: Any) -> Cart:
    return Cart(
        id=row.id,
        user_id=row.user_id,
        subtotal=row.subtotal,
        platform_fee=row.platform_fee,
        total=row.total,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_line(row: Any) -> CartLine:
    return CartLine(
        order_id=row.order_id,
        service_id=row.service_id,
        service_title=row.service_title,
        service_price=row.service_price,
        add_on_total=row.add_on_total,
        order_price=row.order_price,
        status=row.status,
    )


class CartRepository:
    async def get(self, db: AsyncSession, user_id: str) -> Cart | None:
        row = (await db.execute(_GET_CART_SQL, {"user_id": user_id})).fetchone()
        return _row_to_cart(row) if row else None

    async def get_for_update(self, db: AsyncSession, user_id: str) -> Cart | None:
        row = (await db.execute(_GET_CART_FOR_UPDATE_SQL, {"user_id": user_id})).fetchone()
        return _row_to_cart(row) if row else None

    async def get_or_create_for_update(
        self, db: AsyncSession, user_id: str, default_fee: int
    ) -> Cart:
        """Create the user's cart at the current fee if missing, then lock it."""
        await db.execute(
            _INSERT_CART_SQL,
            {
                "id": generate_id(),
                "user_id": user_id,
                "fee_key": PLATFORM_FEE_KEY,
                "default_fee": default_fee,
            },
        )
        cart = await self.get_for_update(db, user_id)
        if cart is None:
            raise InternalError(f"Cart for {user_id} missing after upsert")
        return cart

    async def live_lines(self, db: AsyncSession, cart_id: str) -> list[CartLine]:
        result = await db.execute(_LIVE_LINES_SQL, {"cart_id": cart_id})
        return [_row_to_line(r) for r in result.fetchall()]

    async def add_item(self, db: AsyncSession, cart_id: str, order_id: str) -> None:
        await db.execute(_ADD_ITEM_SQL, {"cart_id": cart_id, "order_id": order_id})

    async def remove_items(
        self, db: AsyncSession, cart_id: str, order_ids: list[str]
    ) -> None:
        if not order_ids:
            return
        await db.execute(_REMOVE_ITEMS_SQL, {"cart_id": cart_id, "order_ids": order_ids})

    async def clear_items(self, db: AsyncSession, cart_id: str) -> list[str]:
        result = await db.execute(_CLEAR_ITEMS_SQL, {"cart_id": cart_id})
        return [r.order_id for r in result.fetchall()]

    async def delete_pending_orders(self, db: AsyncSession, order_ids: list[str]) -> int:
        if not order_ids:
            return 0
        result = await db.execute(
            _DELETE_PENDING_ORDERS_SQL,
            {"order_ids": order_ids, "pending": OrderStatus.PENDING.value},
        )
        return len(result.fetchall())

    async def save_totals(self, db: AsyncSession, cart_id: str, totals: CartTotals) -> None:
        await db.execute(
            _SAVE_TOTALS_SQL,
            {
                "cart_id": cart_id,
                "subtotal": totals.subtotal,
                "platform_fee": totals.platform_fee,
                "total": totals.total,
            },
        )

    async def append_history(
        self,
        db: AsyncSession,
        cart_id: str,
        order_ids: list[str],
        total: int,
        purchased_at: datetime,
    ) -> str:
        history_id = generate_id()
        await db.execute(
            _INSERT_HISTORY_SQL,
            {"id": history_id, "cart_id": cart_id, "total": total, "purchased_at": purchased_at},
        )
        if order_ids:
            await db.execute(
                _INSERT_HISTORY_ORDER_SQL,
                [
                    {"history_id": history_id, "order_id": oid, "position": pos}
                    for pos, oid in enumerate(order_ids)
                ],
            )
        return history_id

    async def list_history(self, db: AsyncSession, cart_id: str) -> list[HistoryBatch]:
        result = await db.execute(_LIST_HISTORY_SQL, {"cart_id": cart_id})
        batches: dict[str, HistoryBatch] = {}
        for row in result.fetchall():
            batch = batches.get(row.id)
            if batch is None:
                batch = HistoryBatch(id=row.id, total=row.total, purchased_at=row.purchased_at)
                batches[row.id] = batch
            if row.order_id is not None:
                batch.lines.append(
                    HistoryLine(
                        order_id=row.order_id,
                        service_title=row.service_title,
                        order_price=row.order_price,
                    )
                )
        return list(batches.values())

    async def set_platform_fee(self, db: AsyncSession, fee: int) -> int:
        """Store the global fee and reprice every cart. Returns carts updated."""
        await db.execute(_UPSERT_FEE_SQL, {"key": PLATFORM_FEE_KEY, "fee": fee})
        result = await db.execute(_REPRICE_ALL_CARTS_SQL, {"fee": fee})
        return len(result.fetchall())

    async def reprice_carts_holding(
        self, db: AsyncSession, service_id: str | None, add_on_id: str | None
    ) -> int:
        """Recompute carts whose live orders use the service or add-on."""
        result = await db.execute(
            _REPRICE_CARTS_HOLDING_SQL, {"service_id": service_id, "add_on_id": add_on_id}
        )
        return len(result.fetchall())
