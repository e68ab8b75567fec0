"""Admin application service — consistency checks and platform stats."""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import OrderStatus, WalletOwnerKind

logger = logging.getLogger(__name__)

# Carts whose stored subtotal drifted from the live line prices.
_CART_DRIFT_SQL = text("""
    WITH lines AS (
        SELECT ci.cart_id,
               s.price + COALESCE((
                   SELECT SUM(a.price)
                   FROM order_add_ons oa JOIN add_ons a ON a.id = oa.add_on_id
                   WHERE oa.order_id = o.id
               ), 0) AS line_price
        FROM cart_items ci
        JOIN orders o   ON o.id = ci.order_id
        JOIN services s ON s.id = o.service_id
    )
    SELECT c.id, c.user_id, c.subtotal,
           CAST(GREATEST(COALESCE(SUM(lines.line_price), 0), 0) AS BIGINT) AS expected
    FROM carts c
    LEFT JOIN lines ON lines.cart_id = c.id
    GROUP BY c.id, c.user_id, c.subtotal
    HAVING c.subtotal <> CAST(GREATEST(COALESCE(SUM(lines.line_price), 0), 0) AS BIGINT)
""")

_BUSY_FREELANCERS_SQL = text("""
    SELECT freelancer_id, COUNT(*) AS n
    FROM orders
    WHERE status = :in_progress
    GROUP BY freelancer_id
    HAVING COUNT(*) > 1
""")

_PLATFORM_WALLET_COUNT_SQL = text(
    "SELECT COUNT(*) FROM wallets WHERE owner_kind = :admin_kind"
)

_ORDER_COUNTS_SQL = text("SELECT status, COUNT(*) AS n FROM orders GROUP BY status")

_TRANSACTION_TOTALS_SQL = text("""
    SELECT status, COUNT(*) AS n, CAST(COALESCE(SUM(amount), 0) AS BIGINT) AS amount
    FROM transactions
    GROUP BY status
""")

_PLATFORM_BALANCE_SQL = text(
    "SELECT balance FROM wallets WHERE owner_kind = :admin_kind"
)


class AdminService:
    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        """Cart subtotals, one active order per freelancer, one platform wallet."""
        violations: list[str] = []

        for row in (await db.execute(_CART_DRIFT_SQL)).fetchall():
            violations.append(
                f"cart {row.id} (user {row.user_id}): subtotal={row.subtotal} "
                f"!= live lines {row.expected}"
            )

        busy = await db.execute(
            _BUSY_FREELANCERS_SQL, {"in_progress": OrderStatus.IN_PROGRESS.value}
        )
        for row in busy.fetchall():
            violations.append(
                f"freelancer {row.freelancer_id} has {row.n} orders IN_PROGRESS"
            )

        wallets = (
            await db.execute(
                _PLATFORM_WALLET_COUNT_SQL, {"admin_kind": WalletOwnerKind.ADMIN.value}
            )
        ).scalar_one()
        if wallets != 1:
            violations.append(f"expected exactly one platform wallet, found {wallets}")

        for v in violations:
            logger.error("Invariant violated: %s", v)
        return {"ok": len(violations) == 0, "violations": violations}

    async def get_platform_stats(self, db: AsyncSession) -> dict[str, Any]:
        orders = {
            r.status: int(r.n) for r in (await db.execute(_ORDER_COUNTS_SQL)).fetchall()
        }
        txs = {
            r.status: {"count": int(r.n), "amount_cents": int(r.amount)}
            for r in (await db.execute(_TRANSACTION_TOTALS_SQL)).fetchall()
        }
        balance = (
            await db.execute(
                _PLATFORM_BALANCE_SQL, {"admin_kind": WalletOwnerKind.ADMIN.value}
            )
        ).scalar_one_or_none()
        return {
            "orders_by_status": {s.value: orders.get(s.value, 0) for s in OrderStatus},
            "transactions_by_status": txs,
            "platform_balance_cents": balance,
        }
