"""Unit tests for CartRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.gm_cart.domain.models import CartTotals
from src.gm_cart.infrastructure.persistence import PLATFORM_FEE_KEY, CartRepository


def _result(rows: list[Any] | None = None, one: Any = None) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows or []
    result.fetchone.return_value = one
    return result


def _line_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.order_id = kwargs.get("order_id", "o-1")
    row.service_id = kwargs.get("service_id", "svc-1")
    row.service_title = kwargs.get("service_title", "Logo design")
    row.service_price = kwargs.get("service_price", 10000)
    row.add_on_total = kwargs.get("add_on_total", 0)
    row.order_price = kwargs.get("order_price", 10000)
    row.status = kwargs.get("status", "PENDING")
    return row


def _cart_row() -> MagicMock:
    row = MagicMock()
    row.id = "cart-1"
    row.user_id = "u-1"
    row.subtotal = 0
    row.platform_fee = 500
    row.total = 500
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _sql(call: Any) -> str:
    return call.args[0].text


class TestCartRepository:
    async def test_get_maps_row(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=_cart_row())

        cart = await CartRepository().get(db, "u-1")

        assert cart is not None
        assert (cart.id, cart.platform_fee, cart.total) == ("cart-1", 500, 500)
        assert db.execute.call_args.args[1] == {"user_id": "u-1"}

    async def test_get_for_update_locks_row(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=None)

        assert await CartRepository().get_for_update(db, "u-1") is None
        assert "FOR UPDATE" in _sql(db.execute.call_args)

    async def test_get_or_create_seeds_stored_fee_then_locks(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(), _result(one=_cart_row())]

        cart = await CartRepository().get_or_create_for_update(db, "u-1", 500)

        insert_call, lock_call = db.execute.call_args_list
        assert "ON CONFLICT (user_id) DO NOTHING" in _sql(insert_call)
        params = insert_call.args[1]
        assert params["fee_key"] == PLATFORM_FEE_KEY
        assert params["default_fee"] == 500
        assert "FOR UPDATE" in _sql(lock_call)
        assert cart.id == "cart-1"

    async def test_live_lines_price_from_catalog(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(
            [
                _line_row(order_id="o-1", service_price=10000, add_on_total=3000),
                _line_row(order_id="o-2", service_price=4000, status="IN_PROGRESS"),
            ]
        )

        lines = await CartRepository().live_lines(db, "cart-1")

        sql = _sql(db.execute.call_args)
        assert "JOIN services s ON s.id = o.service_id" in sql
        assert "LEFT JOIN add_ons a" in sql
        assert db.execute.call_args.args[1] == {"cart_id": "cart-1"}
        assert [line.line_price for line in lines] == [13000, 4000]
        assert lines[1].status == "IN_PROGRESS"

    async def test_remove_items_skips_empty_selection(self) -> None:
        db = AsyncMock()

        await CartRepository().remove_items(db, "cart-1", [])

        db.execute.assert_not_awaited()

    async def test_remove_items_binds_list(self) -> None:
        db = AsyncMock()

        await CartRepository().remove_items(db, "cart-1", ["o-1", "o-2"])

        assert db.execute.call_args.args[1] == {"cart_id": "cart-1", "order_ids": ["o-1", "o-2"]}

    async def test_delete_pending_orders_only_touches_pending(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result([MagicMock()])

        deleted = await CartRepository().delete_pending_orders(db, ["o-1", "o-2"])

        assert deleted == 1
        assert "status = :pending" in _sql(db.execute.call_args)
        assert db.execute.call_args.args[1]["pending"] == "PENDING"

    async def test_delete_pending_orders_without_ids_is_noop(self) -> None:
        db = AsyncMock()

        assert await CartRepository().delete_pending_orders(db, []) == 0
        db.execute.assert_not_awaited()

    async def test_save_totals_params(self) -> None:
        db = AsyncMock()

        await CartRepository().save_totals(db, "cart-1", CartTotals(16000, 500, 16500))

        assert db.execute.call_args.args[1] == {
            "cart_id": "cart-1",
            "subtotal": 16000,
            "platform_fee": 500,
            "total": 16500,
        }

    async def test_append_history_keeps_order_positions(self) -> None:
        db = AsyncMock()

        history_id = await CartRepository().append_history(
            db, "cart-1", ["o-2", "o-1"], 16500, datetime.now(UTC)
        )

        header, lines = db.execute.call_args_list
        assert header.args[1]["id"] == history_id
        assert header.args[1]["total"] == 16500
        assert [(p["order_id"], p["position"]) for p in lines.args[1]] == [("o-2", 0), ("o-1", 1)]

    async def test_list_history_groups_rows_by_batch(self) -> None:
        db = AsyncMock()
        at = datetime.now(UTC)

        def row(batch: str, order_id: str | None) -> MagicMock:
            r = MagicMock()
            r.id = batch
            r.total = 4500
            r.purchased_at = at
            r.order_id = order_id
            r.service_title = "Logo design" if order_id else None
            r.order_price = 4000 if order_id else None
            return r

        db.execute.return_value = _result([row("h-2", "o-3"), row("h-2", "o-4"), row("h-1", None)])

        batches = await CartRepository().list_history(db, "cart-1")

        assert [b.id for b in batches] == ["h-2", "h-1"]
        assert [line.order_id for line in batches[0].lines] == ["o-3", "o-4"]
        assert batches[1].lines == []


class TestRepricing:
    async def test_set_platform_fee_upserts_then_reprices_every_cart(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(), _result([MagicMock(), MagicMock(), MagicMock()])]

        updated = await CartRepository().set_platform_fee(db, 750)

        upsert, reprice = db.execute.call_args_list
        assert "INSERT INTO platform_settings" in _sql(upsert)
        assert upsert.args[1] == {"key": PLATFORM_FEE_KEY, "fee": 750}
        sql = _sql(reprice)
        assert "UPDATE carts c" in sql
        assert "total        = sums.subtotal + :fee" in sql
        assert "GREATEST(" in sql
        assert reprice.args[1] == {"fee": 750}
        assert updated == 3

    async def test_reprice_carts_holding_keeps_each_cart_fee(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result([MagicMock()])

        touched = await CartRepository().reprice_carts_holding(db, "svc-1", None)

        sql = _sql(db.execute.call_args)
        assert "sums.subtotal + c.platform_fee" in sql
        assert "o.service_id = :service_id OR oa.add_on_id = :add_on_id" in sql
        assert ":fee" not in sql
        assert db.execute.call_args.args[1] == {"service_id": "svc-1", "add_on_id": None}
        assert touched == 1
