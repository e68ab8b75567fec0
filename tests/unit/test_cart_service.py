"""Unit tests for CartService with a mocked CartRepository."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.gm_cart.application.service import CartService
from src.gm_cart.domain.models import Cart, CartLine, CartTotals, HistoryBatch, HistoryLine
from src.gm_common.errors import CartHistoryEmptyError, CartNotFoundError


def _cart(**kwargs: int) -> Cart:
    return Cart(
        id="cart-1",
        user_id="u-1",
        subtotal=kwargs.get("subtotal", 12000),
        platform_fee=kwargs.get("platform_fee", 500),
        total=kwargs.get("total", 12500),
    )


def _line(order_id: str, price: int, add_ons: int = 0) -> CartLine:
    return CartLine(
        order_id=order_id,
        service_id="svc-1",
        service_title="Logo design",
        service_price=price,
        add_on_total=add_ons,
    )


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repo: AsyncMock) -> CartService:
    return CartService(repo)


class TestClear:
    async def test_total_falls_back_to_fee(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get_for_update.return_value = _cart()
        repo.clear_items.return_value = ["o-1", "o-2"]
        repo.delete_pending_orders.return_value = 2

        result = await service.clear(db, "u-1")

        repo.delete_pending_orders.assert_awaited_once_with(db, ["o-1", "o-2"])
        repo.save_totals.assert_awaited_once_with(db, "cart-1", CartTotals(0, 500, 500))
        assert result.orders == []
        assert (result.subtotal_cents, result.total_cents) == (0, 500)
        db.commit.assert_awaited_once()

    async def test_missing_cart_rolls_back(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get_for_update.return_value = None

        with pytest.raises(CartNotFoundError):
            await service.clear(db, "u-1")

        repo.clear_items.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestSetPlatformFee:
    async def test_commits_and_returns_cart_count(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.set_platform_fee.return_value = 7

        assert await service.set_platform_fee(db, 750) == 7

        repo.set_platform_fee.assert_awaited_once_with(db, 750)
        db.commit.assert_awaited_once()

    async def test_failure_rolls_back(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.set_platform_fee.side_effect = RuntimeError("deadlock")

        with pytest.raises(RuntimeError):
            await service.set_platform_fee(db, 750)

        db.rollback.assert_awaited_once()


class TestGetCurrent:
    async def test_no_cart_is_not_found(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get.return_value = None

        with pytest.raises(CartNotFoundError) as exc:
            await service.get_current(db, "u-1")
        assert exc.value.http_status == 404

    async def test_totals_come_from_live_lines(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        # stored totals are stale; the response is priced from the lines
        repo.get.return_value = _cart(subtotal=1, total=501)
        repo.live_lines.return_value = [_line("o-1", 10000, 2000), _line("o-2", 4000)]

        result = await service.get_current(db, "u-1")

        assert [o.order_id for o in result.orders] == ["o-1", "o-2"]
        assert result.orders[0].line_price_cents == 12000
        assert result.subtotal_cents == 16000
        assert result.total_cents == 16500


class TestGetHistory:
    async def test_no_cart_is_empty_history(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get.return_value = None

        with pytest.raises(CartHistoryEmptyError):
            await service.get_history(db, "u-1")

    async def test_cart_without_batches_is_empty_history(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get.return_value = _cart()
        repo.list_history.return_value = []

        with pytest.raises(CartHistoryEmptyError) as exc:
            await service.get_history(db, "u-1")
        assert exc.value.http_status == 404

    async def test_batches_are_returned_in_repository_order(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get.return_value = _cart()
        repo.list_history.return_value = [
            HistoryBatch(
                id="h-2",
                total=4500,
                purchased_at=datetime(2024, 5, 2, tzinfo=UTC),
                lines=[HistoryLine("o-3", "Logo design", 4000)],
            ),
            HistoryBatch(id="h-1", total=500, purchased_at=datetime(2024, 5, 1, tzinfo=UTC)),
        ]

        result = await service.get_history(db, "u-1")

        assert [b.id for b in result] == ["h-2", "h-1"]
        assert result[0].orders[0].order_price_cents == 4000
        assert result[1].orders == []


class TestBuildingBlocks:
    async def test_append_order_locks_adds_and_recomputes(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.get_or_create_for_update.return_value = _cart()
        repo.live_lines.return_value = [_line("o-1", 3000)]

        totals = await service.append_order(db, "u-1", "o-1")

        repo.add_item.assert_awaited_once_with(db, "cart-1", "o-1")
        assert totals == CartTotals(3000, 500, 3500)
        repo.save_totals.assert_awaited_once_with(db, "cart-1", totals)
        db.commit.assert_not_awaited()

    async def test_reprice_carts_holding_passes_both_keys(
        self, service: CartService, repo: AsyncMock, db: AsyncMock
    ) -> None:
        repo.reprice_carts_holding.return_value = 2

        assert await service.reprice_carts_holding(db, add_on_id="a-1") == 2
        repo.reprice_carts_holding.assert_awaited_once_with(db, None, "a-1")
