"""Order lifecycle scenarios over in-memory repositories.

Covers creation and repricing of PENDING orders, deletion, the
one-active-order-per-freelancer rule and both settlement modes.
"""

from unittest.mock import AsyncMock

import pytest

from marketplace_fakes import (
    FakeCartRepository,
    FakeCatalogRepository,
    FakeOrderRepository,
    FakeTransactionRepository,
    FakeWalletRepository,
    RecordingNotifier,
    World,
    make_db,
    make_service,
    make_world,
)
from src.gm_cart.application.service import CartService
from src.gm_catalog.application.schemas import AddOnUpdate, ServiceUpdate
from src.gm_catalog.application.service import CatalogService
from src.gm_common.enums import OrderStatus, PrincipalKind, SettlementMode, TransactionType
from src.gm_common.errors import (
    DuplicateRatingError,
    FreelancerBusyError,
    InvalidAddOnSelectionError,
    InvalidOrderTransitionError,
    NotOrderPartyError,
    OrderNotPendingError,
    OrderNotRateableError,
    ServiceNotFoundError,
)
from src.gm_gateway.auth.principal import Principal
from src.gm_order.application.service import OrderApplicationService
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID

BUYER = "u-1"
FREELANCER = "fl-1"


def _order_service(
    world: World, mode: SettlementMode = SettlementMode.LEGACY
) -> tuple[OrderApplicationService, RecordingNotifier]:
    notifier = RecordingNotifier()
    service = OrderApplicationService(
        repo=FakeOrderRepository(world),
        catalog_repo=FakeCatalogRepository(world),
        cart_service=CartService(FakeCartRepository(world)),
        wallet_repo=FakeWalletRepository(world),
        tx_repo=FakeTransactionRepository(world),
        notifier=notifier,
        settlement_mode=mode,
    )
    return service, notifier


@pytest.fixture
def world() -> World:
    w = make_world(platform_fee=500)
    w.add_service(make_service("svc-1", FREELANCER, 10000, {"a": 1000, "b": 2000, "c": 3000}))
    return w


@pytest.fixture
def db() -> AsyncMock:
    return make_db()


def _cart(world: World):  # type: ignore[no-untyped-def]
    return world.carts[BUYER]


class TestAddOrder:
    async def test_price_is_service_plus_add_ons_and_cart_adds_fee(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        result = await service.add_order(db, BUYER, "svc-1", ["b"])

        assert result.order.order_price_cents == 12000
        assert result.order.status == OrderStatus.PENDING
        assert result.cart.subtotal_cents == 12000
        assert result.cart.total_cents == 12500
        db.commit.assert_awaited_once()

    async def test_cart_subtotal_is_sum_of_live_orders(
        self, world: World, db: AsyncMock
    ) -> None:
        world.add_service(make_service("svc-2", "fl-2", 4000))
        service, _ = _order_service(world)
        await service.add_order(db, BUYER, "svc-1", [])
        result = await service.add_order(db, BUYER, "svc-2", [])

        assert result.cart.subtotal_cents == 14000
        assert _cart(world).subtotal == sum(world.line_price(o) for o in world.orders.values())
        assert _cart(world).total == 14500

    async def test_unapproved_service_is_not_found(self, world: World, db: AsyncMock) -> None:
        world.add_service(make_service("svc-x", "fl-2", 1000, approved=False))
        service, _ = _order_service(world)

        with pytest.raises(ServiceNotFoundError):
            await service.add_order(db, BUYER, "svc-x", [])
        db.rollback.assert_awaited_once()

    async def test_foreign_add_on_is_rejected(self, world: World, db: AsyncMock) -> None:
        world.add_service(make_service("svc-2", "fl-2", 4000, {"z": 100}))
        service, _ = _order_service(world)

        with pytest.raises(InvalidAddOnSelectionError):
            await service.add_order(db, BUYER, "svc-1", ["z"])
        assert world.orders == {}

    async def test_busy_freelancer_rejects_new_orders(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        first = await service.add_order(db, BUYER, "svc-1", [])
        await service.start_order(db, FREELANCER, first.order.id)

        with pytest.raises(FreelancerBusyError) as exc_info:
            await service.add_order(db, "u-2", "svc-1", [])
        assert exc_info.value.http_status == 409


class TestUpdateAddOns:
    async def test_replacing_selection_reprices_order_and_cart(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", ["a", "b"])
        assert created.order.order_price_cents == 13000

        updated = await service.update_add_ons(db, BUYER, created.order.id, ["b", "c"])

        assert updated.order.add_on_ids == ["b", "c"]
        assert updated.order.order_price_cents == 15000
        assert updated.cart.subtotal_cents == 15000
        assert updated.cart.total_cents == 15500

    async def test_other_buyer_cannot_update(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        with pytest.raises(NotOrderPartyError):
            await service.update_add_ons(db, "u-2", created.order.id, ["a"])

    async def test_started_order_cannot_be_repriced(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])
        await service.start_order(db, FREELANCER, created.order.id)

        with pytest.raises(OrderNotPendingError):
            await service.update_add_ons(db, BUYER, created.order.id, ["a"])
        assert world.orders[created.order.id].order_price == 10000


class TestDeleteOrder:
    async def test_pending_order_leaves_cart(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", ["a"])

        totals = await service.delete_order(db, BUYER, created.order.id)

        assert totals.subtotal_cents == 0
        assert totals.total_cents == 500
        assert created.order.id not in world.orders
        assert world.cart_items[_cart(world).id] == []

    async def test_non_pending_order_is_rejected_without_touching_cart(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])
        await service.start_order(db, FREELANCER, created.order.id)
        before = (_cart(world).subtotal, _cart(world).total)

        with pytest.raises(OrderNotPendingError) as exc_info:
            await service.delete_order(db, BUYER, created.order.id)

        assert exc_info.value.http_status == 400
        assert (_cart(world).subtotal, _cart(world).total) == before
        assert created.order.id in world.orders
        db.rollback.assert_awaited()


class TestStartOrder:
    async def test_at_most_one_order_in_progress_per_freelancer(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        first = await service.add_order(db, BUYER, "svc-1", [])
        second = await service.add_order(db, "u-2", "svc-1", [])
        await service.start_order(db, FREELANCER, first.order.id)

        with pytest.raises(FreelancerBusyError):
            await service.start_order(db, FREELANCER, second.order.id)

        in_progress = [o for o in world.orders.values() if o.status == OrderStatus.IN_PROGRESS]
        assert [o.id for o in in_progress] == [first.order.id]
        assert world.orders[second.order.id].status == OrderStatus.PENDING

    async def test_only_the_assigned_freelancer_can_start(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        with pytest.raises(NotOrderPartyError):
            await service.start_order(db, "fl-other", created.order.id)

    async def test_start_publishes_after_commit(self, world: World, db: AsyncMock) -> None:
        service, notifier = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        await service.start_order(db, FREELANCER, created.order.id)

        assert notifier.events == [
            (
                f"order:{created.order.id}",
                "order.started",
                {"order_id": created.order.id, "status": OrderStatus.IN_PROGRESS.value},
            )
        ]

    async def test_completed_order_cannot_restart(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])
        await service.start_order(db, FREELANCER, created.order.id)
        await service.end_order(db, FREELANCER, created.order.id)

        with pytest.raises(InvalidOrderTransitionError):
            await service.start_order(db, FREELANCER, created.order.id)


class TestSettlement:
    async def test_legacy_start_then_end_nets_freelancer_to_zero(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world, SettlementMode.LEGACY)
        created = await service.add_order(db, BUYER, "svc-1", ["a"])

        await service.start_order(db, FREELANCER, created.order.id)
        assert world.balance(FREELANCER) == 11000

        done = await service.end_order(db, FREELANCER, created.order.id)

        assert done.status == OrderStatus.COMPLETED
        assert world.balance(FREELANCER) == 0
        assert world.balance(PLATFORM_OWNER_ID) == -11000

    async def test_escrow_credits_freelancer_once_at_end(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world, SettlementMode.ESCROW)
        created = await service.add_order(db, BUYER, "svc-1", [])

        await service.start_order(db, FREELANCER, created.order.id)
        assert world.balance(FREELANCER) == 0

        await service.end_order(db, FREELANCER, created.order.id)
        with pytest.raises(InvalidOrderTransitionError):
            await service.end_order(db, FREELANCER, created.order.id)

        assert world.balance(FREELANCER) == 10000
        assert world.balance(PLATFORM_OWNER_ID) == -10000

    async def test_end_records_freelance_payment(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])
        await service.start_order(db, FREELANCER, created.order.id)

        done = await service.end_order(db, FREELANCER, created.order.id)

        tx = world.txs[done.settlement_transaction_id]
        assert tx.type == TransactionType.FREELANCE_PAYMENT
        assert done.transaction_id is None
        assert (tx.from_id, tx.to_id, tx.amount) == (PLATFORM_OWNER_ID, FREELANCER, 10000)

    async def test_end_requires_started_order(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        with pytest.raises(InvalidOrderTransitionError):
            await service.end_order(db, FREELANCER, created.order.id)
        assert world.txs == {}


class TestRating:
    async def test_rating_requires_completion_and_is_unique(
        self, world: World, db: AsyncMock
    ) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        with pytest.raises(OrderNotRateableError):
            await service.rate_order(db, BUYER, created.order.id, 5, None)

        await service.start_order(db, FREELANCER, created.order.id)
        await service.end_order(db, FREELANCER, created.order.id)
        rating = await service.rate_order(db, BUYER, created.order.id, 4, "good")

        assert rating.rate == 4
        assert rating.freelancer_id == FREELANCER
        with pytest.raises(DuplicateRatingError):
            await service.rate_order(db, BUYER, created.order.id, 5, None)


class TestReads:
    async def test_reads_are_idempotent(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", ["a"])
        buyer = Principal(id=BUYER, kind=PrincipalKind.USER)

        first = await service.get_order(db, buyer, created.order.id)
        second = await service.get_order(db, buyer, created.order.id)
        listed = await service.get_all_user_orders(db, BUYER)

        assert first == second
        assert [o.id for o in listed] == [created.order.id]
        assert _cart(world).subtotal == 11000

    async def test_stranger_cannot_read_order(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        with pytest.raises(NotOrderPartyError):
            await service.get_order(
                db, Principal(id="u-2", kind=PrincipalKind.USER), created.order.id
            )

    async def test_admin_reads_any_order(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        created = await service.add_order(db, BUYER, "svc-1", [])

        got = await service.get_order(
            db, Principal(id="adm-1", kind=PrincipalKind.ADMIN), created.order.id
        )
        assert got.id == created.order.id


class TestCatalogRepricing:
    """A freelancer changing a price keeps every holding cart's totals live."""

    def _catalog(self, world: World) -> CatalogService:
        return CatalogService(
            FakeCatalogRepository(world), AsyncMock(), CartService(FakeCartRepository(world))
        )

    async def test_service_price_change_updates_cart(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        await service.add_order(db, BUYER, "svc-1", ["a"])
        owner = Principal(id=FREELANCER, kind=PrincipalKind.FREELANCER)

        await self._catalog(world).update_service(
            db, owner, "svc-1", ServiceUpdate(price_cents=15000)
        )

        cart = _cart(world)
        assert cart.subtotal == 16000
        assert cart.total == cart.subtotal + cart.platform_fee

    async def test_add_on_price_change_updates_cart(self, world: World, db: AsyncMock) -> None:
        service, _ = _order_service(world)
        await service.add_order(db, BUYER, "svc-1", ["b"])
        owner = Principal(id=FREELANCER, kind=PrincipalKind.FREELANCER)

        await self._catalog(world).update_add_on(db, owner, "b", AddOnUpdate(price_cents=500))

        cart = _cart(world)
        assert cart.subtotal == 10500
        assert cart.total == 11000
