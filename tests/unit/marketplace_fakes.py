"""In-memory repositories for multi-step marketplace scenarios.

Each fake implements the matching repository Protocol over one shared
``World`` so that orders, carts, wallets and transactions see each other's
writes the way the SQL repositories do inside one DB transaction. Cart lines
are priced live from the world's services and add-ons.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

from sqlalchemy.exc import IntegrityError

from src.gm_cart.domain.models import Cart, CartLine, CartTotals, HistoryBatch, HistoryLine
from src.gm_catalog.domain.models import AddOn, Service
from src.gm_common.enums import OrderStatus, TransactionStatus, WalletOwnerKind
from src.gm_order.domain.models import Order, Rating
from src.gm_order.infrastructure.persistence import ONE_IN_PROGRESS_INDEX
from src.gm_transaction.domain.models import Transaction
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID, Wallet


@dataclass
class World:
    services: dict[str, Service] = field(default_factory=dict)
    add_ons: dict[str, AddOn] = field(default_factory=dict)
    orders: dict[str, Order] = field(default_factory=dict)
    ratings: dict[str, Rating] = field(default_factory=dict)
    carts: dict[str, Cart] = field(default_factory=dict)  # by user_id
    cart_items: dict[str, list[str]] = field(default_factory=dict)  # cart_id -> order ids
    history: dict[str, list[HistoryBatch]] = field(default_factory=dict)  # cart_id -> batches
    wallets: dict[str, Wallet] = field(default_factory=dict)  # by owner_id
    txs: dict[str, Transaction] = field(default_factory=dict)
    platform_fee: int = 500

    def add_service(self, service: Service) -> Service:
        self.services[service.id] = service
        for a in service.add_ons:
            self.add_ons[a.id] = a
        return service

    def reprice_service(self, service_id: str, price: int) -> None:
        self.services[service_id].price = price

    def reprice_add_on(self, add_on_id: str, price: int) -> None:
        add_on = self.add_ons[add_on_id]
        add_on.price = price
        service = self.services[add_on.service_id]
        service.add_ons = [add_on if a.id == add_on_id else a for a in service.add_ons]

    def balance(self, owner_id: str) -> int:
        return self.wallets[owner_id].balance

    def line_price(self, order: Order) -> int:
        service = self.services[order.service_id]
        return service.price + sum(self.add_ons[a].price for a in order.add_on_ids)


def make_world(platform_fee: int = 500, freelancers: tuple[str, ...] = ("fl-1",)) -> World:
    world = World(platform_fee=platform_fee)
    world.wallets[PLATFORM_OWNER_ID] = Wallet(
        id="w-platform",
        owner_id=PLATFORM_OWNER_ID,
        owner_kind=WalletOwnerKind.ADMIN.value,
        balance=0,
    )
    for fl in freelancers:
        world.wallets[fl] = Wallet(
            id=f"w-{fl}", owner_id=fl, owner_kind=WalletOwnerKind.FREELANCER.value, balance=0
        )
    return world


def make_service(
    service_id: str = "svc-1",
    freelancer_id: str = "fl-1",
    price: int = 10000,
    add_ons: dict[str, int] | None = None,
    approved: bool = True,
) -> Service:
    return Service(
        id=service_id,
        freelancer_id=freelancer_id,
        category_id="cat-1",
        subcategory_id="sub-1",
        title=f"Service {service_id}",
        description="desc",
        price=price,
        is_approved=approved,
        add_ons=[
            AddOn(id=aid, service_id=service_id, title=aid, duration_days=1, price=p)
            for aid, p in (add_ons or {}).items()
        ],
    )


def make_db() -> AsyncMock:
    """Session double: commit/rollback are recorded, SQL is never issued."""
    return AsyncMock()


class FakeCatalogRepository:
    def __init__(self, world: World) -> None:
        self.w = world

    async def get_service(self, db, service_id):  # type: ignore[no-untyped-def]
        return self.w.services.get(service_id)

    async def get_add_ons(self, db, ids):  # type: ignore[no-untyped-def]
        return [self.w.add_ons[i] for i in ids if i in self.w.add_ons]

    async def get_add_on(self, db, add_on_id):  # type: ignore[no-untyped-def]
        return self.w.add_ons.get(add_on_id)

    async def update_service(self, db, service_id, fields):  # type: ignore[no-untyped-def]
        if "price" in fields:
            self.w.reprice_service(service_id, fields["price"])
        return self.w.services.get(service_id)

    async def update_add_on(self, db, add_on_id, fields):  # type: ignore[no-untyped-def]
        if "price" in fields:
            self.w.reprice_add_on(add_on_id, fields["price"])
        return self.w.add_ons.get(add_on_id)


class FakeOrderRepository:
    def __init__(self, world: World) -> None:
        self.w = world

    async def insert(self, db, order: Order) -> Order:  # type: ignore[no-untyped-def]
        stored = replace(order, add_on_ids=list(order.add_on_ids), created_at=datetime.now())
        self.w.orders[order.id] = stored
        return replace(stored)

    async def get(self, db, order_id: str) -> Order | None:  # type: ignore[no-untyped-def]
        order = self.w.orders.get(order_id)
        return replace(order, add_on_ids=list(order.add_on_ids)) if order else None

    async def get_for_update(self, db, order_id: str) -> Order | None:  # type: ignore[no-untyped-def]
        return await self.get(db, order_id)

    async def replace_add_ons(self, db, order_id, add_on_ids, order_price):  # type: ignore[no-untyped-def]
        order = self.w.orders[order_id]
        order.add_on_ids = list(add_on_ids)
        order.order_price = order_price

    async def freelancer_has_active(self, db, freelancer_id):  # type: ignore[no-untyped-def]
        return any(
            o.freelancer_id == freelancer_id and o.status == OrderStatus.IN_PROGRESS
            for o in self.w.orders.values()
        )

    async def start_if_pending(self, db, order_id):  # type: ignore[no-untyped-def]
        order = self.w.orders[order_id]
        if order.status != OrderStatus.PENDING:
            return False
        if await self.freelancer_has_active(db, order.freelancer_id):
            orig = SimpleNamespace(constraint_name=ONE_IN_PROGRESS_INDEX)
            raise IntegrityError("UPDATE orders", {}, orig)  # type: ignore[arg-type]
        order.status = OrderStatus.IN_PROGRESS.value
        return True

    async def complete_if_in_progress(self, db, order_id, transaction_id):  # type: ignore[no-untyped-def]
        order = self.w.orders[order_id]
        if order.status != OrderStatus.IN_PROGRESS:
            return False
        order.status = OrderStatus.COMPLETED.value
        order.settlement_transaction_id = transaction_id
        return True

    async def attach_transaction(self, db, order_id, transaction_id, order_price):  # type: ignore[no-untyped-def]
        order = self.w.orders[order_id]
        order.transaction_id = transaction_id
        order.order_price = order_price

    async def delete(self, db, order_id):  # type: ignore[no-untyped-def]
        return self.w.orders.pop(order_id, None) is not None

    async def list_for_user(self, db, user_id):  # type: ignore[no-untyped-def]
        return [await self.get(db, o.id) for o in self.w.orders.values() if o.user_id == user_id]

    async def list_for_freelancer(self, db, freelancer_id, status):  # type: ignore[no-untyped-def]
        return [
            await self.get(db, o.id)
            for o in self.w.orders.values()
            if o.freelancer_id == freelancer_id and (status is None or o.status == status)
        ]

    async def list_all(self, db, status):  # type: ignore[no-untyped-def]
        return [
            await self.get(db, o.id)
            for o in self.w.orders.values()
            if status is None or o.status == status
        ]

    async def count_by_status(self, db, status):  # type: ignore[no-untyped-def]
        return sum(1 for o in self.w.orders.values() if o.status == status)

    async def count_for_freelancer(self, db, freelancer_id):  # type: ignore[no-untyped-def]
        return sum(1 for o in self.w.orders.values() if o.freelancer_id == freelancer_id)

    async def count_paid_for_user(self, db, user_id):  # type: ignore[no-untyped-def]
        return sum(
            1
            for o in self.w.orders.values()
            if o.user_id == user_id
            and (o.status != OrderStatus.PENDING or o.transaction_id is not None)
        )

    async def list_with_failed_payment(self, db, user_id):  # type: ignore[no-untyped-def]
        return [
            await self.get(db, o.id)
            for o in self.w.orders.values()
            if o.user_id == user_id
            and o.transaction_id is not None
            and self.w.txs[o.transaction_id].status == TransactionStatus.FAILED
        ]

    async def insert_rating(self, db, rating):  # type: ignore[no-untyped-def]
        self.w.ratings[rating.id] = rating
        self.w.orders[rating.order_id].rating_id = rating.id
        return rating

    async def get_rating(self, db, rating_id):  # type: ignore[no-untyped-def]
        return self.w.ratings.get(rating_id)

    async def list_ratings_for_freelancer(self, db, freelancer_id):  # type: ignore[no-untyped-def]
        return [r for r in self.w.ratings.values() if r.freelancer_id == freelancer_id]

    async def delete_rating(self, db, rating_id):  # type: ignore[no-untyped-def]
        rating = self.w.ratings.pop(rating_id, None)
        if rating is None:
            return False
        self.w.orders[rating.order_id].rating_id = None
        return True


class FakeCartRepository:
    def __init__(self, world: World) -> None:
        self.w = world

    async def get(self, db, user_id):  # type: ignore[no-untyped-def]
        cart = self.w.carts.get(user_id)
        return replace(cart) if cart else None

    async def get_for_update(self, db, user_id):  # type: ignore[no-untyped-def]
        return await self.get(db, user_id)

    async def get_or_create_for_update(self, db, user_id, default_fee):  # type: ignore[no-untyped-def]
        if user_id not in self.w.carts:
            fee = self.w.platform_fee
            cart = Cart(
                id=f"cart-{user_id}", user_id=user_id, subtotal=0, platform_fee=fee, total=fee
            )
            self.w.carts[user_id] = cart
            self.w.cart_items[cart.id] = []
        return await self.get(db, user_id)

    async def live_lines(self, db, cart_id):  # type: ignore[no-untyped-def]
        lines = []
        for order_id in self.w.cart_items.get(cart_id, []):
            order = self.w.orders[order_id]
            service = self.w.services[order.service_id]
            lines.append(
                CartLine(
                    order_id=order.id,
                    service_id=service.id,
                    service_title=service.title,
                    service_price=service.price,
                    add_on_total=sum(self.w.add_ons[a].price for a in order.add_on_ids),
                    order_price=order.order_price,
                    status=order.status,
                )
            )
        return lines

    async def add_item(self, db, cart_id, order_id):  # type: ignore[no-untyped-def]
        items = self.w.cart_items.setdefault(cart_id, [])
        if order_id not in items:
            items.append(order_id)

    async def remove_items(self, db, cart_id, order_ids):  # type: ignore[no-untyped-def]
        self.w.cart_items[cart_id] = [
            o for o in self.w.cart_items.get(cart_id, []) if o not in order_ids
        ]

    async def clear_items(self, db, cart_id):  # type: ignore[no-untyped-def]
        removed = self.w.cart_items.get(cart_id, [])
        self.w.cart_items[cart_id] = []
        return removed

    async def delete_pending_orders(self, db, order_ids):  # type: ignore[no-untyped-def]
        deleted = 0
        for oid in order_ids:
            order = self.w.orders.get(oid)
            if order and order.status == OrderStatus.PENDING:
                del self.w.orders[oid]
                deleted += 1
        return deleted

    async def save_totals(self, db, cart_id, totals: CartTotals):  # type: ignore[no-untyped-def]
        cart = next(c for c in self.w.carts.values() if c.id == cart_id)
        cart.subtotal = totals.subtotal
        cart.platform_fee = totals.platform_fee
        cart.total = totals.total

    async def append_history(self, db, cart_id, order_ids, total, purchased_at):  # type: ignore[no-untyped-def]
        batch_id = f"hist-{len(self.w.history.get(cart_id, [])) + 1}"
        lines = [
            HistoryLine(
                order_id=oid,
                service_title=self.w.services[self.w.orders[oid].service_id].title,
                order_price=self.w.orders[oid].order_price,
            )
            for oid in order_ids
        ]
        self.w.history.setdefault(cart_id, []).insert(
            0, HistoryBatch(id=batch_id, total=total, purchased_at=purchased_at, lines=lines)
        )
        return batch_id

    async def list_history(self, db, cart_id):  # type: ignore[no-untyped-def]
        return list(self.w.history.get(cart_id, []))

    async def _reprice(self, db, cart: Cart) -> None:  # type: ignore[no-untyped-def]
        lines = await self.live_lines(db, cart.id)
        cart.subtotal = max(0, sum(line.line_price for line in lines))
        cart.total = cart.subtotal + cart.platform_fee

    async def set_platform_fee(self, db, fee):  # type: ignore[no-untyped-def]
        self.w.platform_fee = fee
        for cart in self.w.carts.values():
            cart.platform_fee = fee
            await self._reprice(db, cart)
        return len(self.w.carts)

    async def reprice_carts_holding(self, db, service_id, add_on_id):  # type: ignore[no-untyped-def]
        touched = 0
        for cart in self.w.carts.values():
            orders = [self.w.orders[o] for o in self.w.cart_items.get(cart.id, [])]
            if any(o.service_id == service_id or add_on_id in o.add_on_ids for o in orders):
                await self._reprice(db, cart)
                touched += 1
        return touched


class FakeWalletRepository:
    def __init__(self, world: World) -> None:
        self.w = world

    async def get_by_owner(self, db, owner_id):  # type: ignore[no-untyped-def]
        return self.w.wallets.get(owner_id)

    async def get_by_id(self, db, wallet_id):  # type: ignore[no-untyped-def]
        return next((w for w in self.w.wallets.values() if w.id == wallet_id), None)

    async def get_platform(self, db):  # type: ignore[no-untyped-def]
        return self.w.wallets.get(PLATFORM_OWNER_ID)

    async def list_all(self, db, owner_kind):  # type: ignore[no-untyped-def]
        return [
            w for w in self.w.wallets.values() if owner_kind is None or w.owner_kind == owner_kind
        ]

    async def create_for_owner(self, db, owner_id, owner_kind):  # type: ignore[no-untyped-def]
        wallet = self.w.wallets.setdefault(
            owner_id, Wallet(id=f"w-{owner_id}", owner_id=owner_id, owner_kind=owner_kind, balance=0)
        )
        return wallet

    async def credit(self, db, owner_id, amount):  # type: ignore[no-untyped-def]
        wallet = self.w.wallets.get(owner_id)
        if wallet is None:
            return None
        wallet.balance += amount
        return replace(wallet)

    async def debit(self, db, owner_id, amount):  # type: ignore[no-untyped-def]
        wallet = self.w.wallets.get(owner_id)
        if wallet is None:
            return None
        wallet.balance -= amount
        return replace(wallet)

    async def set_balance(self, db, wallet_id, balance):  # type: ignore[no-untyped-def]
        wallet = await self.get_by_id(db, wallet_id)
        if wallet is None:
            return None
        wallet.balance = balance
        return replace(wallet)

    async def delete_for_owner(self, db, owner_id):  # type: ignore[no-untyped-def]
        if owner_id == PLATFORM_OWNER_ID:
            return False
        return self.w.wallets.pop(owner_id, None) is not None


class FakeTransactionRepository:
    def __init__(self, world: World) -> None:
        self.w = world

    async def insert(self, db, tx):  # type: ignore[no-untyped-def]
        self.w.txs[tx.id] = replace(tx, created_at=datetime.now())
        return replace(self.w.txs[tx.id])

    async def get(self, db, transaction_id):  # type: ignore[no-untyped-def]
        tx = self.w.txs.get(transaction_id)
        return replace(tx) if tx else None

    async def get_for_update(self, db, transaction_id):  # type: ignore[no-untyped-def]
        return await self.get(db, transaction_id)

    async def list_for_party(self, db, party_id):  # type: ignore[no-untyped-def]
        return [replace(t) for t in self.w.txs.values() if t.involves(party_id)]

    async def list_all(self, db, status, from_id):  # type: ignore[no-untyped-def]
        return [
            replace(t)
            for t in self.w.txs.values()
            if (status is None or t.status == status) and (from_id is None or t.from_id == from_id)
        ]

    async def update_status(self, db, transaction_id, status):  # type: ignore[no-untyped-def]
        tx = self.w.txs.get(transaction_id)
        if tx is None:
            return None
        tx.status = status
        return replace(tx)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    async def publish(self, room, event, payload):  # type: ignore[no-untyped-def]
        self.events.append((room, event, payload))
