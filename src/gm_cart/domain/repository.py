"""Repository Protocol for carts, cart items, history and the fee setting."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_cart.domain.models import Cart, CartLine, CartTotals, HistoryBatch


class CartRepositoryProtocol(Protocol):
    async def get(self, db: AsyncSession, user_id: str) -> Cart | None: ...

    async def get_for_update(self, db: AsyncSession, user_id: str) -> Cart | None: ...

    async def get_or_create_for_update(
        self, db: AsyncSession, user_id: str, default_fee: int
    ) -> Cart: ...

    async def live_lines(self, db: AsyncSession, cart_id: str) -> list[CartLine]: ...

    async def add_item(self, db: AsyncSession, cart_id: str, order_id: str) -> None: ...

    async def remove_items(
        self, db: AsyncSession, cart_id: str, order_ids: list[str]
    ) -> None: ...

    async def clear_items(self, db: AsyncSession, cart_id: str) -> list[str]: ...

    async def delete_pending_orders(self, db: AsyncSession, order_ids: list[str]) -> int: ...

    async def save_totals(self, db: AsyncSession, cart_id: str, totals: CartTotals) -> None: ...

    async def append_history(
        self,
        db: AsyncSession,
        cart_id: str,
        order_ids: list[str],
        total: int,
        purchased_at: datetime,
    ) -> str: ...

    async def list_history(self, db: AsyncSession, cart_id: str) -> list[HistoryBatch]: ...

    async def set_platform_fee(self, db: AsyncSession, fee: int) -> int: ...

    async def reprice_carts_holding(
        self, db: AsyncSession, service_id: str | None, add_on_id: str | None
    ) -> int: ...
