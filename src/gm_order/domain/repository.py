"""Repository Protocol for orders and ratings."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_order.domain.models import Order, Rating


class OrderRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, order: Order) -> Order: ...

    async def get(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def replace_add_ons(
        self, db: AsyncSession, order_id: str, add_on_ids: list[str], order_price: int
    ) -> None: ...

    async def freelancer_has_active(self, db: AsyncSession, freelancer_id: str) -> bool: ...

    async def start_if_pending(self, db: AsyncSession, order_id: str) -> bool: ...

    async def complete_if_in_progress(
        self, db: AsyncSession, order_id: str, transaction_id: str
    ) -> bool: ...

    async def attach_transaction(
        self, db: AsyncSession, order_id: str, transaction_id: str, order_price: int
    ) -> None: ...

    async def delete(self, db: AsyncSession, order_id: str) -> bool: ...

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[Order]: ...

    async def list_for_freelancer(
        self, db: AsyncSession, freelancer_id: str, status: str | None
    ) -> list[Order]: ...

    async def list_all(self, db: AsyncSession, status: str | None) -> list[Order]: ...

    async def count_by_status(self, db: AsyncSession, status: str) -> int: ...

    async def count_for_freelancer(self, db: AsyncSession, freelancer_id: str) -> int: ...

    async def count_paid_for_user(self, db: AsyncSession, user_id: str) -> int: ...

    async def list_with_failed_payment(
        self, db: AsyncSession, user_id: str
    ) -> list[Order]: ...

    # ratings
    async def insert_rating(self, db: AsyncSession, rating: Rating) -> Rating: ...

    async def get_rating(self, db: AsyncSession, rating_id: str) -> Rating | None: ...

    async def list_ratings_for_freelancer(
        self, db: AsyncSession, freelancer_id: str
    ) -> list[Rating]: ...

    async def delete_rating(self, db: AsyncSession, rating_id: str) -> bool: ...
