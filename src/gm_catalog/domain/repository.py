"""Repository Protocol for the catalog tree."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.domain.models import AddOn, Category, Service, Subcategory


class CatalogRepositoryProtocol(Protocol):
    # categories
    async def list_categories(self, db: AsyncSession) -> list[Category]: ...

    async def get_category(self, db: AsyncSession, category_id: str) -> Category | None: ...

    async def insert_category(self, db: AsyncSession, category: Category) -> Category: ...

    async def update_category(
        self, db: AsyncSession, category_id: str, name: str | None, description: str | None
    ) -> Category | None: ...

    async def delete_category(self, db: AsyncSession, category_id: str) -> bool: ...

    # subcategories
    async def list_subcategories(
        self, db: AsyncSession, category_id: str | None
    ) -> list[Subcategory]: ...

    async def get_subcategory(
        self, db: AsyncSession, subcategory_id: str
    ) -> Subcategory | None: ...

    async def insert_subcategory(
        self, db: AsyncSession, subcategory: Subcategory
    ) -> Subcategory: ...

    async def update_subcategory(
        self, db: AsyncSession, subcategory_id: str, name: str | None, description: str | None
    ) -> Subcategory | None: ...

    async def delete_subcategory(self, db: AsyncSession, subcategory_id: str) -> bool: ...

    async def count_services(
        self, db: AsyncSession, category_id: str | None, subcategory_id: str | None
    ) -> int: ...

    # services
    async def insert_service(self, db: AsyncSession, service: Service) -> Service: ...

    async def get_service(self, db: AsyncSession, service_id: str) -> Service | None: ...

    async def list_services(
        self,
        db: AsyncSession,
        approved_only: bool,
        category_id: str | None,
        subcategory_id: str | None,
        freelancer_id: str | None,
    ) -> list[Service]: ...

    async def update_service(
        self, db: AsyncSession, service_id: str, fields: dict[str, Any]
    ) -> Service | None: ...

    async def set_approval(
        self, db: AsyncSession, service_id: str, approved: bool
    ) -> Service | None: ...

    async def delete_service(self, db: AsyncSession, service_id: str) -> bool: ...

    async def count_orders_for_service(self, db: AsyncSession, service_id: str) -> int: ...

    # add-ons
    async def insert_add_on(self, db: AsyncSession, add_on: AddOn) -> AddOn: ...

    async def get_add_on(self, db: AsyncSession, add_on_id: str) -> AddOn | None: ...

    async def get_add_ons(self, db: AsyncSession, add_on_ids: list[str]) -> list[AddOn]: ...

    async def list_add_ons(self, db: AsyncSession, service_id: str) -> list[AddOn]: ...

    async def update_add_on(
        self, db: AsyncSession, add_on_id: str, fields: dict[str, Any]
    ) -> AddOn | None: ...

    async def delete_add_on(self, db: AsyncSession, add_on_id: str) -> bool: ...

    async def count_orders_for_add_on(self, db: AsyncSession, add_on_id: str) -> int: ...
