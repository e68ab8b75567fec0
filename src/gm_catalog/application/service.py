"""CatalogService — category tree, services and add-ons.

Visibility: anonymous callers and non-owners only see approved services;
admins see everything, and a freelancer always sees their own.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_cart.application.service import CartService
from src.gm_catalog.application.schemas import (
    AddOnCreate,
    AddOnResponse,
    AddOnUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ServiceCreate,
    ServiceGroup,
    ServiceResponse,
    ServiceUpdate,
    SubcategoryCreate,
    SubcategoryResponse,
    SubcategoryUpdate,
)
from src.gm_catalog.domain.models import AddOn, Category, Service, Subcategory, group_services
from src.gm_catalog.domain.repository import CatalogRepositoryProtocol
from src.gm_catalog.infrastructure.persistence import CatalogRepository
from src.gm_common.collaborators import MediaStore, default_media_store
from src.gm_common.errors import (
    AddOnNotFoundError,
    CatalogInUseError,
    CatalogNameExistsError,
    CategoryNotFoundError,
    NotServiceOwnerError,
    ServiceNotFoundError,
    SubcategoryMismatchError,
    SubcategoryNotFoundError,
    UpstreamError,
)
from src.gm_common.id_generator import generate_id
from src.gm_gateway.auth.principal import Principal

logger = logging.getLogger(__name__)

_MEDIA_FOLDER = "services"


def _can_see(service: Service, principal: Principal | None) -> bool:
    if service.is_approved:
        return True
    if principal is None:
        return False
    return principal.is_admin or service.is_owned_by(principal.id)


class CatalogService:
    def __init__(
        self,
        repo: CatalogRepositoryProtocol | None = None,
        media: MediaStore | None = None,
        cart_service: CartService | None = None,
    ) -> None:
        self._repo: CatalogRepositoryProtocol = repo or CatalogRepository()
        self._media: MediaStore = media or default_media_store()
        self._carts = cart_service or CartService()

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self, db: AsyncSession) -> list[CategoryResponse]:
        return [CategoryResponse.from_domain(c) for c in await self._repo.list_categories(db)]

    async def get_category(self, db: AsyncSession, category_id: str) -> CategoryResponse:
        category = await self._repo.get_category(db, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return CategoryResponse.from_domain(category)

    async def create_category(
        self, db: AsyncSession, body: CategoryCreate
    ) -> CategoryResponse:
        category = Category(id=generate_id(), name=body.name, description=body.description)
        try:
            created = await self._repo.insert_category(db, category)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CatalogNameExistsError(body.name) from None
        except Exception:
            await db.rollback()
            raise
        return CategoryResponse.from_domain(created)

    async def update_category(
        self, db: AsyncSession, category_id: str, body: CategoryUpdate
    ) -> CategoryResponse:
        try:
            updated = await self._repo.update_category(
                db, category_id, body.name, body.description
            )
            if updated is None:
                raise CategoryNotFoundError(category_id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CatalogNameExistsError(body.name or "") from None
        except Exception:
            await db.rollback()
            raise
        return CategoryResponse.from_domain(updated)

    async def delete_category(self, db: AsyncSession, category_id: str) -> None:
        """Delete a category and, by cascade, its subcategories."""
        try:
            if await self._repo.count_services(db, category_id, None) > 0:
                raise CatalogInUseError(f"category {category_id}")
            if not await self._repo.delete_category(db, category_id):
                raise CategoryNotFoundError(category_id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CatalogInUseError(f"category {category_id}") from None
        except Exception:
            await db.rollback()
            raise

    # ------------------------------------------------------------------
    # Subcategories
    # ------------------------------------------------------------------

    async def list_subcategories(
        self, db: AsyncSession, category_id: str | None
    ) -> list[SubcategoryResponse]:
        subs = await self._repo.list_subcategories(db, category_id)
        return [SubcategoryResponse.from_domain(s) for s in subs]

    async def get_subcategory(
        self, db: AsyncSession, subcategory_id: str
    ) -> SubcategoryResponse:
        sub = await self._repo.get_subcategory(db, subcategory_id)
        if sub is None:
            raise SubcategoryNotFoundError(subcategory_id)
        return SubcategoryResponse.from_domain(sub)

    async def create_subcategory(
        self, db: AsyncSession, body: SubcategoryCreate
    ) -> SubcategoryResponse:
        sub = Subcategory(
            id=generate_id(),
            category_id=body.category_id,
            name=body.name,
            description=body.description,
        )
        try:
            if await self._repo.get_category(db, body.category_id) is None:
                raise CategoryNotFoundError(body.category_id)
            created = await self._repo.insert_subcategory(db, sub)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CatalogNameExistsError(body.name) from None
        except Exception:
            await db.rollback()
            raise
        return SubcategoryResponse.from_domain(created)

    async def update_subcategory(
        self, db: AsyncSession, subcategory_id: str, body: SubcategoryUpdate
    ) -> SubcategoryResponse:
        try:
            updated = await self._repo.update_subcategory(
                db, subcategory_id, body.name, body.description
            )
            if updated is None:
                raise SubcategoryNotFoundError(subcategory_id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CatalogNameExistsError(body.name or "") from None
        except Exception:
            await db.rollback()
            raise
        return SubcategoryResponse.from_domain(updated)

    async def delete_subcategory(self, db: AsyncSession, subcategory_id: str) -> None:
        try:
            if await self._repo.count_services(db, None, subcategory_id) > 0:
                raise CatalogInUseError(f"subcategory {subcategory_id}")
            if not await self._repo.delete_subcategory(db, subcategory_id):
                raise SubcategoryNotFoundError(subcategory_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    async def _check_placement(
        self, db: AsyncSession, category_id: str, subcategory_id: str
    ) -> None:
        if await self._repo.get_category(db, category_id) is None:
            raise CategoryNotFoundError(category_id)
        sub = await self._repo.get_subcategory(db, subcategory_id)
        if sub is None:
            raise SubcategoryNotFoundError(subcategory_id)
        if sub.category_id != category_id:
            raise SubcategoryMismatchError(subcategory_id, category_id)

    async def _owned_service(
        self, db: AsyncSession, principal: Principal, service_id: str, allow_admin: bool
    ) -> Service:
        service = await self._repo.get_service(db, service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        if service.is_owned_by(principal.id):
            return service
        if allow_admin and principal.is_admin:
            return service
        raise NotServiceOwnerError(service_id)

    async def create_service(
        self, db: AsyncSession, freelancer_id: str, body: ServiceCreate
    ) -> ServiceResponse:
        """Create a service (unapproved) together with its initial add-ons."""
        service_id = generate_id()
        service = Service(
            id=service_id,
            freelancer_id=freelancer_id,
            category_id=body.category_id,
            subcategory_id=body.subcategory_id,
            title=body.title,
            description=body.description,
            price=body.price_cents,
            add_ons=[
                AddOn(
                    id=generate_id(),
                    service_id=service_id,
                    title=a.title,
                    duration_days=a.duration_days,
                    price=a.price_cents,
                )
                for a in body.add_ons
            ],
        )
        try:
            await self._check_placement(db, body.category_id, body.subcategory_id)
            created = await self._repo.insert_service(db, service)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Freelancer %s created service %s", freelancer_id, service_id)
        return ServiceResponse.from_domain(created)

    async def update_service(
        self, db: AsyncSession, principal: Principal, service_id: str, body: ServiceUpdate
    ) -> ServiceResponse:
        try:
            current = await self._owned_service(db, principal, service_id, allow_admin=False)
            if body.category_id is not None or body.subcategory_id is not None:
                await self._check_placement(
                    db,
                    body.category_id or current.category_id,
                    body.subcategory_id or current.subcategory_id,
                )
            fields = body.model_dump(exclude_none=True)
            if "price_cents" in fields:
                fields["price"] = fields.pop("price_cents")
            updated = await self._repo.update_service(db, service_id, fields)
            if updated is None:
                raise ServiceNotFoundError(service_id)
            if "price" in fields:
                repriced = await self._carts.reprice_carts_holding(db, service_id=service_id)
                logger.info("Service %s repriced; %d carts updated", service_id, repriced)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ServiceResponse.from_domain(updated)

    async def delete_service(
        self, db: AsyncSession, principal: Principal, service_id: str
    ) -> None:
        """Delete a service, its add-ons (cascade) and its stored image."""
        try:
            service = await self._owned_service(db, principal, service_id, allow_admin=True)
            if await self._repo.count_orders_for_service(db, service_id) > 0:
                raise CatalogInUseError(f"service {service_id} has orders")
            await self._repo.delete_service(db, service_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if service.image_url:
            await self._delete_media(service.image_url)

    async def toggle_approval(self, db: AsyncSession, service_id: str) -> ServiceResponse:
        try:
            service = await self._repo.get_service(db, service_id)
            if service is None:
                raise ServiceNotFoundError(service_id)
            updated = await self._repo.set_approval(db, service_id, not service.is_approved)
            if updated is None:
                raise ServiceNotFoundError(service_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Service %s approval -> %s", service_id, updated.is_approved)
        return ServiceResponse.from_domain(updated)

    async def upload_image(
        self,
        db: AsyncSession,
        principal: Principal,
        service_id: str,
        filename: str,
        content: bytes,
    ) -> ServiceResponse:
        service = await self._owned_service(db, principal, service_id, allow_admin=False)
        url = await self._media.store(filename, content, _MEDIA_FOLDER)
        try:
            updated = await self._repo.update_service(db, service_id, {"image_url": url})
            if updated is None:
                raise ServiceNotFoundError(service_id)
            await db.commit()
        except Exception:
            await db.rollback()
            await self._delete_media(url)
            raise
        if service.image_url and service.image_url != url:
            await self._delete_media(service.image_url)
        return ServiceResponse.from_domain(updated)

    async def _delete_media(self, url: str) -> None:
        try:
            await self._media.delete(url)
        except UpstreamError as exc:
            logger.warning("Orphaned media %s: %s", url, exc.message)

    async def list_services(
        self,
        db: AsyncSession,
        principal: Principal | None,
        category_id: str | None = None,
        subcategory_id: str | None = None,
        freelancer_id: str | None = None,
    ) -> list[ServiceResponse]:
        services = await self._repo.list_services(
            db, False, category_id, subcategory_id, freelancer_id
        )
        return [ServiceResponse.from_domain(s) for s in services if _can_see(s, principal)]

    async def get_service(
        self, db: AsyncSession, principal: Principal | None, service_id: str
    ) -> ServiceResponse:
        service = await self._repo.get_service(db, service_id)
        if service is None or not _can_see(service, principal):
            raise ServiceNotFoundError(service_id)
        return ServiceResponse.from_domain(service)

    async def grouped_services(
        self, db: AsyncSession, principal: Principal | None, key: str
    ) -> list[ServiceGroup]:
        """Visible services grouped by 'category' or 'subcategory' name."""
        services = await self._repo.list_services(db, False, None, None, None)
        visible = [s for s in services if _can_see(s, principal)]
        return [
            ServiceGroup(name=name, services=[ServiceResponse.from_domain(s) for s in group])
            for name, group in group_services(visible, key).items()
        ]

    # ------------------------------------------------------------------
    # Add-ons
    # ------------------------------------------------------------------

    async def create_add_on(
        self, db: AsyncSession, principal: Principal, service_id: str, body: AddOnCreate
    ) -> AddOnResponse:
        add_on = AddOn(
            id=generate_id(),
            service_id=service_id,
            title=body.title,
            duration_days=body.duration_days,
            price=body.price_cents,
        )
        try:
            await self._owned_service(db, principal, service_id, allow_admin=False)
            created = await self._repo.insert_add_on(db, add_on)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return AddOnResponse.from_domain(created)

    async def list_add_ons(
        self, db: AsyncSession, principal: Principal | None, service_id: str
    ) -> list[AddOnResponse]:
        service = await self._repo.get_service(db, service_id)
        if service is None or not _can_see(service, principal):
            raise ServiceNotFoundError(service_id)
        return [AddOnResponse.from_domain(a) for a in service.add_ons]

    async def _owned_add_on(
        self, db: AsyncSession, principal: Principal, add_on_id: str, allow_admin: bool
    ) -> AddOn:
        add_on = await self._repo.get_add_on(db, add_on_id)
        if add_on is None:
            raise AddOnNotFoundError(add_on_id)
        await self._owned_service(db, principal, add_on.service_id, allow_admin)
        return add_on

    async def update_add_on(
        self, db: AsyncSession, principal: Principal, add_on_id: str, body: AddOnUpdate
    ) -> AddOnResponse:
        try:
            await self._owned_add_on(db, principal, add_on_id, allow_admin=False)
            fields = body.model_dump(exclude_none=True)
            if "price_cents" in fields:
                fields["price"] = fields.pop("price_cents")
            updated = await self._repo.update_add_on(db, add_on_id, fields)
            if updated is None:
                raise AddOnNotFoundError(add_on_id)
            if "price" in fields:
                repriced = await self._carts.reprice_carts_holding(db, add_on_id=add_on_id)
                logger.info("Add-on %s repriced; %d carts updated", add_on_id, repriced)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return AddOnResponse.from_domain(updated)

    async def delete_add_on(
        self, db: AsyncSession, principal: Principal, add_on_id: str
    ) -> None:
        try:
            await self._owned_add_on(db, principal, add_on_id, allow_admin=True)
            if await self._repo.count_orders_for_add_on(db, add_on_id) > 0:
                raise CatalogInUseError(f"add-on {add_on_id} is selected by orders")
            await self._repo.delete_add_on(db, add_on_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
