"""Unit tests for CatalogService (mocked repository and media store)."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.gm_catalog.application.schemas import (
    AddOnCreate,
    AddOnUpdate,
    CategoryCreate,
    ServiceCreate,
    ServiceUpdate,
)
from src.gm_catalog.application.service import CatalogService
from src.gm_catalog.domain.models import AddOn, Category, Service, Subcategory, group_services
from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import (
    CatalogInUseError,
    CatalogNameExistsError,
    NotServiceOwnerError,
    ServiceNotFoundError,
    SubcategoryMismatchError,
    UpstreamError,
)
from src.gm_gateway.auth.principal import Principal

OWNER = Principal(id="fl-1", kind=PrincipalKind.FREELANCER)
OTHER = Principal(id="fl-2", kind=PrincipalKind.FREELANCER)
ADMIN = Principal(id="adm-1", kind=PrincipalKind.ADMIN)


def _service(approved: bool = True, **kw: object) -> Service:
    fields: dict = {
        "id": "svc-1",
        "freelancer_id": "fl-1",
        "category_id": "cat-1",
        "subcategory_id": "sub-1",
        "title": "Logo design",
        "description": "Vector logo",
        "price": 10000,
        "is_approved": approved,
    }
    fields.update(kw)
    return Service(**fields)


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def media() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def carts() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repo: AsyncMock, media: AsyncMock, carts: AsyncMock) -> CatalogService:
    return CatalogService(repo, media, carts)


class TestCategories:
    async def test_duplicate_name_is_conflict(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.insert_category.side_effect = IntegrityError("INSERT", {}, Exception("dup"))

        with pytest.raises(CatalogNameExistsError):
            await service.create_category(mock_db, CategoryCreate(name="Design"))
        mock_db.rollback.assert_awaited_once()

    async def test_create(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.insert_category.side_effect = lambda db, c: c

        resp = await service.create_category(mock_db, CategoryCreate(name="Design"))

        assert resp.name == "Design"
        mock_db.commit.assert_awaited_once()

    async def test_category_with_services_cannot_be_deleted(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.count_services.return_value = 3

        with pytest.raises(CatalogInUseError):
            await service.delete_category(mock_db, "cat-1")
        repo.delete_category.assert_not_awaited()


class TestServices:
    async def test_create_checks_subcategory_belongs_to_category(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_category.return_value = Category(id="cat-1", name="Design")
        repo.get_subcategory.return_value = Subcategory(
            id="sub-9", category_id="cat-other", name="Video"
        )
        body = ServiceCreate(
            title="Logo design",
            description="Vector logo",
            price_cents=10000,
            category_id="cat-1",
            subcategory_id="sub-9",
        )

        with pytest.raises(SubcategoryMismatchError):
            await service.create_service(mock_db, "fl-1", body)
        repo.insert_service.assert_not_awaited()

    async def test_create_starts_unapproved_with_add_ons(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_category.return_value = Category(id="cat-1", name="Design")
        repo.get_subcategory.return_value = Subcategory(
            id="sub-1", category_id="cat-1", name="Logos"
        )
        repo.insert_service.side_effect = lambda db, s: s
        body = ServiceCreate(
            title="Logo design",
            description="Vector logo",
            price_cents=10000,
            category_id="cat-1",
            subcategory_id="sub-1",
            add_ons=[AddOnCreate(title="Express", duration_days=1, price_cents=2000)],
        )

        resp = await service.create_service(mock_db, "fl-1", body)

        assert resp.is_approved is False
        assert resp.freelancer_id == "fl-1"
        assert [a.price_cents for a in resp.add_ons] == [2000]
        assert resp.add_ons[0].service_id == resp.id

    async def test_only_owner_updates(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service()

        with pytest.raises(NotServiceOwnerError):
            await service.update_service(mock_db, OTHER, "svc-1", ServiceUpdate(price_cents=1))

    async def test_update_maps_price_field(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service()
        repo.update_service.return_value = _service(price=12000)

        resp = await service.update_service(
            mock_db, OWNER, "svc-1", ServiceUpdate(price_cents=12000)
        )

        repo.update_service.assert_awaited_once_with(mock_db, "svc-1", {"price": 12000})
        assert resp.price_cents == 12000

    async def test_price_change_reprices_carts_in_same_transaction(
        self,
        service: CatalogService,
        repo: AsyncMock,
        carts: AsyncMock,
        mock_db: AsyncMock,
    ) -> None:
        repo.get_service.return_value = _service()
        repo.update_service.return_value = _service(price=12000)
        committed_before: list[int] = []

        async def reprice(db: AsyncMock, **_: object) -> int:
            committed_before.append(mock_db.commit.await_count)
            return 3

        carts.reprice_carts_holding.side_effect = reprice

        await service.update_service(mock_db, OWNER, "svc-1", ServiceUpdate(price_cents=12000))

        carts.reprice_carts_holding.assert_awaited_once_with(mock_db, service_id="svc-1")
        assert committed_before == [0]
        mock_db.commit.assert_awaited_once()

    async def test_title_change_leaves_carts_alone(
        self,
        service: CatalogService,
        repo: AsyncMock,
        carts: AsyncMock,
        mock_db: AsyncMock,
    ) -> None:
        repo.get_service.return_value = _service()
        repo.update_service.return_value = _service(title="Brand kit")

        await service.update_service(mock_db, OWNER, "svc-1", ServiceUpdate(title="Brand kit"))

        carts.reprice_carts_holding.assert_not_awaited()

    async def test_service_with_orders_cannot_be_deleted(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service()
        repo.count_orders_for_service.return_value = 1

        with pytest.raises(CatalogInUseError):
            await service.delete_service(mock_db, ADMIN, "svc-1")

    async def test_delete_removes_stored_image_after_commit(
        self, service: CatalogService, repo: AsyncMock, media: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service(image_url="/media/services/x.png")
        repo.count_orders_for_service.return_value = 0

        await service.delete_service(mock_db, OWNER, "svc-1")

        mock_db.commit.assert_awaited_once()
        media.delete.assert_awaited_once_with("/media/services/x.png")

    async def test_media_failure_after_commit_is_logged_not_raised(
        self, service: CatalogService, repo: AsyncMock, media: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service(image_url="/media/services/x.png")
        repo.count_orders_for_service.return_value = 0
        media.delete.side_effect = UpstreamError("media", "gone")

        await service.delete_service(mock_db, OWNER, "svc-1")

        mock_db.commit.assert_awaited_once()

    async def test_toggle_approval_flips(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service(approved=False)
        repo.set_approval.return_value = _service(approved=True)

        resp = await service.toggle_approval(mock_db, "svc-1")

        repo.set_approval.assert_awaited_once_with(mock_db, "svc-1", True)
        assert resp.is_approved is True


class TestVisibility:
    async def test_unapproved_hidden_from_anonymous_and_strangers(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service(approved=False)

        with pytest.raises(ServiceNotFoundError):
            await service.get_service(mock_db, None, "svc-1")
        with pytest.raises(ServiceNotFoundError):
            await service.get_service(mock_db, OTHER, "svc-1")

    async def test_owner_and_admin_see_unapproved(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_service.return_value = _service(approved=False)

        assert (await service.get_service(mock_db, OWNER, "svc-1")).id == "svc-1"
        assert (await service.get_service(mock_db, ADMIN, "svc-1")).id == "svc-1"

    async def test_listing_filters_unapproved(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.list_services.return_value = [
            _service(),
            _service(approved=False, id="svc-2"),
        ]

        resp = await service.list_services(mock_db, None)

        assert [s.id for s in resp] == ["svc-1"]

    def test_group_services_by_category_name(self) -> None:
        a = _service(id="a", category_name="Design")
        b = _service(id="b", category_name="Video")
        c = _service(id="c", category_name="Design")

        groups = group_services([a, b, c], "category")

        assert list(groups) == ["Design", "Video"]
        assert [s.id for s in groups["Design"]] == ["a", "c"]


class TestAddOns:
    async def test_add_on_selected_by_orders_cannot_be_deleted(
        self, service: CatalogService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_add_on.return_value = AddOn(
            id="a", service_id="svc-1", title="Express", duration_days=1, price=2000
        )
        repo.get_service.return_value = _service()
        repo.count_orders_for_add_on.return_value = 2

        with pytest.raises(CatalogInUseError):
            await service.delete_add_on(mock_db, OWNER, "a")
        repo.delete_add_on.assert_not_awaited()

    async def test_add_on_price_change_reprices_carts(
        self,
        service: CatalogService,
        repo: AsyncMock,
        carts: AsyncMock,
        mock_db: AsyncMock,
    ) -> None:
        add_on = AddOn(id="a", service_id="svc-1", title="Express", duration_days=1, price=2000)
        repo.get_add_on.return_value = add_on
        repo.get_service.return_value = _service()
        repo.update_add_on.return_value = AddOn(
            id="a", service_id="svc-1", title="Express", duration_days=1, price=2500
        )

        await service.update_add_on(mock_db, OWNER, "a", AddOnUpdate(price_cents=2500))

        repo.update_add_on.assert_awaited_once_with(mock_db, "a", {"price": 2500})
        carts.reprice_carts_holding.assert_awaited_once_with(mock_db, add_on_id="a")
        mock_db.commit.assert_awaited_once()
