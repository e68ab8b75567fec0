"""CatalogRepository — raw SQL over categories, subcategories, services, add_ons.

Referential rules live in the schema (migration 003): deleting a category
cascades to its subcategories, deleting a service cascades to its add-ons,
and services hold RESTRICT references to their category and subcategory.
"""

from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.domain.models import AddOn, Category, Service, Subcategory
from src.gm_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: categories / subcategories
# ---------------------------------------------------------------------------

_CATEGORY_COLUMNS = "id, name, description, created_at"
_SUBCATEGORY_COLUMNS = "id, category_id, name, description, created_at"

_LIST_CATEGORIES_SQL = text(f"SELECT {_CATEGORY_COLUMNS} FROM categories ORDER BY name")

_GET_CATEGORY_SQL = text(f"SELECT {_CATEGORY_COLUMNS} FROM categories WHERE id = :id")

_INSERT_CATEGORY_SQL = text(f"""
    INSERT INTO categories (id, name, description)
    VALUES (:id, :name, :description)
    RETURNING {_CATEGORY_COLUMNS}
""")

_UPDATE_CATEGORY_SQL = text(f"""
    UPDATE categories
    SET name = COALESCE(:name, name),
        description = COALESCE(:description, description),
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_CATEGORY_COLUMNS}
""")

_DELETE_CATEGORY_SQL = text("DELETE FROM categories WHERE id = :id RETURNING id")

_LIST_SUBCATEGORIES_SQL = text(f"""
    SELECT {_SUBCATEGORY_COLUMNS} FROM subcategories
    WHERE (CAST(:category_id AS VARCHAR) IS NULL OR category_id = :category_id)
    ORDER BY name
""")

_GET_SUBCATEGORY_SQL = text(f"SELECT {_SUBCATEGORY_COLUMNS} FROM subcategories WHERE id = :id")

_INSERT_SUBCATEGORY_SQL = text(f"""
    INSERT INTO subcategories (id, category_id, name, description)
    VALUES (:id, :category_id, :name, :description)
    RETURNING {_SUBCATEGORY_COLUMNS}
""")

_UPDATE_SUBCATEGORY_SQL = text(f"""
    UPDATE subcategories
    SET name = COALESCE(:name, name),
        description = COALESCE(:description, description),
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_SUBCATEGORY_COLUMNS}
""")

_DELETE_SUBCATEGORY_SQL = text("DELETE FROM subcategories WHERE id = :id RETURNING id")

_COUNT_SERVICES_SQL = text("""
    SELECT COUNT(*) FROM services
    WHERE (CAST(:category_id AS VARCHAR) IS NULL OR category_id = :category_id)
      AND (CAST(:subcategory_id AS VARCHAR) IS NULL OR subcategory_id = :subcategory_id)
""")

# ---------------------------------------------------------------------------
# SQL: services / add-ons
# ---------------------------------------------------------------------------

_SERVICE_SELECT = """
    SELECT s.id, s.freelancer_id, s.category_id, s.subcategory_id, s.title,
           s.description, s.price, s.image_url, s.is_approved,
           s.created_at, s.updated_at,
           c.name AS category_name, sc.name AS subcategory_name
    FROM services s
    JOIN categories c     ON c.id = s.category_id
    JOIN subcategories sc ON sc.id = s.subcategory_id
"""

_GET_SERVICE_SQL = text(_SERVICE_SELECT + " WHERE s.id = :id")

_LIST_SERVICES_SQL = text(_SERVICE_SELECT + """
    WHERE (NOT :approved_only OR s.is_approved)
      AND (CAST(:category_id AS VARCHAR) IS NULL OR s.category_id = :category_id)
      AND (CAST(:subcategory_id AS VARCHAR) IS NULL OR s.subcategory_id = :subcategory_id)
      AND (CAST(:freelancer_id AS VARCHAR) IS NULL OR s.freelancer_id = :freelancer_id)
    ORDER BY s.created_at DESC, s.id DESC
""")

_INSERT_SERVICE_SQL = text("""
    INSERT INTO services
        (id, freelancer_id, category_id, subcategory_id, title, description,
         price, image_url, is_approved)
    VALUES
        (:id, :freelancer_id, :category_id, :subcategory_id, :title, :description,
         :price, :image_url, :is_approved)
""")

_UPDATE_SERVICE_SQL = text("""
    UPDATE services
    SET title          = COALESCE(:title, title),
        description    = COALESCE(:description, description),
        price          = COALESCE(:price, price),
        category_id    = COALESCE(:category_id, category_id),
        subcategory_id = COALESCE(:subcategory_id, subcategory_id),
        image_url      = COALESCE(:image_url, image_url),
        updated_at     = NOW()
    WHERE id = :id
    RETURNING id
""")

_SERVICE_UPDATABLE = (
    "title", "description", "price", "category_id", "subcategory_id", "image_url"
)

_SET_APPROVAL_SQL = text("""
    UPDATE services SET is_approved = :approved, updated_at = NOW()
    WHERE id = :id
    RETURNING id
""")

_DELETE_SERVICE_SQL = text("DELETE FROM services WHERE id = :id RETURNING id")

_COUNT_SERVICE_ORDERS_SQL = text("SELECT COUNT(*) FROM orders WHERE service_id = :id")

_ADD_ON_COLUMNS = "id, service_id, title, duration_days, price, created_at"

_INSERT_ADD_ON_SQL = text(f"""
    INSERT INTO add_ons (id, service_id, title, duration_days, price)
    VALUES (:id, :service_id, :title, :duration_days, :price)
    RETURNING {_ADD_ON_COLUMNS}
""")

_GET_ADD_ON_SQL = text(f"SELECT {_ADD_ON_COLUMNS} FROM add_ons WHERE id = :id")

_GET_ADD_ONS_SQL = text(
    f"SELECT {_ADD_ON_COLUMNS} FROM add_ons WHERE id IN :ids"
).bindparams(bindparam("ids", expanding=True))

_LIST_ADD_ONS_FOR_SERVICES_SQL = text(
    f"SELECT {_ADD_ON_COLUMNS} FROM add_ons WHERE service_id IN :service_ids "
    "ORDER BY created_at, id"
).bindparams(bindparam("service_ids", expanding=True))

_UPDATE_ADD_ON_SQL = text(f"""
    UPDATE add_ons
    SET title         = COALESCE(:title, title),
        duration_days = COALESCE(:duration_days, duration_days),
        price         = COALESCE(:price, price),
        updated_at    = NOW()
    WHERE id = :id
    RETURNING {_ADD_ON_COLUMNS}
""")

_DELETE_ADD_ON_SQL = text("DELETE FROM add_ons WHERE id = :id RETURNING id")

_COUNT_ADD_ON_ORDERS_SQL = text(
    "SELECT COUNT(*) FROM order_add_ons WHERE add_on_id = :id"
)


def _row_to_category(row: Any) -> Category:
    return Category(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )


def _row_to_subcategory(row: Any) -> Subcategory:
    return Subcategory(
        id=row.id,
        category_id=row.category_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )


def _row_to_add_on(row: Any) -> AddOn:
    return AddOn(
        id=row.id,
        service_id=row.service_id,
        title=row.title,
        duration_days=row.duration_days,
        price=row.price,
        created_at=row.created_at,
    )


def _row_to_service(row: Any, add_ons: list[AddOn]) -> Service:
    return Service(
        id=row.id,
        freelancer_id=row.freelancer_id,
        category_id=row.category_id,
        subcategory_id=row.subcategory_id,
        title=row.title,
        description=row.description,
        price=row.price,
        image_url=row.image_url,
        is_approved=row.is_approved,
        add_ons=add_ons,
        category_name=row.category_name,
        subcategory_name=row.subcategory_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class CatalogRepository:
    # --- categories ---

    async def list_categories(self, db: AsyncSession) -> list[Category]:
        result = await db.execute(_LIST_CATEGORIES_SQL)
        return [_row_to_category(r) for r in result.fetchall()]

    async def get_category(self, db: AsyncSession, category_id: str) -> Category | None:
        row = (await db.execute(_GET_CATEGORY_SQL, {"id": category_id})).fetchone()
        return _row_to_category(row) if row else None

    async def insert_category(self, db: AsyncSession, category: Category) -> Category:
        result = await db.execute(
            _INSERT_CATEGORY_SQL,
            {"id": category.id, "name": category.name, "description": category.description},
        )
        return _row_to_category(result.fetchone())

    async def update_category(
        self, db: AsyncSession, category_id: str, name: str | None, description: str | None
    ) -> Category | None:
        result = await db.execute(
            _UPDATE_CATEGORY_SQL,
            {"id": category_id, "name": name, "description": description},
        )
        row = result.fetchone()
        return _row_to_category(row) if row else None

    async def delete_category(self, db: AsyncSession, category_id: str) -> bool:
        result = await db.execute(_DELETE_CATEGORY_SQL, {"id": category_id})
        return result.fetchone() is not None

    # --- subcategories ---

    async def list_subcategories(
        self, db: AsyncSession, category_id: str | None
    ) -> list[Subcategory]:
        result = await db.execute(_LIST_SUBCATEGORIES_SQL, {"category_id": category_id})
        return [_row_to_subcategory(r) for r in result.fetchall()]

    async def get_subcategory(
        self, db: AsyncSession, subcategory_id: str
    ) -> Subcategory | None:
        row = (await db.execute(_GET_SUBCATEGORY_SQL, {"id": subcategory_id})).fetchone()
        return _row_to_subcategory(row) if row else None

    async def insert_subcategory(
        self, db: AsyncSession, subcategory: Subcategory
    ) -> Subcategory:
        result = await db.execute(
            _INSERT_SUBCATEGORY_SQL,
            {
                "id": subcategory.id,
                "category_id": subcategory.category_id,
                "name": subcategory.name,
                "description": subcategory.description,
            },
        )
        return _row_to_subcategory(result.fetchone())

    async def update_subcategory(
        self, db: AsyncSession, subcategory_id: str, name: str | None, description: str | None
    ) -> Subcategory | None:
        result = await db.execute(
            _UPDATE_SUBCATEGORY_SQL,
            {"id": subcategory_id, "name": name, "description": description},
        )
        row = result.fetchone()
        return _row_to_subcategory(row) if row else None

    async def delete_subcategory(self, db: AsyncSession, subcategory_id: str) -> bool:
        result = await db.execute(_DELETE_SUBCATEGORY_SQL, {"id": subcategory_id})
        return result.fetchone() is not None

    async def count_services(
        self, db: AsyncSession, category_id: str | None, subcategory_id: str | None
    ) -> int:
        result = await db.execute(
            _COUNT_SERVICES_SQL,
            {"category_id": category_id, "subcategory_id": subcategory_id},
        )
        return int(result.scalar_one())

    # --- services ---

    async def _add_ons_by_service(
        self, db: AsyncSession, service_ids: list[str]
    ) -> dict[str, list[AddOn]]:
        grouped: dict[str, list[AddOn]] = {sid: [] for sid in service_ids}
        if not service_ids:
            return grouped
        result = await db.execute(_LIST_ADD_ONS_FOR_SERVICES_SQL, {"service_ids": service_ids})
        for row in result.fetchall():
            grouped[row.service_id].append(_row_to_add_on(row))
        return grouped

    async def insert_service(self, db: AsyncSession, service: Service) -> Service:
        await db.execute(
            _INSERT_SERVICE_SQL,
            {
                "id": service.id,
                "freelancer_id": service.freelancer_id,
                "category_id": service.category_id,
                "subcategory_id": service.subcategory_id,
                "title": service.title,
                "description": service.description,
                "price": service.price,
                "image_url": service.image_url,
                "is_approved": service.is_approved,
            },
        )
        for add_on in service.add_ons:
            await self.insert_add_on(db, add_on)
        created = await self.get_service(db, service.id)
        if created is None:
            raise InternalError(f"Service {service.id} vanished after insert")
        return created

    async def get_service(self, db: AsyncSession, service_id: str) -> Service | None:
        row = (await db.execute(_GET_SERVICE_SQL, {"id": service_id})).fetchone()
        if row is None:
            return None
        add_ons = await self._add_ons_by_service(db, [row.id])
        return _row_to_service(row, add_ons[row.id])

    async def list_services(
        self,
        db: AsyncSession,
        approved_only: bool,
        category_id: str | None,
        subcategory_id: str | None,
        freelancer_id: str | None,
    ) -> list[Service]:
        result = await db.execute(
            _LIST_SERVICES_SQL,
            {
                "approved_only": approved_only,
                "category_id": category_id,
                "subcategory_id": subcategory_id,
                "freelancer_id": freelancer_id,
            },
        )
        rows = result.fetchall()
        add_ons = await self._add_ons_by_service(db, [r.id for r in rows])
        return [_row_to_service(r, add_ons[r.id]) for r in rows]

    async def update_service(
        self, db: AsyncSession, service_id: str, fields: dict[str, Any]
    ) -> Service | None:
        params = {name: fields.get(name) for name in _SERVICE_UPDATABLE}
        params["id"] = service_id
        row = (await db.execute(_UPDATE_SERVICE_SQL, params)).fetchone()
        if row is None:
            return None
        return await self.get_service(db, service_id)

    async def set_approval(
        self, db: AsyncSession, service_id: str, approved: bool
    ) -> Service | None:
        row = (
            await db.execute(_SET_APPROVAL_SQL, {"id": service_id, "approved": approved})
        ).fetchone()
        if row is None:
            return None
        return await self.get_service(db, service_id)

    async def delete_service(self, db: AsyncSession, service_id: str) -> bool:
        result = await db.execute(_DELETE_SERVICE_SQL, {"id": service_id})
        return result.fetchone() is not None

    async def count_orders_for_service(self, db: AsyncSession, service_id: str) -> int:
        result = await db.execute(_COUNT_SERVICE_ORDERS_SQL, {"id": service_id})
        return int(result.scalar_one())

    # --- add-ons ---

    async def insert_add_on(self, db: AsyncSession, add_on: AddOn) -> AddOn:
        result = await db.execute(
            _INSERT_ADD_ON_SQL,
            {
                "id": add_on.id,
                "service_id": add_on.service_id,
                "title": add_on.title,
                "duration_days": add_on.duration_days,
                "price": add_on.price,
            },
        )
        return _row_to_add_on(result.fetchone())

    async def get_add_on(self, db: AsyncSession, add_on_id: str) -> AddOn | None:
        row = (await db.execute(_GET_ADD_ON_SQL, {"id": add_on_id})).fetchone()
        return _row_to_add_on(row) if row else None

    async def get_add_ons(self, db: AsyncSession, add_on_ids: list[str]) -> list[AddOn]:
        if not add_on_ids:
            return []
        result = await db.execute(_GET_ADD_ONS_SQL, {"ids": add_on_ids})
        return [_row_to_add_on(r) for r in result.fetchall()]

    async def list_add_ons(self, db: AsyncSession, service_id: str) -> list[AddOn]:
        return (await self._add_ons_by_service(db, [service_id]))[service_id]

    async def update_add_on(
        self, db: AsyncSession, add_on_id: str, fields: dict[str, Any]
    ) -> AddOn | None:
        result = await db.execute(
            _UPDATE_ADD_ON_SQL,
            {
                "id": add_on_id,
                "title": fields.get("title"),
                "duration_days": fields.get("duration_days"),
                "price": fields.get("price"),
            },
        )
        row = result.fetchone()
        return _row_to_add_on(row) if row else None

    async def delete_add_on(self, db: AsyncSession, add_on_id: str) -> bool:
        result = await db.execute(_DELETE_ADD_ON_SQL, {"id": add_on_id})
        return result.fetchone() is not None

    async def count_orders_for_add_on(self, db: AsyncSession, add_on_id: str) -> int:
        result = await db.execute(_COUNT_ADD_ON_ORDERS_SQL, {"id": add_on_id})
        return int(result.scalar_one())
