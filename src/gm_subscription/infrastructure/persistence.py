"""SubscriptionRepository — raw SQL over subscription_plans and the
subscription columns of influencers (migration 008)."""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.errors import InternalError
from src.gm_subscription.domain.models import Plan, Subscription

_PLAN_COLUMNS = "id, name, price, description, features, created_at, updated_at"
_SUBSCRIPTION_COLUMNS = (
    "id, subscription_plan_id, subscription_active, "
    "subscription_start_at, subscription_end_at"
)

_LIST_PLANS_SQL = text(f"SELECT {_PLAN_COLUMNS} FROM subscription_plans ORDER BY price, name")

_GET_PLAN_SQL = text(f"SELECT {_PLAN_COLUMNS} FROM subscription_plans WHERE id = :id")

_INSERT_PLAN_SQL = text(f"""
    INSERT INTO subscription_plans (id, name, price, description, features)
    VALUES (:id, :name, :price, :description, CAST(:features AS TEXT[]))
    RETURNING {_PLAN_COLUMNS}
""")

_UPDATE_PLAN_SQL = text(f"""
    UPDATE subscription_plans
    SET name = COALESCE(:name, name),
        price = COALESCE(:price, price),
        description = COALESCE(:description, description),
        features = COALESCE(CAST(:features AS TEXT[]), features),
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_PLAN_COLUMNS}
""")

_DELETE_PLAN_SQL = text("DELETE FROM subscription_plans WHERE id = :id RETURNING id")

_GET_SUBSCRIPTION_SQL = text(f"SELECT {_SUBSCRIPTION_COLUMNS} FROM influencers WHERE id = :id")

_ACTIVATE_SQL = text(f"""
    UPDATE influencers
    SET subscription_plan_id = :plan_id,
        subscription_active = TRUE,
        subscription_start_at = :start_at,
        subscription_end_at = :end_at,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_SUBSCRIPTION_COLUMNS}
""")

# Matches partial index idx_influencers_active_subscription_end.
_EXPIRE_DUE_SQL = text("""
    UPDATE influencers
    SET subscription_active = FALSE, updated_at = NOW()
    WHERE subscription_active = TRUE AND subscription_end_at < :now
    RETURNING id
""")


def _row_to_plan(row: Any) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        price=row.price,
        description=row.description,
        features=list(row.features or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_subscription(row: Any) -> Subscription:
    return Subscription(
        influencer_id=row.id,
        plan_id=row.subscription_plan_id,
        active=row.subscription_active,
        start_at=row.subscription_start_at,
        end_at=row.subscription_end_at,
    )


class SubscriptionRepository:
    async def list_plans(self, db: AsyncSession) -> list[Plan]:
        result = await db.execute(_LIST_PLANS_SQL)
        return [_row_to_plan(r) for r in result.fetchall()]

    async def get_plan(self, db: AsyncSession, plan_id: str) -> Plan | None:
        row = (await db.execute(_GET_PLAN_SQL, {"id": plan_id})).fetchone()
        return _row_to_plan(row) if row else None

    async def insert_plan(self, db: AsyncSession, plan: Plan) -> Plan:
        row = (
            await db.execute(
                _INSERT_PLAN_SQL,
                {
                    "id": plan.id,
                    "name": plan.name,
                    "price": plan.price,
                    "description": plan.description,
                    "features": plan.features,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Plan insert returned no row")
        return _row_to_plan(row)

    async def update_plan(
        self,
        db: AsyncSession,
        plan_id: str,
        name: str | None,
        price: int | None,
        description: str | None,
        features: list[str] | None,
    ) -> Plan | None:
        row = (
            await db.execute(
                _UPDATE_PLAN_SQL,
                {
                    "id": plan_id,
                    "name": name,
                    "price": price,
                    "description": description,
                    "features": features,
                },
            )
        ).fetchone()
        return _row_to_plan(row) if row else None

    async def delete_plan(self, db: AsyncSession, plan_id: str) -> bool:
        return (await db.execute(_DELETE_PLAN_SQL, {"id": plan_id})).fetchone() is not None

    async def get_subscription(
        self, db: AsyncSession, influencer_id: str
    ) -> Subscription | None:
        row = (await db.execute(_GET_SUBSCRIPTION_SQL, {"id": influencer_id})).fetchone()
        return _row_to_subscription(row) if row else None

    async def activate(
        self,
        db: AsyncSession,
        influencer_id: str,
        plan_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Subscription | None:
        row = (
            await db.execute(
                _ACTIVATE_SQL,
                {
                    "id": influencer_id,
                    "plan_id": plan_id,
                    "start_at": start_at,
                    "end_at": end_at,
                },
            )
        ).fetchone()
        return _row_to_subscription(row) if row else None

    async def expire_due(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(_EXPIRE_DUE_SQL, {"now": now})
        return len(result.fetchall())
