"""Repository Protocol for plans and influencer subscription state."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_subscription.domain.models import Plan, Subscription


class SubscriptionRepositoryProtocol(Protocol):
    async def list_plans(self, db: AsyncSession) -> list[Plan]: ...

    async def get_plan(self, db: AsyncSession, plan_id: str) -> Plan | None: ...

    async def insert_plan(self, db: AsyncSession, plan: Plan) -> Plan: ...

    async def update_plan(
        self,
        db: AsyncSession,
        plan_id: str,
        name: str | None,
        price: int | None,
        description: str | None,
        features: list[str] | None,
    ) -> Plan | None: ...

    async def delete_plan(self, db: AsyncSession, plan_id: str) -> bool: ...

    async def get_subscription(
        self, db: AsyncSession, influencer_id: str
    ) -> Subscription | None: ...

    async def activate(
        self,
        db: AsyncSession,
        influencer_id: str,
        plan_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Subscription | None: ...

    async def expire_due(self, db: AsyncSession, now: datetime) -> int: ...
