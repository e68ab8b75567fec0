"""SubscriptionService — influencer plans, subscribing, and the expiry sweep.

subscribe(status):
  failed  -> SUBSCRIPTION transaction recorded as failed, nothing else changes
  pending -> transaction recorded, subscription window opened
  success -> as pending, and the platform wallet is credited with the price
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_common.datetime_utils import days_from, utc_now
from src.gm_common.enums import PrincipalKind, TransactionStatus, TransactionType
from src.gm_common.errors import (
    PlanExistsError,
    PrincipalNotFoundError,
    SubscriptionPlanNotFoundError,
)
from src.gm_common.id_generator import generate_id
from src.gm_subscription.application.schemas import (
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    SubscribeResponse,
    SubscriptionResponse,
)
from src.gm_subscription.domain.models import Plan
from src.gm_subscription.domain.repository import SubscriptionRepositoryProtocol
from src.gm_subscription.infrastructure.persistence import SubscriptionRepository
from src.gm_transaction.application.schemas import TransactionResponse
from src.gm_transaction.domain.models import Transaction
from src.gm_transaction.domain.repository import TransactionRepositoryProtocol
from src.gm_transaction.infrastructure.persistence import TransactionRepository
from src.gm_wallet.application.movements import credit_platform
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class SubscriptionService:
    def __init__(
        self,
        repo: SubscriptionRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        period_days: int | None = None,
    ) -> None:
        self._repo: SubscriptionRepositoryProtocol = repo or SubscriptionRepository()
        self._txs: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._period_days = period_days or settings.SUBSCRIPTION_PERIOD_DAYS

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def list_plans(self, db: AsyncSession) -> list[PlanResponse]:
        return [PlanResponse.from_plan(p) for p in await self._repo.list_plans(db)]

    async def get_plan(self, db: AsyncSession, plan_id: str) -> PlanResponse:
        return PlanResponse.from_plan(await self._get_plan(db, plan_id))

    async def create_plan(self, db: AsyncSession, body: PlanCreate) -> PlanResponse:
        plan = Plan(
            id=generate_id(),
            name=body.name.value,
            price=body.price_cents,
            description=body.description,
            features=body.features,
        )
        try:
            created = await self._repo.insert_plan(db, plan)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise PlanExistsError(plan.name) from None
        except Exception:
            await db.rollback()
            raise
        return PlanResponse.from_plan(created)

    async def update_plan(
        self, db: AsyncSession, plan_id: str, body: PlanUpdate
    ) -> PlanResponse:
        name = body.name.value if body.name else None
        try:
            updated = await self._repo.update_plan(
                db, plan_id, name, body.price_cents, body.description, body.features
            )
            if updated is None:
                raise SubscriptionPlanNotFoundError(plan_id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise PlanExistsError(name or "") from None
        except Exception:
            await db.rollback()
            raise
        return PlanResponse.from_plan(updated)

    async def delete_plan(self, db: AsyncSession, plan_id: str) -> None:
        """Delete a plan. Subscribers keep their window; the plan reference is nulled."""
        try:
            if not await self._repo.delete_plan(db, plan_id):
                raise SubscriptionPlanNotFoundError(plan_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        db: AsyncSession,
        influencer_id: str,
        plan_id: str,
        payment_method: str,
        status: str,
    ) -> SubscribeResponse:
        subscription = None
        try:
            plan = await self._get_plan(db, plan_id)
            now = utc_now()
            tx = await self._txs.insert(
                db,
                Transaction(
                    id=generate_id(),
                    from_id=influencer_id,
                    from_kind=PrincipalKind.INFLUENCER.value,
                    to_id=PLATFORM_OWNER_ID,
                    to_kind=PrincipalKind.ADMIN.value,
                    type=TransactionType.SUBSCRIPTION.value,
                    amount=plan.price,
                    payment_method=payment_method,
                    status=status,
                    paid_at=now,
                ),
            )
            if status != TransactionStatus.FAILED:
                subscription = await self._repo.activate(
                    db, influencer_id, plan.id, now, days_from(now, self._period_days)
                )
                if subscription is None:
                    raise PrincipalNotFoundError(PrincipalKind.INFLUENCER.value, influencer_id)
                if status == TransactionStatus.SUCCESS:
                    await credit_platform(
                        self._wallets, db, plan.price, f"{plan.name} subscription by {influencer_id}"
                    )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Influencer %s subscribed to %s: amount=%d status=%s",
            influencer_id,
            plan.name,
            plan.price,
            status,
        )
        return SubscribeResponse(
            status=status,
            plan=PlanResponse.from_plan(plan),
            transaction=TransactionResponse.from_tx(tx),
            subscription=(
                SubscriptionResponse.from_subscription(subscription, plan.name)
                if subscription
                else None
            ),
        )

    async def get_my_subscription(
        self, db: AsyncSession, influencer_id: str
    ) -> SubscriptionResponse:
        subscription = await self._repo.get_subscription(db, influencer_id)
        if subscription is None:
            raise PrincipalNotFoundError(PrincipalKind.INFLUENCER.value, influencer_id)
        plan_name = None
        if subscription.plan_id:
            plan = await self._repo.get_plan(db, subscription.plan_id)
            plan_name = plan.name if plan else None
        return SubscriptionResponse.from_subscription(subscription, plan_name)

    async def sweep_expired_subscriptions(self, db: AsyncSession) -> int:
        """Deactivate every subscription whose end date has passed."""
        try:
            expired = await self._repo.expire_due(db, utc_now())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("%d influencer subscriptions expired and were deactivated", expired)
        return expired

    async def _get_plan(self, db: AsyncSession, plan_id: str) -> Plan:
        plan = await self._repo.get_plan(db, plan_id)
        if plan is None:
            raise SubscriptionPlanNotFoundError(plan_id)
        return plan
