"""Pydantic schemas for gm_subscription API."""

from pydantic import BaseModel, Field, field_validator

from src.gm_common.cents import cents_to_display
from src.gm_common.datetime_utils import iso_or_none
from src.gm_common.enums import PaymentMethod, SubscriptionTier, TransactionStatus
from src.gm_subscription.domain.models import Plan, Subscription
from src.gm_transaction.application.schemas import TransactionResponse


class PlanCreate(BaseModel):
    name: SubscriptionTier
    price_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=1000)
    features: list[str] = Field(default_factory=list, max_length=50)

    @field_validator("features")
    @classmethod
    def strip_features(cls, v: list[str]) -> list[str]:
        """Drop blank entries; the dashboard sends comma-split strings."""
        return [f.strip() for f in v if f.strip()]


class PlanUpdate(BaseModel):
    name: SubscriptionTier | None = None
    price_cents: int | None = Field(None, gt=0)
    description: str | None = Field(None, min_length=1, max_length=1000)
    features: list[str] | None = Field(None, max_length=50)

    @field_validator("features")
    @classmethod
    def strip_features(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [f.strip() for f in v if f.strip()]


class SubscribeRequest(BaseModel):
    payment_method: PaymentMethod
    status: TransactionStatus


class PlanResponse(BaseModel):
    id: str
    name: str
    price_cents: int
    price_display: str
    description: str | None
    features: list[str]
    created_at: str | None

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanResponse":
        return cls(
            id=plan.id,
            name=plan.name,
            price_cents=plan.price,
            price_display=cents_to_display(plan.price),
            description=plan.description,
            features=plan.features,
            created_at=iso_or_none(plan.created_at),
        )


class SubscriptionResponse(BaseModel):
    influencer_id: str
    plan_id: str | None
    plan_name: str | None = None
    active: bool
    start_at: str | None
    end_at: str | None

    @classmethod
    def from_subscription(
        cls, sub: Subscription, plan_name: str | None = None
    ) -> "SubscriptionResponse":
        return cls(
            influencer_id=sub.influencer_id,
            plan_id=sub.plan_id,
            plan_name=plan_name,
            active=sub.active,
            start_at=iso_or_none(sub.start_at),
            end_at=iso_or_none(sub.end_at),
        )


class SubscribeResponse(BaseModel):
    status: str
    plan: PlanResponse
    transaction: TransactionResponse
    subscription: SubscriptionResponse | None

    @property
    def payment_failed(self) -> bool:
        return self.status == TransactionStatus.FAILED
