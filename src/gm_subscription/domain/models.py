"""Subscription domain models — plans and an influencer's subscription window."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Plan:
    id: str
    name: str  # SubscriptionTier value, unique
    price: int  # cents, > 0
    description: str | None = None
    features: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Subscription:
    influencer_id: str
    plan_id: str | None
    active: bool
    start_at: datetime | None
    end_at: datetime | None

    def is_expired(self, now: datetime) -> bool:
        return self.active and self.end_at is not None and self.end_at < now
