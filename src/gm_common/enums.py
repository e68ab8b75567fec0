"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class PrincipalKind(str, Enum):
    """Role tag carried in the JWT and used to pick the identity table."""
    USER = "user"
    FREELANCER = "freelancer"
    INFLUENCER = "influencer"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TransactionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class TransactionType(str, Enum):
    USER_PAYMENT = "USER_PAYMENT"
    RETRY_USER_PAYMENT = "RETRY_USER_PAYMENT"
    FREELANCE_PAYMENT = "FREELANCE_PAYMENT"
    SUBSCRIPTION = "SUBSCRIPTION"


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYPAL = "paypal"
    VISA = "visa"


class WalletOwnerKind(str, Enum):
    FREELANCER = "FREELANCER"
    ADMIN = "ADMIN"  # the platform wallet


class SettlementMode(str, Enum):
    """How start/end of an order move money between wallets."""
    LEGACY = "LEGACY"
    ESCROW = "ESCROW"


class SubscriptionTier(str, Enum):
    BASIC = "Basic"
    PRO = "Pro"
    PREMIUM = "Premium"
