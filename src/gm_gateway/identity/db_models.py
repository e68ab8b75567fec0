"""SQLAlchemy ORM models for the four identity tables.

Tables are created by Alembic migrations 002_create_identities.py and
010_create_password_resets.py.
The identity tables share their credential columns; Freelancer and Influencer
add verification and subscription state.

IDENTITY_MODELS is the static dispatch table PrincipalKind -> model used by
token validation, login and author joins.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from src.gm_common.database import Base
from src.gm_common.enums import PrincipalKind


class _CredentialColumns:
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )


class _ProfileColumns(_CredentialColumns):
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(Text, nullable=True)


class UserModel(_ProfileColumns, Base):
    __tablename__ = "users"


class FreelancerModel(_ProfileColumns, Base):
    __tablename__ = "freelancers"

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class InfluencerModel(_ProfileColumns, Base):
    __tablename__ = "influencers"

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subscription_plan_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subscription_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subscription_start_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AdminModel(_CredentialColumns, Base):
    __tablename__ = "admins"


IdentityModel = UserModel | FreelancerModel | InfluencerModel | AdminModel

IDENTITY_MODELS: dict[PrincipalKind, type[IdentityModel]] = {
    PrincipalKind.USER: UserModel,
    PrincipalKind.FREELANCER: FreelancerModel,
    PrincipalKind.INFLUENCER: InfluencerModel,
    PrincipalKind.ADMIN: AdminModel,
}


class PasswordResetModel(Base):
    """Pending password reset: bcrypt hash of a one-time code, per principal."""

    __tablename__ = "password_resets"
    __table_args__ = (
        UniqueConstraint("principal_kind", "principal_id", name="uq_password_resets_principal"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    principal_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    principal_id: Mapped[str] = mapped_column(String(64), nullable=False)
    otp_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
