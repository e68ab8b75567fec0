"""Pydantic request/response schemas for gm_gateway.

All responses are wrapped in ApiResponse at the router layer.
"""

import re
from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.gm_common.datetime_utils import iso_or_none

_PHONE_PATTERN = r"^\+?[0-9]{7,15}$"


def check_password_complexity(v: str) -> str:
    """Enforce: at least one uppercase, one lowercase, one digit."""
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one digit")
    return v


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: str | None = Field(None, pattern=_PHONE_PATTERN)
    date_of_birth: date | None = None

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, pattern=_PHONE_PATTERN)
    date_of_birth: date | None = None


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r"^[0-9]{6}$")


class PasswordResetConfirm(OtpVerifyRequest):
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class VerificationRequest(BaseModel):
    verified: bool


class ActivationRequest(BaseModel):
    active: bool


class PrincipalInfo(BaseModel):
    """Profile of any principal kind; kind-specific fields are None elsewhere."""

    id: str
    role: str
    name: str
    email: str
    phone: str | None = None
    date_of_birth: str | None = None
    profile_picture: str | None = None
    is_active: bool = True
    is_verified: bool | None = None
    subscription_active: bool | None = None
    subscription_end_at: str | None = None
    created_at: str | None = None

    @classmethod
    def from_model(cls, model: object, role: str) -> "PrincipalInfo":
        dob = getattr(model, "date_of_birth", None)
        return cls(
            id=str(model.id),  # type: ignore[attr-defined]
            role=role,
            name=model.name,  # type: ignore[attr-defined]
            email=model.email,  # type: ignore[attr-defined]
            phone=model.phone,  # type: ignore[attr-defined]
            date_of_birth=dob.isoformat() if dob else None,
            profile_picture=getattr(model, "profile_picture", None),
            is_active=model.is_active,  # type: ignore[attr-defined]
            is_verified=getattr(model, "is_verified", None),
            subscription_active=getattr(model, "subscription_active", None),
            subscription_end_at=iso_or_none(getattr(model, "subscription_end_at", None)),
            created_at=iso_or_none(getattr(model, "created_at", None)),
        )


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 1800  # 30 minutes in seconds
    principal: PrincipalInfo


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int = 1800


class PublicProfile(BaseModel):
    """What anyone may see of a freelancer or influencer."""

    id: str
    role: str
    name: str
    profile_picture: str | None = None
    is_verified: bool | None = None
    created_at: str | None = None

    @classmethod
    def from_info(cls, info: PrincipalInfo) -> "PublicProfile":
        return cls(
            id=info.id,
            role=info.role,
            name=info.name,
            profile_picture=info.profile_picture,
            is_verified=info.is_verified,
            created_at=info.created_at,
        )
