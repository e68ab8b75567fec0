"""Auth API router: register, login, refresh, me, profile management, password
recovery, account deletion and admin moderation.

The principal kind is a path segment (/auth/{kind}/...), so the four
identity stores share one set of endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import (
    get_current_principal,
    get_optional_principal,
    require_roles,
)
from src.gm_gateway.auth.principal import Principal
from src.gm_gateway.identity.schemas import (
    ActivationRequest,
    LoginRequest,
    LoginResponse,
    OtpVerifyRequest,
    PasswordChangeRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PrincipalInfo,
    ProfileUpdate,
    PublicProfile,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    VerificationRequest,
)
from src.gm_gateway.identity.service import IdentityService, is_self_or_admin

router = APIRouter(prefix="/auth", tags=["auth"])
_service = IdentityService()
_admin_only = require_roles(PrincipalKind.ADMIN)


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Refresh access token",
)
async def refresh_token(request: Request, body: RefreshRequest) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    return respond(request, data.model_dump(), "Token refreshed")


@router.get("/me", response_model=ApiResponse, summary="Current principal profile")
async def me(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    model = await _service.get_profile(db, principal)
    return respond(request, PrincipalInfo.from_model(model, principal.kind.value).model_dump())


@router.put("/me/password", response_model=ApiResponse, summary="Change own password")
async def change_password(
    request: Request,
    body: PasswordChangeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.change_password(db, principal, body)
    return respond(request, None, "Password updated successfully")


@router.post(
    "/{kind}/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="Register a user, freelancer, influencer or admin",
)
async def register(
    request: Request,
    kind: PrincipalKind,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    caller: Annotated[Principal | None, Depends(get_optional_principal)],
) -> ApiResponse:
    model = await _service.register(db, kind, body, caller)
    data = PrincipalInfo.from_model(model, kind.value)
    return respond(request, data.model_dump(), f"{kind.value.capitalize()} registered successfully")


@router.post(
    "/{kind}/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Login",
)
async def login(
    request: Request,
    kind: PrincipalKind,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    model, access_token, refresh_token = await _service.login(
        db, kind, body.email, body.password
    )
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="Bearer",
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        principal=PrincipalInfo.from_model(model, kind.value),
    )
    return respond(request, data.model_dump(), "Login successful")


@router.get("/{kind}", response_model=ApiResponse, summary="List principals (admin)")
async def list_principals(
    request: Request,
    kind: PrincipalKind,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    models = await _service.list_principals(db, kind, limit, offset)
    items = [PrincipalInfo.from_model(m, kind.value).model_dump() for m in models]
    return respond(request, {"items": items})


@router.put("/{kind}/{principal_id}/verification", response_model=ApiResponse)
async def set_verification(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    body: VerificationRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    model = await _service.set_verified(db, kind, principal_id, body.verified)
    return respond(request, PrincipalInfo.from_model(model, kind.value).model_dump())


@router.put("/{kind}/{principal_id}/activation", response_model=ApiResponse)
async def set_activation(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    body: ActivationRequest,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    model = await _service.set_active(db, kind, principal_id, body.active)
    return respond(request, PrincipalInfo.from_model(model, kind.value).model_dump())


@router.post(
    "/{kind}/password-reset",
    response_model=ApiResponse,
    summary="Mail a one-time password reset code",
)
async def request_password_reset(
    request: Request,
    kind: PrincipalKind,
    body: PasswordResetRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.request_password_reset(db, kind, body.email)
    return respond(request, None, "If the account exists, a reset code has been sent")


@router.post("/{kind}/password-reset/verify", response_model=ApiResponse)
async def verify_reset_code(
    request: Request,
    kind: PrincipalKind,
    body: OtpVerifyRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.verify_reset_code(db, kind, body.email, body.otp)
    return respond(request, None, "Reset code is valid")


@router.post("/{kind}/password-reset/confirm", response_model=ApiResponse)
async def reset_password(
    request: Request,
    kind: PrincipalKind,
    body: PasswordResetConfirm,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.reset_password(db, kind, body)
    return respond(request, None, "Password updated successfully")


@router.get("/{kind}/{principal_id}", response_model=ApiResponse, summary="Get a principal")
async def get_principal(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    caller: Annotated[Principal | None, Depends(get_optional_principal)],
) -> ApiResponse:
    model = await _service.get_by_id(db, caller, kind, principal_id)
    info = PrincipalInfo.from_model(model, kind.value)
    if is_self_or_admin(caller, kind, principal_id):
        return respond(request, info.model_dump())
    return respond(request, PublicProfile.from_info(info).model_dump())


@router.put("/{kind}/{principal_id}", response_model=ApiResponse, summary="Update a profile")
async def update_profile(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    body: ProfileUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    model = await _service.update_profile(db, principal, kind, principal_id, body)
    data = PrincipalInfo.from_model(model, kind.value)
    return respond(request, data.model_dump(), "Profile updated successfully")


@router.put("/{kind}/{principal_id}/picture", response_model=ApiResponse)
async def upload_profile_picture(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    image: UploadFile = File(...),
) -> ApiResponse:
    content = await image.read()
    model = await _service.set_profile_picture(
        db, principal, kind, principal_id, image.filename or "upload", content
    )
    data = PrincipalInfo.from_model(model, kind.value)
    return respond(request, data.model_dump(), "Profile picture updated")


@router.delete("/{kind}/{principal_id}", response_model=ApiResponse, summary="Delete (admin)")
async def delete_account(
    request: Request,
    kind: PrincipalKind,
    principal_id: str,
    principal: Annotated[Principal, Depends(_admin_only)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete_account(db, principal, kind, principal_id)
    return respond(request, None, f"{kind.value.capitalize()} deleted successfully")
