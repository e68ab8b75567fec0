"""Identity service: register, login, refresh, profile, password recovery,
account deletion and admin moderation.

One service serves all four principal kinds; the kind selects the ORM model
through IDENTITY_MODELS. Write operations own their transaction
(commit on success, rollback and re-raise on failure).

Password recovery mails a six-digit code whose bcrypt hash is kept in
password_resets for OTP_TTL_MINUTES; OTP_MAX_ATTEMPTS wrong guesses burn it.
"""

import logging
import secrets
from datetime import date, timedelta

from sqlalchemy import Delete, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_common.collaborators import (
    Mailer,
    MediaStore,
    default_mailer,
    default_media_store,
    send_quietly,
)
from src.gm_common.datetime_utils import utc_now
from src.gm_common.enums import PrincipalKind, WalletOwnerKind
from src.gm_common.errors import (
    AccountDisabledError,
    AccountInUseError,
    EmailExistsError,
    ForbiddenError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    InvalidOtpError,
    PrincipalNotFoundError,
    RequestInvalidError,
    UnderageError,
    UpstreamError,
)
from src.gm_common.id_generator import generate_id
from src.gm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.gm_gateway.auth.password import hash_password, verify_password
from src.gm_gateway.auth.principal import Principal
from src.gm_gateway.identity.db_models import IDENTITY_MODELS, IdentityModel, PasswordResetModel
from src.gm_gateway.identity.schemas import (
    PasswordChangeRequest,
    PasswordResetConfirm,
    ProfileUpdate,
    RegisterRequest,
)
from src.gm_order.domain.repository import OrderRepositoryProtocol
from src.gm_order.infrastructure.persistence import OrderRepository
from src.gm_wallet.domain.repository import WalletRepositoryProtocol
from src.gm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)

MIN_AGE_YEARS = 16
_VERIFIABLE = (PrincipalKind.FREELANCER, PrincipalKind.INFLUENCER)
_PUBLIC_KINDS = (PrincipalKind.FREELANCER, PrincipalKind.INFLUENCER)
_AVATAR_FOLDER = "avatars"


def age_on(born: date, today: date) -> int:
    """Whole years between born and today."""
    before_birthday = (today.month, today.day) < (born.month, born.day)
    return today.year - born.year - int(before_birthday)


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def is_self_or_admin(caller: Principal | None, kind: PrincipalKind, principal_id: str) -> bool:
    if caller is None:
        return False
    return caller.is_admin or (caller.kind == kind and caller.id == principal_id)


def _require_self_or_admin(caller: Principal, kind: PrincipalKind, principal_id: str) -> None:
    if not is_self_or_admin(caller, kind, principal_id):
        raise ForbiddenError("You can only manage your own account")


class IdentityService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(
        self,
        wallet_repo: WalletRepositoryProtocol | None = None,
        mailer: Mailer | None = None,
        media: MediaStore | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._mailer: Mailer = mailer or default_mailer()
        self._media: MediaStore = media or default_media_store()
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()

    async def register(
        self,
        db: AsyncSession,
        kind: PrincipalKind,
        body: RegisterRequest,
        caller: Principal | None = None,
    ) -> IdentityModel:
        """Create a principal of the given kind.

        Registering a Freelancer also creates its wallet in the same
        transaction. Admins may only be created by an admin, except for the
        very first one.
        """
        if body.date_of_birth is not None:
            if age_on(body.date_of_birth, utc_now().date()) < MIN_AGE_YEARS:
                raise UnderageError(MIN_AGE_YEARS)

        model = IDENTITY_MODELS[kind]
        try:
            if kind == PrincipalKind.ADMIN:
                await self._check_admin_bootstrap(db, caller)

            # Email uniqueness is per kind (DB UNIQUE constraint is the final guard)
            result = await db.execute(select(model.id).where(model.email == body.email))
            if result.scalar_one_or_none() is not None:
                raise EmailExistsError(kind.value)

            fields: dict[str, object] = {
                "id": generate_id(),
                "name": body.name,
                "email": body.email,
                "password_hash": hash_password(body.password),
                "phone": body.phone,
                "is_active": True,
            }
            if kind != PrincipalKind.ADMIN:
                fields["date_of_birth"] = body.date_of_birth
            principal = model(**fields)
            db.add(principal)
            await db.flush()

            if kind == PrincipalKind.FREELANCER:
                await self._wallets.create_for_owner(
                    db, principal.id, WalletOwnerKind.FREELANCER.value
                )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise EmailExistsError(kind.value) from None
        except Exception:
            await db.rollback()
            raise

        logger.info("Registered %s %s", kind.value, principal.id)
        await send_quietly(
            self._mailer,
            body.email,
            "Welcome to Gig Market",
            f"Hi {body.name}, your {kind.value} account is ready.",
        )
        return principal

    async def _check_admin_bootstrap(
        self, db: AsyncSession, caller: Principal | None
    ) -> None:
        if caller is not None and caller.is_admin:
            return
        model = IDENTITY_MODELS[PrincipalKind.ADMIN]
        count = (await db.execute(select(func.count()).select_from(model))).scalar_one()
        if count > 0:
            raise ForbiddenError("Only an admin can register another admin")

    async def login(
        self,
        db: AsyncSession,
        kind: PrincipalKind,
        email: str,
        password: str,
    ) -> tuple[IdentityModel, str, str]:
        """Authenticate and return (principal, access_token, refresh_token).

        Unknown email and wrong password both raise InvalidCredentialsError.
        """
        model = IDENTITY_MODELS[kind]
        result = await db.execute(select(model).where(model.email == email))
        principal = result.scalar_one_or_none()

        if principal is None or not verify_password(password, principal.password_hash):
            raise InvalidCredentialsError()

        if not principal.is_active:
            raise AccountDisabledError()

        principal_id = str(principal.id)
        return (
            principal,
            create_access_token(principal_id, kind.value),
            create_refresh_token(principal_id, kind.value),
        )

    async def refresh(self, refresh_token: str) -> str:
        """Validate refresh token and return a new access token (same role)."""
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]), str(payload["role"]))

    async def get_profile(self, db: AsyncSession, principal: Principal) -> IdentityModel:
        return await self._get(db, principal.kind, principal.id)

    async def get_by_id(
        self,
        db: AsyncSession,
        caller: Principal | None,
        kind: PrincipalKind,
        principal_id: str,
    ) -> IdentityModel:
        """Freelancers and influencers are public; users and admins are not."""
        if kind not in _PUBLIC_KINDS and not is_self_or_admin(caller, kind, principal_id):
            raise ForbiddenError(f"Only an admin can look up a {kind.value}")
        return await self._get(db, kind, principal_id)

    async def update_profile(
        self,
        db: AsyncSession,
        caller: Principal,
        kind: PrincipalKind,
        principal_id: str,
        body: ProfileUpdate,
    ) -> IdentityModel:
        _require_self_or_admin(caller, kind, principal_id)
        fields = body.model_dump(exclude_none=True)
        if "date_of_birth" in fields:
            if kind == PrincipalKind.ADMIN:
                raise RequestInvalidError("admin accounts have no date of birth")
            if age_on(fields["date_of_birth"], utc_now().date()) < MIN_AGE_YEARS:
                raise UnderageError(MIN_AGE_YEARS)

        model = IDENTITY_MODELS[kind]
        try:
            principal = await self._get(db, kind, principal_id)
            email = fields.get("email")
            if email is not None and email != principal.email:
                result = await db.execute(
                    select(model.id).where(model.email == email, model.id != principal_id)
                )
                if result.scalar_one_or_none() is not None:
                    raise EmailExistsError(kind.value)
            for name, value in fields.items():
                setattr(principal, name, value)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise EmailExistsError(kind.value) from None
        except Exception:
            await db.rollback()
            raise
        logger.info("%s %s updated %s", kind.value, principal_id, sorted(fields))
        return principal

    async def set_profile_picture(
        self,
        db: AsyncSession,
        caller: Principal,
        kind: PrincipalKind,
        principal_id: str,
        filename: str,
        content: bytes,
    ) -> IdentityModel:
        """Store a new picture, then drop the previous one once committed."""
        _require_self_or_admin(caller, kind, principal_id)
        if kind == PrincipalKind.ADMIN:
            raise ForbiddenError("Admin accounts have no profile picture")
        principal = await self._get(db, kind, principal_id)
        previous = principal.profile_picture  # type: ignore[union-attr]
        url = await self._media.store(filename, content, _AVATAR_FOLDER)
        try:
            principal.profile_picture = url  # type: ignore[union-attr]
            await db.commit()
        except Exception:
            await db.rollback()
            await self._drop_media(url)
            raise
        if previous and previous != url:
            await self._drop_media(previous)
        return principal

    async def change_password(
        self, db: AsyncSession, principal: Principal, body: PasswordChangeRequest
    ) -> None:
        try:
            account = await self._get(db, principal.kind, principal.id)
            if not verify_password(body.current_password, account.password_hash):
                raise IncorrectPasswordError()
            account.password_hash = hash_password(body.new_password)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("%s %s changed password", principal.kind.value, principal.id)
        await send_quietly(
            self._mailer,
            account.email,
            "Your password was changed",
            f"Hi {account.name}, the password of your {principal.kind.value} account "
            "was just changed. If this was not you, reset it now.",
        )

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    async def request_password_reset(
        self, db: AsyncSession, kind: PrincipalKind, email: str
    ) -> None:
        """Mail a fresh reset code, replacing any earlier one.

        Unknown emails are accepted silently so the endpoint does not reveal
        which addresses have accounts. A mail failure raises UpstreamError.
        """
        model = IDENTITY_MODELS[kind]
        try:
            result = await db.execute(select(model).where(model.email == email))
            account = result.scalar_one_or_none()
            if account is None:
                logger.info("Password reset requested for unknown %s email", kind.value)
                return
            otp = generate_otp()
            await db.execute(_delete_resets(kind, account.id))
            db.add(
                PasswordResetModel(
                    id=generate_id(),
                    principal_kind=kind.value,
                    principal_id=account.id,
                    otp_hash=hash_password(otp),
                    attempts=0,
                    expires_at=utc_now() + timedelta(minutes=settings.OTP_TTL_MINUTES),
                )
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._mailer.send(
            email,
            "Your password reset code",
            f"Your Gig Market reset code is {otp}. "
            f"It expires in {settings.OTP_TTL_MINUTES} minutes.",
        )
        logger.info("Reset code sent to %s %s", kind.value, account.id)

    async def verify_reset_code(
        self, db: AsyncSession, kind: PrincipalKind, email: str, otp: str
    ) -> None:
        """Check a code without using it up (a wrong guess still counts)."""
        await self._redeem_reset_code(db, kind, email, otp, new_password=None)

    async def reset_password(
        self, db: AsyncSession, kind: PrincipalKind, body: PasswordResetConfirm
    ) -> None:
        account = await self._redeem_reset_code(
            db, kind, body.email, body.otp, new_password=body.new_password
        )
        logger.info("%s %s reset password", kind.value, account.id)

    async def _redeem_reset_code(
        self,
        db: AsyncSession,
        kind: PrincipalKind,
        email: str,
        otp: str,
        new_password: str | None,
    ) -> IdentityModel:
        model = IDENTITY_MODELS[kind]
        try:
            result = await db.execute(select(model).where(model.email == email))
            account = result.scalar_one_or_none()
            reset = None
            if account is not None:
                result = await db.execute(
                    select(PasswordResetModel)
                    .where(
                        PasswordResetModel.principal_kind == kind.value,
                        PasswordResetModel.principal_id == account.id,
                    )
                    .with_for_update()
                )
                reset = result.scalar_one_or_none()
            if account is None or reset is None:
                raise InvalidOtpError()

            if reset.expires_at <= utc_now():
                await db.delete(reset)
                await db.commit()
                raise InvalidOtpError()

            if not verify_password(otp, reset.otp_hash):
                reset.attempts += 1
                if reset.attempts >= settings.OTP_MAX_ATTEMPTS:
                    await db.delete(reset)
                await db.commit()
                raise InvalidOtpError()

            if new_password is not None:
                account.password_hash = hash_password(new_password)
                await db.delete(reset)
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        return account

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_account(
        self,
        db: AsyncSession,
        caller: Principal,
        kind: PrincipalKind,
        principal_id: str,
    ) -> None:
        """Delete an account that carries no money trail.

        A freelancer with orders or a non-zero wallet and a user with paid or
        started orders are refused. A freelancer's services and add-ons go with
        it (FK cascade), as do a user's PENDING orders and cart.
        """
        if kind == PrincipalKind.ADMIN and caller.id == principal_id:
            raise ForbiddenError("Admins cannot delete their own account")
        try:
            account = await self._get(db, kind, principal_id)
            if kind == PrincipalKind.FREELANCER:
                if await self._orders.count_for_freelancer(db, principal_id) > 0:
                    raise AccountInUseError("freelancer has orders")
                wallet = await self._wallets.get_by_owner(db, principal_id)
                if wallet is not None and wallet.balance != 0:
                    raise AccountInUseError("freelancer wallet balance is not zero")
                await self._wallets.delete_for_owner(db, principal_id)
            elif kind == PrincipalKind.USER:
                if await self._orders.count_paid_for_user(db, principal_id) > 0:
                    raise AccountInUseError("user has paid or started orders")
            await db.execute(_delete_resets(kind, principal_id))
            await db.delete(account)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("%s %s deleted by admin %s", kind.value, principal_id, caller.id)
        picture = getattr(account, "profile_picture", None)
        if picture:
            await self._drop_media(picture)

    async def _drop_media(self, url: str) -> None:
        try:
            await self._media.delete(url)
        except UpstreamError as exc:
            logger.warning("Orphaned media %s: %s", url, exc.message)

    async def list_principals(
        self, db: AsyncSession, kind: PrincipalKind, limit: int, offset: int
    ) -> list[IdentityModel]:
        model = IDENTITY_MODELS[kind]
        result = await db.execute(
            select(model).order_by(model.created_at, model.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def set_verified(
        self, db: AsyncSession, kind: PrincipalKind, principal_id: str, verified: bool
    ) -> IdentityModel:
        if kind not in _VERIFIABLE:
            raise ForbiddenError(f"{kind.value} accounts have no verification flag")
        try:
            principal = await self._get(db, kind, principal_id)
            principal.is_verified = verified  # type: ignore[union-attr]
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return principal

    async def set_active(
        self, db: AsyncSession, kind: PrincipalKind, principal_id: str, active: bool
    ) -> IdentityModel:
        try:
            principal = await self._get(db, kind, principal_id)
            principal.is_active = active
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("%s %s active=%s", kind.value, principal_id, active)
        return principal

    async def _get(
        self, db: AsyncSession, kind: PrincipalKind, principal_id: str
    ) -> IdentityModel:
        model = IDENTITY_MODELS[kind]
        result = await db.execute(select(model).where(model.id == principal_id))
        principal = result.scalar_one_or_none()
        if principal is None:
            raise PrincipalNotFoundError(kind.value, principal_id)
        return principal


def _delete_resets(kind: PrincipalKind, principal_id: str) -> Delete:
    return delete(PasswordResetModel).where(
        PasswordResetModel.principal_kind == kind.value,
        PasswordResetModel.principal_id == principal_id,
    )
