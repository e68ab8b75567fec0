"""FastAPI dependencies: get_current_principal, require_roles.

Usage in any protected router:
    from src.gm_gateway.auth.dependencies import require_roles

    @router.post("/things")
    async def create(principal: Principal = Depends(require_roles(PrincipalKind.ADMIN))):
        ...
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import AccountDisabledError, ForbiddenError, InvalidCredentialsError
from src.gm_gateway.auth.jwt_handler import decode_token
from src.gm_gateway.auth.principal import Principal
from src.gm_gateway.identity.db_models import IDENTITY_MODELS

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/user/login")
_optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/user/login", auto_error=False
)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def _resolve_principal(token: str, db: AsyncSession) -> Principal:
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    principal_id: str | None = payload.get("sub")
    try:
        kind = PrincipalKind(payload.get("role"))
    except ValueError:
        raise _CREDENTIALS_EXCEPTION from None
    if not principal_id:
        raise _CREDENTIALS_EXCEPTION

    model = IDENTITY_MODELS[kind]
    result = await db.execute(select(model.is_active).where(model.id == principal_id))
    is_active = result.scalar_one_or_none()
    if is_active is None:
        raise _CREDENTIALS_EXCEPTION
    if not is_active:
        raise AccountDisabledError()

    return Principal(id=principal_id, kind=kind)


async def get_current_principal(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Principal:
    """Validate the Bearer token against the identity table named by its role.

    Raises HTTP 401 if the token is missing, invalid, expired, or its
    principal no longer exists. Raises 403 if the account is disabled.
    """
    return await _resolve_principal(token, db)


async def get_optional_principal(
    token: str | None = Depends(_optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Principal | None:
    """Like get_current_principal, but anonymous callers yield None."""
    if not token:
        return None
    return await _resolve_principal(token, db)


def require_roles(
    *kinds: PrincipalKind,
) -> Callable[..., Awaitable[Principal]]:
    """Build a dependency that admits only the given principal kinds."""
    allowed = frozenset(kinds)

    async def _checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.kind not in allowed:
            raise ForbiddenError(
                f"Requires role: {', '.join(sorted(k.value for k in allowed))}"
            )
        return principal

    return _checker
