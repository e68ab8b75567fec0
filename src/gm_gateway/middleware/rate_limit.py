"""Fixed-window rate limiting backed by Redis.

Rules:
  - Auth endpoints (/api/v1/auth/*): RATE_LIMIT_AUTH_PER_MINUTE req/min/IP
  - Everything else under /api/:      RATE_LIMIT_PER_MINUTE req/min/IP

Key pattern: "ratelimit:{client_ip}:{group}:{window}" with INCR + EXPIRE 60.
Redis failures fail open: the request proceeds and a warning is logged.
"""

import logging
import time
from collections.abc import Awaitable, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.gm_common.errors import RateLimitError
from src.gm_common.redis_client import get_redis
from src.gm_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    """Real client IP, honouring X-Forwarded-For set by a reverse proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def endpoint_group(path: str) -> str | None:
    if path.startswith("/api/v1/auth"):
        return "auth"
    if path.startswith("/api/"):
        return "api"
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis_factory: Callable[[], Awaitable[Redis]] = get_redis,
        limits: dict[str, int] | None = None,
    ) -> None:
        super().__init__(app)
        self._redis_factory = redis_factory
        self._limits = limits or {
            "auth": settings.RATE_LIMIT_AUTH_PER_MINUTE,
            "api": settings.RATE_LIMIT_PER_MINUTE,
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = endpoint_group(request.url.path)
        if group is None:
            return await call_next(request)

        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{client_ip(request)}:{group}:{window}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except (RedisError, OSError) as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self._limits[group]:
            err = RateLimitError()
            body = error_response(err.code, err.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            retry_after = _WINDOW_SECONDS - int(time.time()) % _WINDOW_SECONDS
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
