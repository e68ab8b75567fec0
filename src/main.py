"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.gm_admin.api.router import router as admin_router
from src.gm_cart.api.router import router as cart_router
from src.gm_catalog.api.category_router import router as category_router
from src.gm_catalog.api.service_router import router as service_router
from src.gm_common.database import engine
from src.gm_common.errors import AppError, InternalError, RequestInvalidError
from src.gm_common.redis_client import close_redis, get_redis
from src.gm_common.response import error_response
from src.gm_gateway.api.router import router as auth_router
from src.gm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.gm_gateway.middleware.request_log import RequestLogMiddleware
from src.gm_order.api.router import router as order_router
from src.gm_social.api.router import router as social_router
from src.gm_subscription.api.router import router as subscription_router
from src.gm_subscription.application.sweeper import run_expiry_sweeper
from src.gm_transaction.api.router import router as transaction_router
from src.gm_wallet.api.router import router as wallet_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gm")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the subscription sweeper. Shutdown: stop, dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    sweeper: asyncio.Task[None] | None = None
    if settings.SUBSCRIPTION_SWEEPER_ENABLED:
        sweeper = asyncio.create_task(
            run_expiry_sweeper(settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS)
        )
    logger.info("%s started (settlement=%s)", settings.APP_NAME, settings.SETTLEMENT_MODE)
    yield
    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Last added runs first: request ids exist before the rate limiter answers.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


def _error_json(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{where}: {first.get('msg', 'invalid')}" if where else first.get("msg", "invalid")
    return _error_json(request, RequestInvalidError(detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_json(request, InternalError())


app.include_router(auth_router, prefix="/api/v1")
app.include_router(category_router, prefix="/api/v1")
app.include_router(service_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(cart_router, prefix="/api/v1")
app.include_router(transaction_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(subscription_router, prefix="/api/v1")
app.include_router(social_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
