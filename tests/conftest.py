"""Shared test fixtures."""

import os

# Settings are read at import time and JWT_SECRET has no default.
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("SUBSCRIPTION_SWEEPER_ENABLED", "false")
os.environ.setdefault("MEDIA_BACKEND", "local")
os.environ.setdefault("MAIL_BACKEND", "logging")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.gm_common.redis_client import close_redis  # noqa: E402
from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    # The pool is bound to this test's event loop.
    await close_redis()
