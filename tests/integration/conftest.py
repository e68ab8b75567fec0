"""Integration-test fixtures.

Needs PostgreSQL with migrations applied (alembic upgrade head) and Redis;
the suite is skipped unless GM_INTEGRATION=1.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import os
import uuid
from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app

PASSWORD = "TestPass123!"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("GM_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set GM_INTEGRATION=1 with a migrated database")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


Login = Callable[[str, str | None], Awaitable[dict[str, str]]]


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def login_as(client: AsyncClient) -> Login:
    """Register (if needed) and log in a principal; returns its auth headers and id.

    Pass an email to reuse an account, or None for a fresh one.
    """

    async def _login(kind: str, email: str | None = None) -> dict[str, str]:
        email = email or f"{kind}_{uuid.uuid4().hex[:10]}@example.com"
        # Registration may already exist from an earlier run
        await client.post(
            f"/api/v1/auth/{kind}/register",
            json={"name": f"IT {kind}", "email": email, "password": PASSWORD},
        )
        resp = await client.post(
            f"/api/v1/auth/{kind}/login", json={"email": email, "password": PASSWORD}
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        return {
            "id": data["principal"]["id"],
            "Authorization": f"Bearer {data['access_token']}",
        }

    return _login
