"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app

ADMIN_USER = {
    "username": "it_admin",
    "email": "it_admin@example.com",
    "password": "AdminPass1",
}


def unique_user(prefix: str = "it") -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"{prefix}_{uid}",
        "email": f"{prefix}_{uid}@example.com",
        "password": "TestPass1",
    }


async def login_headers(client: AsyncClient, user: dict[str, str]) -> dict[str, str]:
    """Register (ignoring an existing account) and return a Bearer header."""
    await client.post("/api/v1/auth/register", json=user)
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
    )
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Headers for the bootstrap admin (ADMIN_BOOTSTRAP_USERNAME=it_admin)."""
    return await login_headers(client, ADMIN_USER)


@pytest_asyncio.fixture(loop_scope="session")
async def member_headers(client: AsyncClient) -> dict[str, str]:
    """A freshly registered member holding the sign-up grant."""
    return await login_headers(client, unique_user())


@pytest_asyncio.fixture(loop_scope="session")
async def counterparty_headers(client: AsyncClient) -> dict[str, str]:
    """A second member, for the other side of a matched bet."""
    return await login_headers(client, unique_user("cp"))
