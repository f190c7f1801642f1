"""Shared test fixtures."""

import os

# settings are read at import time; JWT_SECRET has no default
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("REALTIME_ENABLED", "false")
os.environ.setdefault("ADMIN_BOOTSTRAP_USERNAME", "it_admin")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
