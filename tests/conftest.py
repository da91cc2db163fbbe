"""Shared test fixtures."""

import os

# Settings() requires ADMIN_API_KEY; set it before anything imports config.settings
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints (lifespan not started)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
