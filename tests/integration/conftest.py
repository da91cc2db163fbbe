"""Integration-test fixtures (requires running PG migrated to head).

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. Tests skip when the database is unreachable.
"""

import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError

from src.pa_common.database import engine


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def database() -> AsyncGenerator[None, None]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM distribution_records LIMIT 1"))
    except (OSError, OperationalError, DBAPIError) as exc:
        pytest.skip(f"PostgreSQL not available or not migrated: {exc}")
    yield
    await engine.dispose()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def run_tag(database: None) -> str:
    """Unique suffix so repeated runs never collide on ids."""
    return uuid.uuid4().hex[:8]
