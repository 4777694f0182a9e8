"""Integration-test fixtures.

Requires a PostgreSQL with migrations applied (alembic upgrade head) and a
Redis at the configured URLs. Run with: pytest -m integration

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import json
import uuid
from collections.abc import Awaitable, Callable
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.pm_common.database import async_session_factory
from src.pm_common.datetime_utils import utc_now


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def seed_user() -> Callable[..., Awaitable[str]]:
    async def _seed(rep: float = 100, credibility: float = 0) -> str:
        user_id = f"it-user-{uuid.uuid4().hex[:10]}"
        async with async_session_factory() as db:
            await db.execute(
                text(
                    "INSERT INTO users (id, rep_score, ethos_credibility) "
                    "VALUES (:id, :rep, :cred)"
                ),
                {"id": user_id, "rep": rep, "cred": credibility},
            )
            await db.commit()
        return user_id

    return _seed


@pytest_asyncio.fixture(loop_scope="session")
async def seed_market() -> Callable[..., Awaitable[str]]:
    async def _seed(status: str = "OPEN", hours_to_lock: float = 24) -> str:
        market_id = f"it-mkt-{uuid.uuid4().hex[:10]}"
        locks_at = utc_now() + timedelta(hours=hours_to_lock)
        config = {"asset": "BTC", "targetPrice": 100000, "comparison": "above"}
        async with async_session_factory() as db:
            await db.execute(
                text(
                    "INSERT INTO markets (id, title, category, oracle_type, oracle_config, "
                    "locks_at, resolves_at, status) "
                    "VALUES (:id, :title, 'crypto', 'price_close', CAST(:config AS JSONB), "
                    ":locks_at, :resolves_at, :status)"
                ),
                {
                    "id": market_id,
                    "title": f"Integration market {market_id}",
                    "config": json.dumps(config),
                    "locks_at": locks_at,
                    "resolves_at": locks_at + timedelta(hours=24),
                    "status": status,
                },
            )
            await db.commit()
        return market_id

    return _seed
