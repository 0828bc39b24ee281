"""
tests.conftest

Shared fixtures: a throwaway SQLite database per test, session factory, app client and
helpers to create principals without going through password hashing.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from community_classes.api.app import create_app
from community_classes.auth.jwt import JwtConfig, issue_token
from community_classes.auth.models import Principal, Role
from community_classes.db.init_db import init_db
from community_classes.db.models import Account, User
from community_classes.db.session import create_engine, create_sessionmaker
from community_classes.settings import Settings

ALLOWED_ORIGIN = "http://localhost:5173"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret-0123456789abcdef0123456789",
        cors_origins=[ALLOWED_ORIGIN],
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


async def make_principal(
    session_factory: async_sessionmaker[AsyncSession], role: Role
) -> Principal:
    user_id = uuid.uuid4()
    async with session_factory() as session:
        session.add(
            Account(id=user_id, email=f"{user_id.hex}@example.org", password_hash="not-a-hash")
        )
        await session.flush()
        session.add(User(id=user_id, role=role))
        await session.commit()
    return Principal(id=user_id, role=role)


def bearer(
    settings: Settings, principal_id: uuid.UUID, ttl: timedelta = timedelta(minutes=5)
) -> dict[str, str]:
    token = issue_token(cfg=JwtConfig.from_settings(settings), subject=str(principal_id), ttl=ttl)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app_client(settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(settings=settings)

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            client.app = app  # type: ignore[attr-defined]
            yield client
