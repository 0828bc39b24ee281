"""
community_classes.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and services.
- Encapsulate app.state access patterns (settings/engine/sessionmaker/locks).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from community_classes.auth.identity import IdentityProvider
from community_classes.auth.jwt import JwtConfig
from community_classes.services.admission import AdmissionController
from community_classes.services.catalog import ClassCatalog
from community_classes.services.locks import KeyedLockRegistry
from community_classes.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are stashed on app.state by `create_app`, so tests can inject their own.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def locks_from_app(request: Request) -> KeyedLockRegistry:
    return request.app.state.admission_locks  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def identity_provider(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> IdentityProvider:
    return IdentityProvider(
        session=session,
        jwt_cfg=JwtConfig.from_settings(settings),
        token_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
    )


def class_catalog(session: AsyncSession = Depends(db_session)) -> ClassCatalog:
    return ClassCatalog(session=session)


def admission_controller(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
    locks: KeyedLockRegistry = Depends(locks_from_app),
) -> AdmissionController:
    # The controller opens its own session inside the per-class critical section.
    return AdmissionController(session_factory=session_factory, locks=locks)
