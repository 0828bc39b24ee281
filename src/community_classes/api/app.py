"""
community_classes.api.app

FastAPI app factory for the Community Classes service.

Responsibilities:
- Build the FastAPI application and register routers, middleware and error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory, admission locks).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from community_classes import __version__
from community_classes.api.cors import install_cors
from community_classes.api.errors import register_error_handlers
from community_classes.api.routers.auth import router as auth_router
from community_classes.api.routers.classes import admin_router, member_router
from community_classes.api.routers.health import router as health_router
from community_classes.db.init_db import init_db
from community_classes.db.session import create_engine, create_sessionmaker
from community_classes.observability.logging import configure_logging, get_logger
from community_classes.observability.middleware import RequestContextMiddleware
from community_classes.services.locks import KeyedLockRegistry
from community_classes.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Community Classes",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    # One lock registry per process; admissions for a class serialize on its entry.
    app.state.admission_locks = KeyedLockRegistry()

    install_cors(app, origins=settings.cors_origins)
    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(member_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; business logic stays
# in services.
