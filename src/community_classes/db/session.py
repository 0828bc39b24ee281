"""
community_classes.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings.
- Create the async sessionmaker with safe defaults.
- On SQLite, take over transaction begin so writers can claim the database lock up front.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from community_classes.settings import Settings

# Execution option read by the SQLite `begin` hook: "IMMEDIATE" or "EXCLUSIVE".
SQLITE_BEGIN_MODE = "sqlite_begin_mode"


def create_engine(settings: Settings) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    engine = create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
    )
    if engine.dialect.name == "sqlite":
        _configure_sqlite(engine)
    return engine


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
        cursor.execute("PRAGMA foreign_keys=ON")
        # WAL lets open read transactions coexist with a committing writer.
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()
        # Stop the driver from issuing its own deferred BEGIN; `_on_begin` emits it instead.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:  # type: ignore[no-untyped-def]
        mode = conn.get_execution_options().get(SQLITE_BEGIN_MODE)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


# --- Module Notes -----------------------------------------------------------
# The API layer uses FastAPI dependencies for session scoping (`api.deps.db_session`);
# services that own their transaction (admission) open sessions from the factory.
#
# SQLite has a single database-wide write lock. A session opened with
# `connection(execution_options={SQLITE_BEGIN_MODE: "IMMEDIATE"})` acquires it at BEGIN,
# so its reads and writes see no interleaved commit from any other connection or process.
# Other backends ignore the option.
