"""Administrative command line for the Community Classes service.

Usage:
    community-classes-admin init-db
    community-classes-admin promote someone@example.org
    community-classes-admin promote someone@example.org --role member
    community-classes-admin seed

Notes:
    - `promote` is the only way an account becomes `admin`; the HTTP API never
      assigns that role.
    - `seed` is idempotent: classes are matched on title and start time.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import click
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from community_classes.auth.models import Principal, Role
from community_classes.db.init_db import init_db
from community_classes.db.repositories.accounts import AccountRepo
from community_classes.db.repositories.classes import ClassRepo
from community_classes.db.repositories.users import UserRepo
from community_classes.db.session import create_engine, create_sessionmaker
from community_classes.observability.logging import configure_logging
from community_classes.services.catalog import ClassCatalog
from community_classes.settings import Settings, get_settings

SAMPLE_CLASSES: tuple[dict[str, object], ...] = (
    {
        "title": "Neighborhood Pottery Basics",
        "description": "Learn wheel and hand-building fundamentals and take home two finished pieces.",
        "instructor_name": "Avery Collins",
        "location": "Riverside Arts Studio",
        "starts_at": datetime(2026, 3, 20, 22, 30, tzinfo=UTC),
        "capacity": 16,
    },
    {
        "title": "Urban Garden 101",
        "description": "Build a container garden plan for balconies and small yards with seasonal crop tips.",
        "instructor_name": "Maya Rios",
        "location": "Maple Community Greenhouse",
        "starts_at": datetime(2026, 3, 27, 23, 0, tzinfo=UTC),
        "capacity": 24,
    },
    {
        "title": "Conversational Spanish for Travelers",
        "description": "Practice high-use travel phrases through guided roleplay and pronunciation drills.",
        "instructor_name": "Diego Herrera",
        "location": "Eastside Library - Room B",
        "starts_at": datetime(2026, 4, 2, 23, 30, tzinfo=UTC),
        "capacity": 20,
    },
)


async def _with_sessions(settings: Settings, fn):  # type: ignore[no-untyped-def]
    engine = create_engine(settings)
    try:
        await init_db(engine)
        return await fn(create_sessionmaker(engine))
    finally:
        await engine.dispose()


async def promote_account(
    session_factory: async_sessionmaker[AsyncSession], *, email: str, role: Role
) -> bool:
    async with session_factory() as session:
        account = await AccountRepo(session).get_by_email(email)
        if account is None:
            return False
        await UserRepo(session).assign_role(account.id, role)
        await session.commit()
        return True


async def seed_classes(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Insert the sample classes that are missing; returns how many were created."""

    async with session_factory() as session:
        users = UserRepo(session)
        owner = await users.earliest(role=Role.admin) or await users.earliest()
        if owner is None:
            return 0

        # Seeded classes are attributed to the owner, acting as admin for the catalog.
        catalog = ClassCatalog(session=session)
        actor = Principal(id=owner.id, role=Role.admin)
        created = 0
        for sample in SAMPLE_CLASSES:
            existing = await ClassRepo(session).find(
                title=str(sample["title"]), starts_at=sample["starts_at"]  # type: ignore[arg-type]
            )
            if existing is not None:
                continue
            await catalog.create(actor=actor, data=sample)
            created += 1
        return created


@click.group()
def main() -> None:
    """Community Classes administration."""
    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)


@main.command("init-db")
def init_db_command() -> None:
    """Create tables (dev convenience; production runs Alembic migrations)."""

    async def _noop(_: async_sessionmaker[AsyncSession]) -> None:
        return None

    asyncio.run(_with_sessions(get_settings(), _noop))
    click.echo("Tables created.")


@main.command()
@click.argument("email")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.admin.value,
    show_default=True,
)
def promote(email: str, role: str) -> None:
    """Set the role of the account registered with EMAIL."""

    async def _run(factory: async_sessionmaker[AsyncSession]) -> bool:
        return await promote_account(factory, email=email, role=Role(role))

    if not asyncio.run(_with_sessions(get_settings(), _run)):
        raise click.ClickException(f"No account registered for {email}")
    click.echo(f"{email} is now {role}.")


@main.command()
def seed() -> None:
    """Insert the sample classes (no-op when no user exists yet)."""
    created = asyncio.run(_with_sessions(get_settings(), seed_classes))
    click.echo(f"Seeded {created} class(es).")


if __name__ == "__main__":
    main()
