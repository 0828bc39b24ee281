"""
community_classes.db.repositories.users

Role store backed by the `users` table.

Responsibilities:
- Resolve a principal id to its role (always a fresh read; nothing is cached).
- Upsert role assignments (signup assigns `member`; the admin CLI can promote).
"""

from __future__ import annotations

import uuid

from sqlalchemy import asc, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_classes.auth.models import Role
from community_classes.db.models import User


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_role(self, user_id: uuid.UUID) -> Role | None:
        stmt = select(User.role).where(User.id == user_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def assign_role(self, user_id: uuid.UUID, role: Role) -> User:
        # Idempotent upsert keyed by user id.
        user = await self._session.get(User, user_id, with_for_update=True)
        if user is None:
            user = User(id=user_id, role=role)
            self._session.add(user)
        else:
            user.role = role
        await self._session.flush()
        return user

    async def earliest(self, *, role: Role | None = None) -> User | None:
        stmt = select(User).order_by(asc(User.created_at)).limit(1)
        if role is not None:
            stmt = stmt.where(User.role == role)
        return (await self._session.execute(stmt)).scalar_one_or_none()


# --- Module Notes -----------------------------------------------------------
# Authorization decisions read through `get_role` on every request; a stale role
# could let a demoted admin keep elevated access.
