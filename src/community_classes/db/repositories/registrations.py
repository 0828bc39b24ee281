"""
community_classes.db.repositories.registrations

Registration ledger backed by the `class_registrations` table.

Responsibilities:
- Count and look up registrations per class/member.
- Insert registrations, surfacing store-level uniqueness conflicts as `UniqueViolation`.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_classes.db.models import ClassRegistration
from community_classes.errors import UniqueViolation


class RegistrationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_for(self, class_id: uuid.UUID) -> int:
        stmt = select(func.count(ClassRegistration.id)).where(
            ClassRegistration.class_id == class_id
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def exists_for(self, class_id: uuid.UUID, member_id: uuid.UUID) -> bool:
        stmt = (
            select(ClassRegistration.id)
            .where(
                ClassRegistration.class_id == class_id,
                ClassRegistration.member_id == member_id,
            )
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none() is not None

    async def insert(self, class_id: uuid.UUID, member_id: uuid.UUID) -> ClassRegistration:
        reg = ClassRegistration(class_id=class_id, member_id=member_id)
        self._session.add(reg)
        try:
            await self._session.flush()
        except IntegrityError as e:
            # The failed flush poisons the transaction; roll back so the session stays usable.
            await self._session.rollback()
            raise UniqueViolation("You are already registered for this class.") from e
        return reg

    async def counts_by_class(self) -> dict[uuid.UUID, int]:
        stmt = select(ClassRegistration.class_id, func.count(ClassRegistration.id)).group_by(
            ClassRegistration.class_id
        )
        return {class_id: int(n) for class_id, n in (await self._session.execute(stmt)).all()}

    async def class_ids_for_member(self, member_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(ClassRegistration.class_id).where(ClassRegistration.member_id == member_id)
        return set((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Only `services.admission` calls `insert`; it holds the per-class lock while doing so.
