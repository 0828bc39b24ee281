"""
community_classes.db.repositories.classes

Repository for `CommunityClass` entities (class catalog storage).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import asc, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_classes.db.models import CommunityClass


class ClassRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        created_by: uuid.UUID,
        title: str,
        description: str,
        instructor_name: str,
        location: str,
        starts_at: datetime,
        capacity: int,
    ) -> CommunityClass:
        item = CommunityClass(
            created_by=created_by,
            title=title,
            description=description,
            instructor_name=instructor_name,
            location=location,
            starts_at=starts_at,
            capacity=capacity,
        )
        self._session.add(item)
        await self._session.flush()
        return item

    async def get(self, class_id: uuid.UUID, *, for_update: bool = False) -> CommunityClass | None:
        # Row lock serializes admissions across processes on backends that support it.
        return await self._session.get(CommunityClass, class_id, with_for_update=for_update)

    async def list_ordered(self) -> list[CommunityClass]:
        stmt = select(CommunityClass).order_by(
            asc(CommunityClass.starts_at), asc(CommunityClass.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def find(self, *, title: str, starts_at: datetime) -> CommunityClass | None:
        stmt = select(CommunityClass).where(
            CommunityClass.title == title, CommunityClass.starts_at == starts_at
        )
        return (await self._session.execute(stmt)).scalars().first()
