"""
community_classes.services.catalog

Class catalog service.

Responsibilities:
- Validate and persist new class definitions (admins only).
- List classes ordered by start time, and the member view annotated with
  registration counts and the caller's own registrations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from community_classes.auth.models import Principal, Role, ensure_role
from community_classes.db.models import CommunityClass
from community_classes.db.repositories.classes import ClassRepo
from community_classes.db.repositories.registrations import RegistrationRepo
from community_classes.errors import Unavailable, ValidationError
from community_classes.observability.logging import get_logger

log = get_logger(__name__)

MAX_CAPACITY = 1000


class ClassDraft(BaseModel):
    """
    Input for a new class. Accepts both the wire names (`instructorName`, `startsAt`)
    and the field names.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=2, max_length=120)
    description: str = Field(min_length=10, max_length=2000)
    instructor_name: str = Field(alias="instructorName", min_length=2, max_length=120)
    location: str = Field(min_length=2, max_length=120)
    starts_at: datetime = Field(alias="startsAt")
    capacity: int = Field(strict=True, ge=1, le=MAX_CAPACITY)

    @field_validator("starts_at", mode="before")
    @classmethod
    def _require_iso_string(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError("startsAt must be an ISO 8601 date-time string")
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError("startsAt must be an ISO 8601 date-time string") from e

    @field_validator("starts_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        # Past start times are accepted; naive values are taken as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class MemberClassView:
    item: CommunityClass
    registration_count: int
    is_registered: bool


def parse_draft(data: ClassDraft | Mapping[str, Any]) -> ClassDraft:
    if isinstance(data, ClassDraft):
        return data
    try:
        return ClassDraft.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Invalid class payload",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


class ClassCatalog:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._classes = ClassRepo(session)
        self._registrations = RegistrationRepo(session)

    async def create(
        self, *, actor: Principal, data: ClassDraft | Mapping[str, Any]
    ) -> CommunityClass:
        # Authorization and validation both happen before anything is written.
        ensure_role(actor, Role.admin)
        draft = parse_draft(data)

        try:
            item = await self._classes.create(
                created_by=actor.id,
                title=draft.title,
                description=draft.description,
                instructor_name=draft.instructor_name,
                location=draft.location,
                starts_at=draft.starts_at,
                capacity=draft.capacity,
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            log.error("class_create_failed", error=str(e))
            raise Unavailable() from e

        log.info("class_created", class_id=str(item.id), created_by=str(actor.id))
        return item

    async def list(self) -> list[CommunityClass]:
        try:
            return await self._classes.list_ordered()
        except SQLAlchemyError as e:
            raise Unavailable() from e

    async def list_for_member(self, *, actor: Principal) -> list[MemberClassView]:
        ensure_role(actor, Role.member)
        try:
            items = await self._classes.list_ordered()
            counts = await self._registrations.counts_by_class()
            mine = await self._registrations.class_ids_for_member(actor.id)
        except SQLAlchemyError as e:
            raise Unavailable() from e
        return [
            MemberClassView(
                item=item,
                registration_count=counts.get(item.id, 0),
                is_registered=item.id in mine,
            )
            for item in items
        ]


# --- Module Notes -----------------------------------------------------------
# Classes are immutable once created; there is deliberately no update or delete path.
