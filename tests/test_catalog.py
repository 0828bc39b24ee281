"""
tests.test_catalog

Class catalog: validation, role gate, ordering and the member view.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select

from community_classes.auth.models import Role
from community_classes.db.models import CommunityClass, as_utc
from community_classes.errors import Forbidden, ValidationError
from community_classes.services.admission import AdmissionController
from community_classes.services.catalog import ClassCatalog
from community_classes.services.locks import KeyedLockRegistry
from tests.conftest import make_principal


def _payload(**overrides):  # type: ignore[no-untyped-def]
    data = {
        "title": "Urban Garden 101",
        "description": "Build a container garden plan for balconies and small yards.",
        "instructorName": "Maya Rios",
        "location": "Maple Community Greenhouse",
        "startsAt": "2026-03-27T23:00:00Z",
        "capacity": 24,
    }
    data.update(overrides)
    return data


async def _class_count(session_factory) -> int:  # type: ignore[no-untyped-def]
    async with session_factory() as session:
        return int((await session.execute(select(func.count(CommunityClass.id)))).scalar_one())


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, -1, 1001, "5", 2.5])
async def test_invalid_capacity_is_rejected_without_persisting(session_factory, capacity) -> None:
    admin = await make_principal(session_factory, Role.admin)

    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc:
            await ClassCatalog(session=session).create(
                actor=admin, data=_payload(capacity=capacity)
            )

    assert exc.value.message == "Invalid class payload"
    assert await _class_count(session_factory) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value",
    [
        ("title", ""),
        ("description", "too short"),
        ("instructorName", " "),
        ("location", "x"),
        ("startsAt", "next tuesday"),
        ("startsAt", 1711000000),
    ],
)
async def test_invalid_fields_are_rejected(session_factory, field, value) -> None:
    admin = await make_principal(session_factory, Role.admin)

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await ClassCatalog(session=session).create(actor=admin, data=_payload(**{field: value}))

    assert await _class_count(session_factory) == 0


@pytest.mark.asyncio
async def test_member_cannot_create_class(session_factory) -> None:
    member = await make_principal(session_factory, Role.member)

    async with session_factory() as session:
        with pytest.raises(Forbidden):
            await ClassCatalog(session=session).create(actor=member, data=_payload())

    assert await _class_count(session_factory) == 0


@pytest.mark.asyncio
async def test_create_accepts_past_start_and_normalizes_to_utc(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)

    async with session_factory() as session:
        catalog = ClassCatalog(session=session)
        past = await catalog.create(
            actor=admin, data=_payload(startsAt="2001-01-01T10:00:00+02:00")
        )
        naive = await catalog.create(actor=admin, data=_payload(startsAt="2030-06-01T09:30:00"))

    assert as_utc(past.starts_at) == datetime(2001, 1, 1, 8, 0, tzinfo=UTC)
    assert as_utc(naive.starts_at) == datetime(2030, 6, 1, 9, 30, tzinfo=UTC)
    assert past.created_by == admin.id
    assert past.id is not None and past.created_at is not None


@pytest.mark.asyncio
async def test_list_is_ordered_by_start_time(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)

    async with session_factory() as session:
        catalog = ClassCatalog(session=session)
        for title, starts_at in [
            ("Late", "2026-05-01T10:00:00Z"),
            ("Early", "2026-01-01T10:00:00Z"),
            ("Middle", "2026-03-01T10:00:00Z"),
        ]:
            await catalog.create(actor=admin, data=_payload(title=title, startsAt=starts_at))

    async with session_factory() as session:
        titles = [c.title for c in await ClassCatalog(session=session).list()]

    assert titles == ["Early", "Middle", "Late"]


@pytest.mark.asyncio
async def test_member_view_counts_and_own_registration(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    caller = await make_principal(session_factory, Role.member)
    others = [await make_principal(session_factory, Role.member) for _ in range(2)]

    async with session_factory() as session:
        catalog = ClassCatalog(session=session)
        small = await catalog.create(actor=admin, data=_payload(title="Small", capacity=2))
        other = await catalog.create(actor=admin, data=_payload(title="Other", capacity=5))

    admission = AdmissionController(session_factory=session_factory, locks=KeyedLockRegistry())
    for m in others:
        await admission.admit(actor=m, class_id=small.id)
    await admission.admit(actor=caller, class_id=other.id)

    async with session_factory() as session:
        listed = await ClassCatalog(session=session).list_for_member(actor=caller)
    views = {v.item.title: v for v in listed}

    assert views["Small"].registration_count == 2
    assert views["Small"].is_registered is False
    assert views["Other"].registration_count == 1
    assert views["Other"].is_registered is True


@pytest.mark.asyncio
async def test_admin_has_no_member_view(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)

    async with session_factory() as session:
        with pytest.raises(Forbidden):
            await ClassCatalog(session=session).list_for_member(actor=admin)
