"""
tests.test_admission

Admission controller behavior: decision sequence, role gate, and the capacity and
uniqueness invariants under concurrent admission attempts.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog.testing import capture_logs

from community_classes.auth.models import Principal, Role
from community_classes.db.models import ClassRegistration, CommunityClass
from community_classes.db.repositories.registrations import RegistrationRepo
from community_classes.errors import (
    AlreadyRegistered,
    ClassFull,
    ClassNotFound,
    Conflict,
    Forbidden,
    UniqueViolation,
)
from community_classes.observability.logging import get_logger
from community_classes.services import admission
from community_classes.services.admission import AdmissionController
from community_classes.services.locks import KeyedLockRegistry
from tests.conftest import make_principal


async def _make_class(
    session_factory: async_sessionmaker[AsyncSession], admin: Principal, capacity: int
) -> uuid.UUID:
    async with session_factory() as session:
        item = CommunityClass(
            created_by=admin.id,
            title="Pottery",
            description="Wheel and hand-building fundamentals.",
            instructor_name="Avery Collins",
            location="Riverside Arts Studio",
            starts_at=datetime(2026, 3, 20, 22, 30, tzinfo=UTC),
            capacity=capacity,
        )
        session.add(item)
        await session.commit()
        return item.id


async def _registered(
    session_factory: async_sessionmaker[AsyncSession], class_id: uuid.UUID
) -> int:
    async with session_factory() as session:
        stmt = select(func.count(ClassRegistration.id)).where(
            ClassRegistration.class_id == class_id
        )
        return int((await session.execute(stmt)).scalar_one())


def _controller(session_factory: async_sessionmaker[AsyncSession]) -> AdmissionController:
    return AdmissionController(session_factory=session_factory, locks=KeyedLockRegistry())


async def _eventually(check, timeout: float = 5.0) -> None:  # type: ignore[no-untyped-def]
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not await check():
        assert loop.time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_admit_then_repeat_is_already_registered(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=5)
    controller = _controller(session_factory)

    reg = await controller.admit(actor=member, class_id=class_id)
    assert reg.class_id == class_id
    assert reg.member_id == member.id

    for _ in range(3):
        with pytest.raises(AlreadyRegistered):
            await controller.admit(actor=member, class_id=class_id)

    assert await _registered(session_factory, class_id) == 1


@pytest.mark.asyncio
async def test_unknown_class_is_not_found_and_ledger_untouched(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=2)

    with pytest.raises(ClassNotFound):
        await _controller(session_factory).admit(actor=member, class_id=uuid.uuid4())

    assert await _registered(session_factory, class_id) == 0


@pytest.mark.asyncio
async def test_full_class_rejects_next_member(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    first = await make_principal(session_factory, Role.member)
    second = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=1)
    controller = _controller(session_factory)

    await controller.admit(actor=first, class_id=class_id)
    with pytest.raises(ClassFull):
        await controller.admit(actor=second, class_id=class_id)


@pytest.mark.asyncio
async def test_admin_cannot_register(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    class_id = await _make_class(session_factory, admin, capacity=3)

    with pytest.raises(Forbidden):
        await _controller(session_factory).admit(actor=admin, class_id=class_id)

    assert await _registered(session_factory, class_id) == 0


@pytest.mark.asyncio
async def test_two_members_race_for_last_seat(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    a = await make_principal(session_factory, Role.member)
    b = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=1)
    controller = _controller(session_factory)

    results = await asyncio.gather(
        controller.admit(actor=a, class_id=class_id),
        controller.admit(actor=b, class_id=class_id),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, ClassRegistration)]
    rejected = [r for r in results if isinstance(r, Conflict)]
    assert len(admitted) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], ClassFull)
    assert await _registered(session_factory, class_id) == 1


@pytest.mark.asyncio
async def test_capacity_holds_under_many_concurrent_attempts(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    members = [await make_principal(session_factory, Role.member) for _ in range(12)]
    class_id = await _make_class(session_factory, admin, capacity=4)
    controller = _controller(session_factory)

    results = await asyncio.gather(
        *(controller.admit(actor=m, class_id=class_id) for m in members),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, ClassRegistration)]
    assert len(admitted) == 4
    assert all(isinstance(r, ClassFull) for r in results if not isinstance(r, ClassRegistration))
    assert await _registered(session_factory, class_id) == 4


@pytest.mark.asyncio
async def test_same_member_concurrent_attempts_admit_once(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=10)
    controller = _controller(session_factory)

    results = await asyncio.gather(
        *(controller.admit(actor=member, class_id=class_id) for _ in range(6)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ClassRegistration) for r in results) == 1
    assert all(
        isinstance(r, AlreadyRegistered) for r in results if not isinstance(r, ClassRegistration)
    )


@pytest.mark.asyncio
async def test_store_conflict_is_reported_as_already_registered(
    session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=10)
    controller = _controller(session_factory)
    await controller.admit(actor=member, class_id=class_id)

    # Pretend the pre-check lost a race so the unique constraint has to catch the duplicate.
    async def _never_exists(self, class_id, member_id) -> bool:  # type: ignore[no-untyped-def]
        return False

    monkeypatch.setattr(RegistrationRepo, "exists_for", _never_exists)

    with pytest.raises(AlreadyRegistered):
        await controller.admit(actor=member, class_id=class_id)
    assert await _registered(session_factory, class_id) == 1


@pytest.mark.asyncio
async def test_ledger_insert_rejects_duplicate_pair(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=10)

    async with session_factory() as session:
        ledger = RegistrationRepo(session)
        await ledger.insert(class_id, member.id)
        await session.commit()
        with pytest.raises(UniqueViolation):
            await ledger.insert(class_id, member.id)
        assert await ledger.count_for(class_id) == 1
        assert await ledger.exists_for(class_id, member.id)


@pytest.mark.asyncio
async def test_locks_are_released_after_admission(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=1)
    locks = KeyedLockRegistry()
    controller = AdmissionController(session_factory=session_factory, locks=locks)

    await controller.admit(actor=member, class_id=class_id)
    with pytest.raises(AlreadyRegistered):
        await controller.admit(actor=member, class_id=class_id)

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_capacity_holds_across_independent_lock_registries(session_factory) -> None:
    # One controller per worker process: nothing in memory is shared between them.
    admin = await make_principal(session_factory, Role.admin)
    members = [await make_principal(session_factory, Role.member) for _ in range(6)]
    class_id = await _make_class(session_factory, admin, capacity=1)

    results = await asyncio.gather(
        *(_controller(session_factory).admit(actor=m, class_id=class_id) for m in members),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, ClassRegistration)]
    assert len(admitted) == 1
    assert all(isinstance(r, ClassFull) for r in results if not isinstance(r, ClassRegistration))
    assert await _registered(session_factory, class_id) == 1


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_admission(session_factory) -> None:
    admin = await make_principal(session_factory, Role.admin)
    member = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=3)
    locks = KeyedLockRegistry()
    controller = AdmissionController(session_factory=session_factory, locks=locks)

    caller = asyncio.create_task(controller.admit(actor=member, class_id=class_id))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    async def _settled() -> bool:
        return len(locks) == 0 and await _registered(session_factory, class_id) == 1

    await _eventually(_settled)
    assert await _registered(session_factory, class_id) == 1
    with pytest.raises(AlreadyRegistered):
        await controller.admit(actor=member, class_id=class_id)


@pytest.mark.asyncio
async def test_outcome_is_logged_when_caller_went_away(
    session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    admin = await make_principal(session_factory, Role.admin)
    first = await make_principal(session_factory, Role.member)
    second = await make_principal(session_factory, Role.member)
    class_id = await _make_class(session_factory, admin, capacity=1)
    controller = _controller(session_factory)
    await controller.admit(actor=first, class_id=class_id)

    with capture_logs() as logs:
        monkeypatch.setattr(admission, "log", get_logger("tests.admission"))

        caller = asyncio.create_task(controller.admit(actor=second, class_id=class_id))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        async def _logged() -> bool:
            return any(e["event"] == "admission_rejected" for e in logs)

        await _eventually(_logged)

    [event] = [e for e in logs if e["event"] == "admission_rejected"]
    assert event["reason"] == "ClassFull"
    assert event["member_id"] == str(second.id)
    assert event["detached"] is True
    assert await _registered(session_factory, class_id) == 1
