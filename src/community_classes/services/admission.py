"""
community_classes.services.admission

Admission controller: decides whether a member may register for a class and performs
the registration.

Responsibilities:
- Run the decision sequence: class exists -> not already registered -> seat left -> insert.
- Keep the capacity invariant under concurrent requests by serializing all admissions
  for one class through a per-class critical section.
- Translate storage failures into the domain error taxonomy.

Concurrency:
- Every admission for a class holds that class's lock from `KeyedLockRegistry` while it
  reads the class, re-counts the ledger, inserts and commits. Admissions for different
  classes use different locks and never wait on each other.
- The lock only covers one process. The transaction itself is serialized by the store:
  the class row is read `FOR UPDATE` (PostgreSQL), and on SQLite the transaction opens
  with `BEGIN IMMEDIATE`, which holds the database write lock from the first read to
  the commit. Either way two workers cannot both count the same free seat.
- The (class_id, member_id) unique constraint stays the final arbiter of duplicates; a
  conflict at insert time is reported exactly like the pre-check (`AlreadyRegistered`).
- A caller that goes away does not abort the admission. The outcome is still logged
  once the detached work finishes.
"""

from __future__ import annotations

import asyncio
import uuid
from functools import partial

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from community_classes.auth.models import Principal, Role, ensure_role
from community_classes.db.models import ClassRegistration
from community_classes.db.repositories.classes import ClassRepo
from community_classes.db.repositories.registrations import RegistrationRepo
from community_classes.db.session import SQLITE_BEGIN_MODE
from community_classes.errors import (
    AlreadyRegistered,
    ClassFull,
    ClassNotFound,
    ServiceError,
    Unavailable,
    UniqueViolation,
)
from community_classes.observability.logging import get_logger
from community_classes.services.locks import KeyedLockRegistry

log = get_logger(__name__)


class AdmissionController:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        locks: KeyedLockRegistry,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks

    async def admit(self, *, actor: Principal, class_id: uuid.UUID) -> ClassRegistration:
        ensure_role(actor, Role.member)

        # A caller going away must not abort an admission that is already under way.
        task = asyncio.ensure_future(self._admit_serialized(class_id=class_id, member_id=actor.id))
        try:
            reg = await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(
                partial(_log_detached_outcome, class_id=class_id, member_id=actor.id)
            )
            raise
        except ServiceError as e:
            _log_rejected(class_id, actor.id, e)
            raise
        _log_admitted(class_id, actor.id, reg)
        return reg

    async def _admit_serialized(
        self, *, class_id: uuid.UUID, member_id: uuid.UUID
    ) -> ClassRegistration:
        async with self._locks.hold(class_id):
            try:
                async with self._session_factory() as session:
                    await session.connection(execution_options={SQLITE_BEGIN_MODE: "IMMEDIATE"})
                    reg = await self._decide(session, class_id=class_id, member_id=member_id)
                    await session.commit()
                    return reg
            except SQLAlchemyError as e:
                log.error("admission_store_failure", class_id=str(class_id), error=str(e))
                raise Unavailable() from e

    async def _decide(
        self,
        session: AsyncSession,
        *,
        class_id: uuid.UUID,
        member_id: uuid.UUID,
    ) -> ClassRegistration:
        ledger = RegistrationRepo(session)

        item = await ClassRepo(session).get(class_id, for_update=True)
        if item is None:
            raise ClassNotFound()

        # Advisory pre-checks: fast, friendly errors for the common case.
        if await ledger.exists_for(class_id, member_id):
            raise AlreadyRegistered()
        if await ledger.count_for(class_id) >= item.capacity:
            raise ClassFull()

        try:
            return await ledger.insert(class_id, member_id)
        except UniqueViolation as e:
            raise AlreadyRegistered() from e


def _log_admitted(
    class_id: uuid.UUID, member_id: uuid.UUID, reg: ClassRegistration, **extra: object
) -> None:
    log.info(
        "admission_admitted",
        class_id=str(class_id),
        member_id=str(member_id),
        registration_id=str(reg.id),
        **extra,
    )


def _log_rejected(
    class_id: uuid.UUID, member_id: uuid.UUID, exc: BaseException, **extra: object
) -> None:
    log.info(
        "admission_rejected",
        class_id=str(class_id),
        member_id=str(member_id),
        reason=type(exc).__name__,
        **extra,
    )


def _log_detached_outcome(
    task: asyncio.Future[ClassRegistration],
    *,
    class_id: uuid.UUID,
    member_id: uuid.UUID,
) -> None:
    # Runs after the caller was cancelled; reading the exception marks it retrieved.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        _log_admitted(class_id, member_id, task.result(), detached=True)
    elif isinstance(exc, ServiceError):
        _log_rejected(class_id, member_id, exc, detached=True)
    else:
        log.error(
            "admission_failed",
            class_id=str(class_id),
            member_id=str(member_id),
            error=repr(exc),
            detached=True,
        )


# --- Module Notes -----------------------------------------------------------
# No retries: every rejection is terminal for the request that produced it.
