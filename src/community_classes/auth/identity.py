"""
community_classes.auth.identity

Email/password identity provider.

Responsibilities:
- Create accounts (signup) and assign the initial `member` role.
- Check credentials (login) and issue access tokens.
- Resolve a bearer credential into a `Principal` with a freshly read role.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from community_classes.auth.jwt import JwtConfig, issue_token, verify
from community_classes.auth.models import Principal, Role
from community_classes.auth.passwords import hash_password, verify_password
from community_classes.db.repositories.accounts import AccountRepo
from community_classes.db.repositories.users import UserRepo
from community_classes.errors import (
    Forbidden,
    Unauthenticated,
    Unavailable,
    UniqueViolation,
    ValidationError,
)
from community_classes.observability.logging import get_logger

log = get_logger(__name__)

NO_ROLE_MESSAGE = "No user role found for this account."


@dataclass(frozen=True, slots=True)
class AuthResult:
    user_id: uuid.UUID
    access_token: str
    role: Role


class IdentityProvider:
    def __init__(
        self,
        *,
        session: AsyncSession,
        jwt_cfg: JwtConfig,
        token_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self._session = session
        self._jwt_cfg = jwt_cfg
        self._token_ttl = token_ttl
        self._accounts = AccountRepo(session)
        self._users = UserRepo(session)

    def _token_for(self, user_id: uuid.UUID) -> str:
        return issue_token(cfg=self._jwt_cfg, subject=str(user_id), ttl=self._token_ttl)

    async def sign_up(self, *, email: str, password: str) -> AuthResult:
        # Argon2id hashing is CPU-bound; run it in the threadpool.
        password_hash = await run_in_threadpool(hash_password, password)
        try:
            account = await self._accounts.create(email=email, password_hash=password_hash)
            # Signup is the only place a role is assigned in-band, and it is always `member`.
            await self._users.assign_role(account.id, Role.member)
            await self._session.commit()
        except UniqueViolation as e:
            raise ValidationError("User already registered") from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            log.error("signup_failed", error=str(e))
            raise Unavailable("Account could not be created.") from e

        log.info("account_created", user_id=str(account.id))
        return AuthResult(
            user_id=account.id, access_token=self._token_for(account.id), role=Role.member
        )

    async def sign_in(self, *, email: str, password: str) -> AuthResult:
        try:
            account = await self._accounts.get_by_email(email)
        except SQLAlchemyError as e:
            raise Unavailable() from e
        if account is None or not await run_in_threadpool(
            verify_password, password, account.password_hash
        ):
            raise Unauthenticated("Invalid login credentials")
        try:
            role = await self._users.get_role(account.id)
        except SQLAlchemyError as e:
            raise Unavailable() from e

        if role is None:
            raise Forbidden(NO_ROLE_MESSAGE)
        return AuthResult(user_id=account.id, access_token=self._token_for(account.id), role=role)

    async def resolve(self, credential: str | None) -> Principal:
        principal_id = verify(cfg=self._jwt_cfg, credential=credential)
        try:
            role = await self._users.get_role(principal_id)
            # Close the read transaction; later writes start from a fresh snapshot.
            await self._session.commit()
        except SQLAlchemyError as e:
            raise Unavailable() from e
        if role is None:
            raise Forbidden(NO_ROLE_MESSAGE)
        return Principal(id=principal_id, role=role)


# --- Module Notes -----------------------------------------------------------
# Promotion to `admin` is an out-of-band action (`community-classes-admin promote`).
