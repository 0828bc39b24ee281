"""
community_classes.db.repositories.accounts

Repository for email/password accounts.

Responsibilities:
- Create accounts, reporting a taken email as `UniqueViolation`.
- Look accounts up by email, case-insensitively.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_classes.db.models import Account
from community_classes.errors import UniqueViolation


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, email: str, password_hash: str) -> Account:
        account = Account(email=normalize_email(email), password_hash=password_hash)
        self._session.add(account)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            raise UniqueViolation("User already registered") from e
        return account

    async def get_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(Account.email == normalize_email(email))
        return (await self._session.execute(stmt)).scalar_one_or_none()


# --- Module Notes -----------------------------------------------------------
# Emails are stored normalized (trimmed, lower-cased); the unique index on `email`
# therefore enforces case-insensitive uniqueness.
