"""
community_classes.auth.models

Auth domain models.

Responsibilities:
- Define the closed `Role` enumeration.
- Define the authenticated identity type (`Principal`) injected into endpoints and services.
- Provide the single role check used at every authorization site.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass

from community_classes.errors import Forbidden


class Role(enum.StrEnum):
    # Values are stored in the `users.role` column; treat as stable API contract.
    admin = "admin"
    member = "member"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity with the role read from the role store.
    """

    id: uuid.UUID
    role: Role


def ensure_role(principal: Principal, required: Role) -> Principal:
    # No role implies another: admins cannot register, members cannot create classes.
    match (required, principal.role):
        case (Role.admin, Role.admin) | (Role.member, Role.member):
            return principal
        case (Role.admin, Role.member) | (Role.member, Role.admin):
            raise Forbidden()
    raise Forbidden()  # pragma: no cover - unreachable with a closed enum


# --- Module Notes -----------------------------------------------------------
# Keep this model minimal; it is used across API, services, and the CLI.
