"""
community_classes.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal` (role read from the role store).
- Enforce role gates via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from community_classes.api.deps import identity_provider
from community_classes.auth.identity import IdentityProvider
from community_classes.auth.models import Principal, Role, ensure_role
from community_classes.observability.middleware import bind_principal

_bearer = HTTPBearer(auto_error=False)


async def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityProvider = Depends(identity_provider),
) -> Principal:
    # Authn + role lookup; raises Unauthenticated/Forbidden which the app maps to 401/403.
    principal = await identity.resolve(creds.credentials if creds is not None else None)
    bind_principal(request, principal)
    return principal


def require_role(role: Role):
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        return ensure_role(principal, role)

    return _dep
