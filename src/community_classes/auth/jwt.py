"""
community_classes.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue short-lived access tokens after signup/login.
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub).
- Resolve a bearer credential into a principal id (`verify`).

Note:
- Roles are deliberately absent from the token; they are read from the role store
  on every request so that promotions and demotions take effect immediately.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from community_classes.errors import Unauthenticated
from community_classes.settings import Settings


@dataclass(frozen=True, slots=True)
class JwtConfig:
    # Algorithm/issuer/audience are enforced during decoding.
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    ttl: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        # jwt.decode enforces signature + registered claims (issuer/audience/exp, etc.).
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


def verify(*, cfg: JwtConfig, credential: str | None) -> uuid.UUID:
    """
    Identity verifier: bearer credential -> principal id.

    Raises `Unauthenticated` for missing, malformed, expired or foreign tokens.
    """

    if not credential:
        raise Unauthenticated("Missing Bearer token")
    try:
        payload = decode_and_validate(cfg=cfg, token=credential)
    except JwtValidationError as e:
        raise Unauthenticated("Invalid or expired token") from e

    try:
        return uuid.UUID(str(payload.get("sub", "")))
    except ValueError as e:
        raise Unauthenticated("Invalid token subject") from e


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `auth.identity.IdentityProvider` (signup/login).
