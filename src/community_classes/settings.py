"""
community_classes.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven settings; defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="CC_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "community-classes"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 4000

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "community-classes"
    jwt_audience: str = "community-classes-api"
    jwt_secret: str = Field(default="dev-secret-change-me-before-deploying", repr=False)
    access_token_ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./community_classes.db"

    # CORS allow-list; env value is a comma separated list of origins.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173"]
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            # Browsers never send a trailing slash in the Origin header.
            return [str(o).strip().rstrip("/") for o in value if str(o).strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly and pass it to `create_app`; the cached
# instance is only used by the process entrypoints.
