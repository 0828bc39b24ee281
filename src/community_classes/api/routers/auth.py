"""
community_classes.api.routers.auth

Account endpoints: signup, login and "who am I".
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from starlette.status import HTTP_201_CREATED

from community_classes.api.deps import identity_provider
from community_classes.auth.deps import get_principal
from community_classes.auth.identity import IdentityProvider
from community_classes.auth.models import Principal, Role

router = APIRouter(prefix="/api/auth", tags=["auth"])


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)


class AuthResponse(BaseModel):
    message: str
    user_id: uuid.UUID = Field(serialization_alias="userId")
    access_token: str = Field(serialization_alias="accessToken")
    role: Role


class MeResponse(BaseModel):
    user_id: uuid.UUID = Field(serialization_alias="userId")
    role: Role


@router.post("/signup", response_model=AuthResponse, status_code=HTTP_201_CREATED)
async def signup(
    body: Credentials,
    identity: IdentityProvider = Depends(identity_provider),
) -> AuthResponse:
    result = await identity.sign_up(email=body.email, password=body.password)
    return AuthResponse(
        message="Account created.",
        user_id=result.user_id,
        access_token=result.access_token,
        role=result.role,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: Credentials,
    identity: IdentityProvider = Depends(identity_provider),
) -> AuthResponse:
    result = await identity.sign_in(email=body.email, password=body.password)
    return AuthResponse(
        message="Login successful",
        user_id=result.user_id,
        access_token=result.access_token,
        role=result.role,
    )


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_principal)) -> MeResponse:
    return MeResponse(user_id=principal.id, role=principal.role)
