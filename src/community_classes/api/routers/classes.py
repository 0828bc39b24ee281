"""
community_classes.api.routers.classes

Class endpoints for both panels.

Responsibilities:
- Admin panel: list classes, create a class (role=admin).
- Member panel: list classes with registration info, register for a class (role=member).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from starlette.status import HTTP_201_CREATED

from community_classes.api.deps import admission_controller, class_catalog
from community_classes.auth.deps import require_role
from community_classes.auth.models import Principal, Role
from community_classes.db.models import CommunityClass, as_utc
from community_classes.services.admission import AdmissionController
from community_classes.services.catalog import ClassCatalog, ClassDraft

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])
member_router = APIRouter(prefix="/api/member", tags=["member"])


class ClassResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    instructor_name: str
    location: str
    starts_at: datetime
    capacity: int
    created_at: datetime
    created_by: uuid.UUID

    @classmethod
    def from_row(cls, item: CommunityClass) -> ClassResponse:
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            instructor_name=item.instructor_name,
            location=item.location,
            starts_at=as_utc(item.starts_at),
            capacity=item.capacity,
            created_at=as_utc(item.created_at),
            created_by=item.created_by,
        )


class MemberClassResponse(ClassResponse):
    registration_count: int = Field(serialization_alias="registrationCount")
    is_registered: bool = Field(serialization_alias="isRegistered")


class RegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_id: uuid.UUID = Field(alias="classId")


class RegistrationResponse(BaseModel):
    message: str
    registration_id: uuid.UUID = Field(serialization_alias="registrationId")


@admin_router.get("/classes", response_model=list[ClassResponse])
async def list_classes(
    _: Principal = Depends(require_role(Role.admin)),
    catalog: ClassCatalog = Depends(class_catalog),
) -> list[ClassResponse]:
    return [ClassResponse.from_row(item) for item in await catalog.list()]


@admin_router.post("/classes", response_model=ClassResponse, status_code=HTTP_201_CREATED)
async def create_class(
    body: ClassDraft,
    principal: Principal = Depends(require_role(Role.admin)),
    catalog: ClassCatalog = Depends(class_catalog),
) -> ClassResponse:
    item = await catalog.create(actor=principal, data=body)
    return ClassResponse.from_row(item)


@member_router.get("/classes", response_model=list[MemberClassResponse])
async def list_member_classes(
    principal: Principal = Depends(require_role(Role.member)),
    catalog: ClassCatalog = Depends(class_catalog),
) -> list[MemberClassResponse]:
    views = await catalog.list_for_member(actor=principal)
    return [
        MemberClassResponse(
            **ClassResponse.from_row(v.item).model_dump(),
            registration_count=v.registration_count,
            is_registered=v.is_registered,
        )
        for v in views
    ]


@member_router.post(
    "/registrations", response_model=RegistrationResponse, status_code=HTTP_201_CREATED
)
async def register_for_class(
    body: RegistrationRequest,
    principal: Principal = Depends(require_role(Role.member)),
    admission: AdmissionController = Depends(admission_controller),
) -> RegistrationResponse:
    reg = await admission.admit(actor=principal, class_id=body.class_id)
    return RegistrationResponse(message="Registration successful.", registration_id=reg.id)
