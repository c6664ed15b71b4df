from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.directory.models.domain.bulk_import import BulkImportOptions, BulkUserRow
from packages.directory.models.domain.enums import TenantRole


class SignupRequest(BaseModel):
    role: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    institute_name: Optional[str] = None
    institute_type: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allows population by both original name and alias
    )


class CreateMemberRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allows population by both original name and alias
    )


class CreateInstituteRequest(CreateMemberRequest):
    institute_name: str
    institute_type: Optional[str] = None


class BulkImportRequest(BaseModel):
    users: List[BulkUserRow]
    options: BulkImportOptions = Field(default_factory=BulkImportOptions)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TenantResponse(BaseModel):
    uid: str = Field(validation_alias="id")
    email: str
    first_name: str
    last_name: str
    role: TenantRole
    organization_id: Optional[str] = None
    creator_id: Optional[str] = None
    billing_owner_id: str
    phone_number: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InstituteResponse(BaseModel):
    id: str
    name: str
    type: Optional[str] = None
    parent_organization_id: Optional[str] = None
    billing_owner_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CreateInstituteResponse(BaseModel):
    institute: InstituteResponse
    admin: TenantResponse

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeleteMemberResponse(BaseModel):
    message: str
    deleted: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
