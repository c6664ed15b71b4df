"""
Member management endpoints, one router per creating role.

Create endpoints require an active subscription on the caller's billing
owner; listings only require a profile.
"""

from typing import List
from fastapi import APIRouter, Depends, Path, Request, status

from common.core.otel_axiom_exporter import trace_span
from common.providers.rate_limiter.limiter import limiter
from packages.auth.dependencies import get_current_tenant, get_subscribed_tenant
from packages.directory.models.domain.bulk_import import BulkImportResult
from packages.directory.models.domain.tenant import Tenant
from packages.directory.models.schemas.tenant import (
    BulkImportRequest,
    CreateInstituteRequest,
    CreateInstituteResponse,
    CreateMemberRequest,
    DeleteMemberResponse,
    InstituteResponse,
    TenantResponse,
)
from packages.directory.routes.dependencies import get_tenant_service
from packages.directory.services.tenant_service import TenantService

parents_router = APIRouter()
admin_router = APIRouter()
staff_router = APIRouter()
district_router = APIRouter()
employer_router = APIRouter()
employer_staff_router = APIRouter()
members_router = APIRouter()


# ============================================================================
# Parents
# ============================================================================


@parents_router.post(
    "/create-child", response_model=TenantResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_child(
    body: CreateMemberRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    child = await tenant_service.create_child(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
    )
    return TenantResponse.model_validate(child)


@parents_router.get("/my-children", response_model=List[TenantResponse])
@trace_span
async def my_children(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    children = await tenant_service.list_my_children(tenant)
    return [TenantResponse.model_validate(child) for child in children]


# ============================================================================
# School admins
# ============================================================================


@admin_router.post(
    "/create-staff", response_model=TenantResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_school_staff(
    body: CreateMemberRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    """Create a teacher, counselor or social worker in the admin's school."""
    staff = await tenant_service.create_staff(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        phone_number=body.phone_number,
    )
    return TenantResponse.model_validate(staff)


@admin_router.get("/my-staff", response_model=List[TenantResponse])
@trace_span
async def my_school_staff(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    staff = await tenant_service.list_my_staff(tenant)
    return [TenantResponse.model_validate(member) for member in staff]


@admin_router.post("/bulk-create-staff", response_model=BulkImportResult)
@limiter.limit("5/minute")
async def bulk_create_staff(
    request: Request,
    body: BulkImportRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    return await tenant_service.bulk_import_staff(tenant, body.users, body.options)


# ============================================================================
# School staff
# ============================================================================


@staff_router.post(
    "/create-student", response_model=TenantResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_student(
    body: CreateMemberRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    student = await tenant_service.create_student(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
    )
    return TenantResponse.model_validate(student)


@staff_router.get("/my-students", response_model=List[TenantResponse])
@trace_span
async def my_students(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    students = await tenant_service.list_my_students(tenant)
    return [TenantResponse.model_validate(student) for student in students]


@staff_router.post("/bulk-create-students", response_model=BulkImportResult)
@limiter.limit("5/minute")
async def bulk_create_students(
    request: Request,
    body: BulkImportRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    """
    Import students for the calling staff member.

    The whole batch is refused when it does not fit the staff member's
    remaining quota; otherwise each row succeeds or fails on its own.
    """
    return await tenant_service.bulk_import_students(tenant, body.users, body.options)


# ============================================================================
# District admins
# ============================================================================


@district_router.post(
    "/create-institute",
    response_model=CreateInstituteResponse,
    status_code=status.HTTP_201_CREATED,
)
@trace_span
async def create_institute(
    body: CreateInstituteRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    organization, admin = await tenant_service.create_institute(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        institute_name=body.institute_name,
        institute_type=body.institute_type,
    )
    return CreateInstituteResponse(
        institute=InstituteResponse.model_validate(organization),
        admin=TenantResponse.model_validate(admin),
    )


@district_router.get("/my-institutes", response_model=List[InstituteResponse])
@trace_span
async def my_institutes(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    institutes = await tenant_service.list_my_institutes(tenant)
    return [InstituteResponse.model_validate(org) for org in institutes]


# ============================================================================
# Employers
# ============================================================================


@employer_router.post(
    "/create-staff", response_model=TenantResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_employer_staff(
    body: CreateMemberRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    """Create a supervisor or HR member."""
    staff = await tenant_service.create_staff(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        phone_number=body.phone_number,
    )
    return TenantResponse.model_validate(staff)


@employer_router.get("/my-staff", response_model=List[TenantResponse])
@trace_span
async def my_employer_staff(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    staff = await tenant_service.list_my_staff(tenant)
    return [TenantResponse.model_validate(member) for member in staff]


@employer_staff_router.post(
    "/create-employee", response_model=TenantResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_employee(
    body: CreateMemberRequest,
    tenant: Tenant = Depends(get_subscribed_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    employee = await tenant_service.create_employee(
        tenant,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
    )
    return TenantResponse.model_validate(employee)


@employer_staff_router.get("/my-employees", response_model=List[TenantResponse])
@trace_span
async def my_employees(
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    employees = await tenant_service.list_my_employees(tenant)
    return [TenantResponse.model_validate(employee) for employee in employees]


# ============================================================================
# Deletion
# ============================================================================


@members_router.delete("/{memberId}", response_model=DeleteMemberResponse)
@trace_span
async def delete_member(
    member_id: str = Path(alias="memberId"),
    tenant: Tenant = Depends(get_current_tenant),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    """Delete a member the caller created, with everything that member created."""
    deleted = await tenant_service.delete_member(tenant, member_id)
    return DeleteMemberResponse(message="Member deleted successfully", deleted=deleted)
