from fastapi import APIRouter, Depends, Request, Response, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.rate_limiter.limiter import limiter
from packages.auth.dependencies import get_current_tenant, get_current_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.directory.models.domain.tenant import Tenant
from packages.directory.models.schemas.tenant import SignupRequest, TenantResponse
from packages.directory.routes.dependencies import get_tenant_service
from packages.directory.services.tenant_service import TenantService

router = APIRouter()
logger = get_logger(__name__)


@router.get("/me", response_model=TenantResponse)
@trace_span
async def get_me(tenant: Tenant = Depends(get_current_tenant)):
    """Directory profile of the caller."""
    return TenantResponse.model_validate(tenant)


@router.post("/create", response_model=TenantResponse)
@limiter.limit("10/minute")
async def create_user(
    request: Request,
    response: Response,
    body: SignupRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    tenant_service: TenantService = Depends(get_tenant_service),
):
    """
    Create the caller's profile after sign-in.

    Idempotent: an existing profile is returned with 200, a new one with 201.
    """
    tenant, created = await tenant_service.signup(
        uid=current_user.uid,
        email=current_user.email,
        role=body.role,
        first_name=body.first_name,
        last_name=body.last_name,
        institute_name=body.institute_name,
        institute_type=body.institute_type,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return TenantResponse.model_validate(tenant)
