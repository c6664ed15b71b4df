"""Usage and quota endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from common.core.otel_axiom_exporter import trace_span
from packages.auth.dependencies import get_current_tenant
from packages.billing.models.domain.usage import MyQuota, UsageSnapshot
from packages.billing.models.schemas.billing import QuotaCheckResponse
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.usage_service import UsageService
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

router = APIRouter()


def get_usage_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
) -> UsageService:
    return UsageService(store=store)


def get_quota_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
) -> QuotaService:
    return QuotaService(store=store)


@router.get("/current", response_model=UsageSnapshot)
@trace_span
async def get_current_usage(
    tenant: Tenant = Depends(get_current_tenant),
    usage_service: UsageService = Depends(get_usage_service),
):
    return await usage_service.get_usage(tenant.billing_owner_id)


@router.post("/refresh", response_model=UsageSnapshot)
@trace_span
async def refresh_usage(
    tenant: Tenant = Depends(get_current_tenant),
    usage_service: UsageService = Depends(get_usage_service),
):
    """Recount usage from the directory."""
    return await usage_service.refresh_usage(tenant.billing_owner_id)


@router.get("/my-quota", response_model=Optional[MyQuota])
@trace_span
async def get_my_quota(
    tenant: Tenant = Depends(get_current_tenant),
    quota_service: QuotaService = Depends(get_quota_service),
):
    """Per-user quota for staff and managed school admins; null for other roles."""
    return await quota_service.get_my_quota(tenant)


@router.get("/check", response_model=QuotaCheckResponse)
@trace_span
async def check_quota(
    resource: str = Query(..., description="Resource key, e.g. 'child' or 'student:<uid>'"),
    delta: int = Query(1, ge=0),
    tenant: Tenant = Depends(get_current_tenant),
    quota_service: QuotaService = Depends(get_quota_service),
):
    """Dry-run admission check. Never reserves capacity."""
    result = await quota_service.check_limit(
        tenant.billing_owner_id, resource, requested_delta=delta, context=tenant
    )
    return QuotaCheckResponse(
        allowed=result.allowed,
        current=result.current,
        limit=result.limit,
        requested=result.requested,
        reason=result.reason.value if result.reason else None,
        message=result.message,
        can_upgrade=result.can_upgrade,
    )
