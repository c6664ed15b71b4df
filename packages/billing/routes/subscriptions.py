"""
Subscription endpoints.

Catalog browsing, hosted checkout and portal, plan changes and cancellation.
Managed tenants read their billing owner's subscription but cannot change it.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, status

from common.core.exceptions import ForbiddenError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.dependencies import get_current_tenant
from packages.billing.catalog import get_package, get_packages_for_role
from packages.billing.models.domain.package import Package
from packages.billing.models.schemas.billing import (
    CancelSubscriptionRequest,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    DowngradeValidationResponse,
    PlanChangeRequest,
    PortalSessionResponse,
    SubscriptionResponse,
)
from packages.billing.models.domain.subscription import Subscription
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.plan_change_service import PlanChangeService
from packages.billing.services.subscription_service import SubscriptionService
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

router = APIRouter()
logger = get_logger(__name__)


def get_subscription_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
    payment: PaymentProviderInterface = Depends(get_payment_provider),
) -> SubscriptionService:
    return SubscriptionService(store=store, payment=payment)


def get_plan_change_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
) -> PlanChangeService:
    return PlanChangeService(store=store)


def _to_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        billing_owner_id=subscription.billing_owner_id,
        role=subscription.role,
        package_id=subscription.package_id,
        limits=subscription.limits,
        status=subscription.status,
        has_access=subscription.has_access(),
        current_period_start=subscription.current_period_start,
        current_period_end=subscription.current_period_end,
        cancel_at_period_end=subscription.cancel_at_period_end,
        canceled_at=subscription.canceled_at,
    )


def _require_root_payer(tenant: Tenant) -> None:
    if tenant.is_managed:
        raise ForbiddenError("Your subscription is managed by your organization")


# ============================================================================
# Catalog
# ============================================================================


@router.get("/packages/{role}", response_model=List[Package])
@trace_span
async def list_packages(role: str = Path(...)):
    """Packages available to a frontend role, cheapest first."""
    packages = get_packages_for_role(role)
    if not packages:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No packages found for this role",
        )
    return packages


# ============================================================================
# Current subscription
# ============================================================================


@router.get("/current", response_model=Optional[SubscriptionResponse])
@trace_span
async def get_current_subscription(
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """The subscription covering the caller, or null."""
    subscription = await subscription_service.get_current(tenant.billing_owner_id)
    if subscription is None:
        return None
    return _to_response(subscription)


# ============================================================================
# Hosted pages
# ============================================================================


@router.post("/checkout", response_model=CheckoutSessionResponse)
@trace_span
async def create_checkout_session(
    request: CheckoutSessionRequest,
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    url = await subscription_service.create_checkout_session(
        tenant, request.role, request.package_id
    )
    return CheckoutSessionResponse(url=url)


@router.post("/portal", response_model=PortalSessionResponse)
@trace_span
async def create_portal_session(
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    _require_root_payer(tenant)
    url = await subscription_service.create_portal_session(tenant.billing_owner_id)
    return PortalSessionResponse(url=url)


# ============================================================================
# Plan changes
# ============================================================================


@router.post("/validate-downgrade", response_model=DowngradeValidationResponse)
@trace_span
async def validate_downgrade(
    request: PlanChangeRequest,
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
    plan_change_service: PlanChangeService = Depends(get_plan_change_service),
):
    """Dry run: list every limit current usage would exceed under the target."""
    subscription = await subscription_service.get_current(tenant.billing_owner_id)
    if subscription is None:
        raise ForbiddenError("You need an active subscription to perform this action.")

    current_package = get_package(subscription.role, subscription.package_id)
    target_package = get_package(subscription.role, request.package_id)
    violations = await plan_change_service.validate_downgrade(
        tenant.billing_owner_id, current_package, target_package
    )
    return DowngradeValidationResponse(allowed=not violations, violations=violations)


@router.post("/change-plan", response_model=SubscriptionResponse)
@trace_span
async def change_plan(
    request: PlanChangeRequest,
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Move to another package. Downgrades are refused while usage exceeds it."""
    _require_root_payer(tenant)
    subscription = await subscription_service.commit_plan_change(
        tenant.billing_owner_id, request.package_id
    )
    logger.info(
        f"Plan changed for {tenant.billing_owner_id} to {subscription.package_id}",
        extra={"billing_owner_id": tenant.billing_owner_id},
    )
    return _to_response(subscription)


@router.post("/cancel", response_model=SubscriptionResponse)
@trace_span
async def cancel_subscription(
    request: CancelSubscriptionRequest,
    tenant: Tenant = Depends(get_current_tenant),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Schedule (or unschedule) cancellation at the end of the current period."""
    _require_root_payer(tenant)
    subscription = await subscription_service.set_cancel_at_period_end(
        tenant.billing_owner_id, request.cancel_at_period_end
    )
    return _to_response(subscription)
