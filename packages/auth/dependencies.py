from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.factory import get_identity_provider
from packages.auth.providers.interface import IdentityProviderInterface
from packages.billing.services.quota_service import QuotaService
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)


@trace_span
async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
    identity: IdentityProviderInterface = Depends(get_identity_provider),
) -> AuthenticatedUser:
    """Get current authenticated user from a bearer ID token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = await identity.verify_token(token)
    return AuthenticatedUser(uid=claims.uid, email=claims.email)


@trace_span
async def get_current_tenant(
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: DirectoryStoreInterface = Depends(get_directory_store),
) -> Tenant:
    """Directory profile of the authenticated user."""
    tenant = await store.get_tenant(current_user.uid)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User profile not found."
        )
    return tenant


@trace_span
async def get_subscribed_tenant(
    tenant: Tenant = Depends(get_current_tenant),
    store: DirectoryStoreInterface = Depends(get_directory_store),
) -> Tenant:
    """
    Current tenant with an active subscription check.

    Managed tenants are checked against their billing owner's subscription.
    """
    await QuotaService(store).require_active_subscription(tenant)
    logger.debug(
        f"Subscription check passed for {tenant.id}",
        extra={"uid": tenant.id, "billing_owner_id": tenant.billing_owner_id},
    )
    return tenant
