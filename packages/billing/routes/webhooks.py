"""
Webhook endpoints for billing events.

Public endpoints (no auth required) for Stripe webhooks.
"""

from fastapi import APIRouter, Depends, Request

from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.webhooks.stripe_webhook import handle_stripe_webhook
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

router = APIRouter()


def get_webhook_subscription_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
    payment: PaymentProviderInterface = Depends(get_payment_provider),
) -> SubscriptionService:
    return SubscriptionService(store=store, payment=payment)


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    subscription_service: SubscriptionService = Depends(
        get_webhook_subscription_service
    ),
) -> dict[str, str]:
    """
    Receive webhook events from Stripe payment platform.

    No authentication required - webhook signature validated internally.
    """
    return await handle_stripe_webhook(request, subscription_service)
