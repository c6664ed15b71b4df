"""
Stripe webhook handler for payment events.

Handles events from Stripe payment platform:
- Checkout session completion
- Subscription lifecycle events
- Invoice payment success/failure

Unexpected failures return 500 so Stripe retries the delivery.
"""

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.config import settings
from common.core.exceptions import InvalidStateTransitionError
from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.stripe_webhooks import (
    StripeCheckoutSessionData,
    StripeInvoiceData,
    StripeSubscriptionData,
    StripeWebhookPayload,
    StripeWebhookType,
)
from packages.billing.services.subscription_service import SubscriptionService

logger = get_logger(__name__)


async def handle_stripe_webhook(
    request: Request, subscription_service: SubscriptionService
) -> dict[str, str]:
    """
    Handle incoming webhook from Stripe.

    Validates webhook signature and routes to appropriate handler.
    """
    try:
        # Get raw body for signature verification
        payload_bytes = await request.body()
        sig_header = request.headers.get("stripe-signature")

        if not sig_header:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing stripe-signature header",
            )

        # Verify webhook signature
        try:
            event = stripe.Webhook.construct_event(
                payload_bytes, sig_header, settings.stripe_webhook_secret
            )
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.error(f"Stripe webhook signature verification failed: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
            )

        # Parse into typed model
        payload = StripeWebhookPayload.model_validate(
            event.to_dict() if hasattr(event, "to_dict") else event
        )

        logger.info(
            f"Received Stripe webhook: {payload.type}",
            extra={
                "event_id": payload.id,
                "event_type": payload.type,
                "livemode": payload.livemode,
            },
        )

        data = payload.data.object
        try:
            if payload.type == StripeWebhookType.CHECKOUT_SESSION_COMPLETED:
                await _handle_checkout_completed(data, subscription_service)
            elif payload.type in (
                StripeWebhookType.SUBSCRIPTION_CREATED,
                StripeWebhookType.SUBSCRIPTION_UPDATED,
            ):
                await subscription_service.apply_processor_update(
                    StripeSubscriptionData.model_validate(data)
                )
            elif payload.type == StripeWebhookType.SUBSCRIPTION_DELETED:
                subscription = StripeSubscriptionData.model_validate(data)
                await subscription_service.mark_canceled(
                    subscription.id, subscription.metadata.billing_owner_id
                )
            elif payload.type in (
                StripeWebhookType.INVOICE_PAID,
                StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED,
            ):
                invoice = StripeInvoiceData.model_validate(data)
                if invoice.subscription:
                    await subscription_service.mark_payment_succeeded(invoice.subscription)
            elif payload.type == StripeWebhookType.INVOICE_PAYMENT_FAILED:
                invoice = StripeInvoiceData.model_validate(data)
                logger.warning(
                    f"Stripe invoice payment failed: {invoice.id}",
                    extra={
                        "invoice_id": invoice.id,
                        "customer_id": invoice.customer,
                        "amount_due": invoice.amount_due,
                        "subscription_id": invoice.subscription,
                    },
                )
                if invoice.subscription:
                    await subscription_service.mark_payment_failed(invoice.subscription)
            else:
                logger.info(f"Unhandled Stripe webhook type: {payload.type}")
        except InvalidStateTransitionError as e:
            # Stale or out-of-order event; retrying cannot make it apply
            logger.warning(
                f"Ignoring Stripe webhook {payload.id}: {e.message}",
                extra={"event_id": payload.id, "event_type": payload.type},
            )
            return {"status": "ignored"}

        return {"status": "success"}

    except ValidationError as e:
        logger.error(
            "Invalid Stripe webhook payload", extra={"validation_errors": e.errors()}
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}", extra={"error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )


async def _handle_checkout_completed(
    data: dict, subscription_service: SubscriptionService
) -> None:
    """
    Handle checkout.session.completed event.

    The subscription record is written here, after Stripe confirms payment,
    never in the checkout route.
    """
    session = StripeCheckoutSessionData.model_validate(data)
    metadata = session.metadata

    if not metadata.billing_owner_id or not metadata.role or not metadata.package_id:
        logger.error(
            "Missing metadata in checkout session", extra={"session_id": session.id}
        )
        return
    if not session.subscription:
        logger.error("No subscription ID in session", extra={"session_id": session.id})
        return

    stripe_subscription = await subscription_service.payment.retrieve_subscription(
        session.subscription
    )
    await subscription_service.activate_from_checkout(
        billing_owner_id=metadata.billing_owner_id,
        role=metadata.role,
        package_id=metadata.package_id,
        stripe_subscription=stripe_subscription,
    )
