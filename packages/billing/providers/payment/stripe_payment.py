"""
Stripe implementation of payment provider.
"""

from typing import Optional
import stripe

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.package import Package
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)


def _metadata(billing_owner_id: str, package: Package) -> dict:
    return {
        "billing_owner_id": billing_owner_id,
        "role": package.role.value,
        "package_id": package.id,
    }


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key

    @trace_span
    async def create_checkout_session(
        self,
        billing_owner_id: str,
        package: Package,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> str:
        """Create Stripe checkout session."""
        try:
            metadata = _metadata(billing_owner_id, package)
            params = {
                "payment_method_types": ["card"],
                "line_items": [{"price": package.stripe_price_id, "quantity": 1}],
                "mode": "subscription",
                "success_url": success_url,
                "cancel_url": cancel_url,
                "client_reference_id": billing_owner_id,
                "metadata": metadata,
                "subscription_data": {"metadata": metadata},
            }
            # Reuse the customer from an earlier lifecycle when there is one
            if customer_id:
                params["customer"] = customer_id
            elif customer_email:
                params["customer_email"] = customer_email

            session = stripe.checkout.Session.create(**params)

            logger.info(
                "Created Stripe checkout session",
                extra={
                    "billing_owner_id": billing_owner_id,
                    "package_id": package.id,
                    "session_id": session.id,
                },
            )

            return session.url

        except Exception as e:
            logger.error(
                f"Failed to create checkout session: {str(e)}",
                extra={"billing_owner_id": billing_owner_id, "error": str(e)},
            )
            raise

    @trace_span
    async def create_customer_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> str:
        """Create Stripe customer portal session."""
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )

            logger.info(
                "Created Stripe portal session", extra={"customer_id": customer_id}
            )

            return session.url

        except Exception as e:
            logger.error(
                f"Failed to create portal session: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise

    @trace_span
    async def retrieve_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        """Retrieve a Stripe subscription."""
        subscription = stripe.Subscription.retrieve(subscription_id)
        return StripeSubscriptionData.model_validate(subscription.to_dict())

    @trace_span
    async def update_subscription_package(
        self,
        subscription_id: str,
        billing_owner_id: str,
        package: Package,
    ) -> None:
        """
        Update existing Stripe subscription to a new package price.

        Prorates immediately; a payment failure aborts the change.
        """
        try:
            # Get current subscription to find the item ID
            subscription = stripe.Subscription.retrieve(subscription_id)
            item_id = subscription["items"]["data"][0]["id"]

            stripe.Subscription.modify(
                subscription_id,
                items=[
                    {
                        "id": item_id,
                        "price": package.stripe_price_id,
                    }
                ],
                metadata=_metadata(billing_owner_id, package),
                proration_behavior="always_invoice",
                payment_behavior="error_if_incomplete",
            )

            logger.info(
                f"Updated Stripe subscription to {package.id}",
                extra={
                    "subscription_id": subscription_id,
                    "package_id": package.id,
                    "billing_owner_id": billing_owner_id,
                },
            )

        except Exception as e:
            logger.error(
                f"Failed to update subscription package: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise

    @trace_span
    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> None:
        """Toggle Stripe's cancel_at_period_end flag."""
        try:
            stripe.Subscription.modify(
                subscription_id, cancel_at_period_end=cancel_at_period_end
            )

            logger.info(
                f"Set cancel_at_period_end={cancel_at_period_end}",
                extra={"subscription_id": subscription_id},
            )

        except Exception as e:
            logger.error(
                f"Failed to update cancellation: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise
