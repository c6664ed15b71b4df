"""
Interface for payment providers.

Abstracts payment processing away from specific platforms (Stripe, PayPal, etc.)
"""

from abc import ABC, abstractmethod
from typing import Optional

from packages.billing.models.domain.package import Package
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    async def create_checkout_session(
        self,
        billing_owner_id: str,
        package: Package,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> str:
        """
        Create a checkout session for a package subscription.

        The billing owner, role and package id travel as metadata on both the
        session and the subscription it creates, so webhooks can find the
        local record.

        Args:
            billing_owner_id: Billing owner paying for the package
            package: Catalog package to purchase
            success_url: URL to redirect on success
            cancel_url: URL to redirect on cancel
            customer_email: Customer email for receipt (new customers)
            customer_id: Existing customer ID to reuse

        Returns:
            checkout_url: URL of the hosted checkout page
        """
        pass

    @abstractmethod
    async def create_customer_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> str:
        """
        Create a customer portal session for managing subscription.

        Args:
            customer_id: Payment provider customer ID
            return_url: URL to return to after managing subscription

        Returns:
            portal_url: URL to customer portal
        """
        pass

    @abstractmethod
    async def retrieve_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        """Fetch the processor's current view of a subscription."""
        pass

    @abstractmethod
    async def update_subscription_package(
        self,
        subscription_id: str,
        billing_owner_id: str,
        package: Package,
    ) -> None:
        """
        Move an existing subscription to another package's price.

        Args:
            subscription_id: Payment provider subscription ID
            billing_owner_id: Billing owner, written back into the metadata
            package: Target catalog package
        """
        pass

    @abstractmethod
    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> None:
        """Schedule (or unschedule) cancellation at the end of the current period."""
        pass
