"""
Factory for getting payment provider instance.
"""

from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider


def get_payment_provider() -> PaymentProviderInterface:
    """
    Get payment provider instance.

    Also used as a FastAPI dependency so tests can substitute a mock.

    Returns:
        PaymentProviderInterface: Configured payment provider
    """
    return StripePaymentProvider()
