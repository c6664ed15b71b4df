"""
Billing enums - strongly typed enumerations for subscription and billing states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle.

    Flow: incomplete/trialing -> active <-> past_due/unpaid -> canceled
    """

    INCOMPLETE = "incomplete"  # Checkout started, first payment not confirmed
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"  # Latest invoice failed, processor is retrying
    UNPAID = "unpaid"  # Retries exhausted
    CANCELED = "canceled"  # Terminal

    def has_access(self) -> bool:
        """Check if this status admits new resources."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)

    def is_terminal(self) -> bool:
        return self == SubscriptionStatus.CANCELED


class BillingRole(str, Enum):
    """Payer roles that own a package catalog."""

    PARENT = "parent"
    SCHOOL_ADMIN = "schoolAdmin"
    DISTRICT_ADMIN = "districtAdmin"
    EMPLOYER_ADMIN = "employerAdmin"
