"""Domain models for billing."""

from packages.billing.models.domain.enums import BillingRole, SubscriptionStatus
from packages.billing.models.domain.package import Package
from packages.billing.models.domain.resources import (
    LimitKey,
    ResourceBase,
    ResourceKey,
)
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.usage import (
    DenialReason,
    DowngradeViolation,
    LimitCheckResult,
    LimitView,
    MyQuota,
    UsageSnapshot,
)

__all__ = [
    # Enums
    "BillingRole",
    "SubscriptionStatus",
    # Catalog
    "Package",
    "LimitKey",
    "ResourceBase",
    "ResourceKey",
    # Subscription
    "Subscription",
    # Usage
    "DenialReason",
    "DowngradeViolation",
    "LimitCheckResult",
    "LimitView",
    "MyQuota",
    "UsageSnapshot",
]
