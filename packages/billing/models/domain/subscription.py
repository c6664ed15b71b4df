"""
Domain models for subscriptions.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from packages.billing.models.domain.enums import BillingRole, SubscriptionStatus


class Subscription(BaseModel):
    """
    A billing owner's subscription (exactly one per billing owner).

    limits always mirror the catalog package named by package_id; the two
    are only ever written together.
    """

    model_config = ConfigDict(from_attributes=True)

    billing_owner_id: str
    role: BillingRole
    package_id: str
    limits: Dict[str, Any] = Field(default_factory=dict)
    status: SubscriptionStatus

    # Billing cycle
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None

    # External platform IDs
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_access(self) -> bool:
        """Check if subscription admits new resources."""
        return self.status.has_access()
