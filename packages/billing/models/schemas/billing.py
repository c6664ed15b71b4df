"""
API schemas for billing operations.

Request and response models for subscription and usage endpoints. Field
names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import BillingRole, SubscriptionStatus
from packages.billing.models.domain.usage import DowngradeViolation


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ============================================================================
# Checkout Schemas
# ============================================================================


class CheckoutSessionRequest(_CamelModel):
    """Request to create a checkout session."""

    role: str = Field(..., description="Frontend or catalog role, e.g. 'school'")
    package_id: str


class CheckoutSessionResponse(_CamelModel):
    """Response with checkout URL."""

    url: str = Field(..., description="Stripe checkout session URL")


# ============================================================================
# Portal Schemas
# ============================================================================


class PortalSessionResponse(_CamelModel):
    """Response with portal URL."""

    url: str = Field(..., description="Stripe customer portal URL")


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionResponse(_CamelModel):
    """The caller's billing owner's subscription."""

    billing_owner_id: str
    role: BillingRole
    package_id: str
    limits: Dict[str, Any]
    status: SubscriptionStatus
    has_access: bool = Field(..., description="Whether new resources may be created")
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None


class PlanChangeRequest(_CamelModel):
    """Target package for validate-downgrade and change-plan."""

    package_id: str


class DowngradeValidationResponse(_CamelModel):
    allowed: bool
    violations: List[DowngradeViolation] = Field(default_factory=list)


class CancelSubscriptionRequest(_CamelModel):
    cancel_at_period_end: bool = True


# ============================================================================
# Usage Schemas
# ============================================================================


class QuotaCheckResponse(_CamelModel):
    """Outcome of a dry-run admission check."""

    allowed: bool
    current: int
    limit: Optional[int] = None
    requested: int
    reason: Optional[str] = None
    message: Optional[str] = None
    can_upgrade: bool = False
