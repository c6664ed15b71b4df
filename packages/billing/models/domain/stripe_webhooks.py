"""
Domain models for Stripe webhook payloads.

Only the fields the subscription lifecycle reads are modelled; everything
else in the Stripe objects is ignored.
"""

from typing import Optional, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we handle."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"

    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"

    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class StripeSubscriptionStatus(str, Enum):
    """Stripe subscription status values."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class StripeMetadata(BaseModel):
    """Metadata we attach to checkout sessions and subscriptions."""

    model_config = ConfigDict(extra="ignore")

    billing_owner_id: Optional[str] = None
    role: Optional[str] = None
    package_id: Optional[str] = None


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    status: StripeSubscriptionStatus
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: Optional[str] = None


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    payment_status: Optional[str] = None
    status: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]


class StripeWebhookPayload(BaseModel):
    """Complete Stripe webhook payload."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData
    created: int
    livemode: bool = False
