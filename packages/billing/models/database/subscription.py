"""
Database entity for subscriptions.
"""

from sqlalchemy import Boolean, Column, String, DateTime, JSON

from common.db.base import Base, TimestampMixin


class SubscriptionEntity(TimestampMixin, Base):
    """
    Subscription database entity.

    Keyed by billing owner: one row per billing owner. limits is a copy of
    the catalog package's limits, rewritten whenever package_id changes.
    """

    __tablename__ = "subscriptions"

    billing_owner_id = Column(String(128), primary_key=True)

    role = Column(String(50), nullable=False)
    package_id = Column(String(50), nullable=False)
    limits = Column(JSON, nullable=False, default=dict)
    status = Column(String(50), nullable=False, index=True)

    # Billing cycle
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    # External platform IDs
    stripe_subscription_id = Column(String(255), nullable=True, unique=True)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
