"""
Repository for subscriptions.
"""

from typing import Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.subscription import Subscription
from common.core.otel_axiom_exporter import trace_span


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Subscriptions keyed by billing owner id."""

    def __init__(self):
        super().__init__(SubscriptionEntity, Subscription, key_column="billing_owner_id")

    @trace_span
    async def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        async with self._get_session(readonly=True) as session:
            result = await session.execute(
                select(SubscriptionEntity).where(
                    SubscriptionEntity.stripe_subscription_id == stripe_subscription_id
                )
            )
            db_subscription = result.scalar_one_or_none()
            return self._entity_to_domain(db_subscription) if db_subscription else None
