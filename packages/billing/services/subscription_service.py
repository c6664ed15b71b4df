"""
Service for managing subscriptions.

The subscription lifecycle is a small state machine:

    incomplete/trialing -> active <-> past_due/unpaid -> canceled

canceled is terminal for a lifecycle; a fresh checkout starts a new one on
the same record. package_id and limits are only ever written together.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Optional

from common.core.config import settings
from common.core.exceptions import (
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.catalog import billing_role_for_tenant_role, get_package, map_role_to_backend
from packages.billing.models.domain.enums import BillingRole, SubscriptionStatus
from packages.billing.models.domain.stripe_webhooks import (
    StripeSubscriptionData,
    StripeSubscriptionStatus,
)
from packages.billing.models.domain.subscription import Subscription
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.plan_change_service import PlanChangeService
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    SubscriptionStatus.INCOMPLETE: frozenset(
        {
            SubscriptionStatus.TRIALING,
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.UNPAID,
            SubscriptionStatus.CANCELED,
        }
    ),
    SubscriptionStatus.TRIALING: frozenset(
        {
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.UNPAID,
            SubscriptionStatus.CANCELED,
        }
    ),
    SubscriptionStatus.ACTIVE: frozenset(
        {
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.UNPAID,
            SubscriptionStatus.CANCELED,
        }
    ),
    SubscriptionStatus.PAST_DUE: frozenset(
        {
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.UNPAID,
            SubscriptionStatus.CANCELED,
        }
    ),
    SubscriptionStatus.UNPAID: frozenset(
        {
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.CANCELED,
        }
    ),
    SubscriptionStatus.CANCELED: frozenset(),
}

_STRIPE_STATUS_MAP: Dict[StripeSubscriptionStatus, SubscriptionStatus] = {
    StripeSubscriptionStatus.INCOMPLETE: SubscriptionStatus.INCOMPLETE,
    StripeSubscriptionStatus.INCOMPLETE_EXPIRED: SubscriptionStatus.CANCELED,
    StripeSubscriptionStatus.TRIALING: SubscriptionStatus.TRIALING,
    StripeSubscriptionStatus.ACTIVE: SubscriptionStatus.ACTIVE,
    StripeSubscriptionStatus.PAST_DUE: SubscriptionStatus.PAST_DUE,
    StripeSubscriptionStatus.UNPAID: SubscriptionStatus.UNPAID,
    StripeSubscriptionStatus.CANCELED: SubscriptionStatus.CANCELED,
    StripeSubscriptionStatus.PAUSED: SubscriptionStatus.UNPAID,
}


def map_stripe_status(stripe_status: StripeSubscriptionStatus) -> SubscriptionStatus:
    """Map Stripe subscription status to our subscription status."""
    return _STRIPE_STATUS_MAP[stripe_status]


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def transition(subscription: Subscription, new_status: SubscriptionStatus) -> Subscription:
    """
    Copy of subscription moved to new_status.

    Moving to the current status is a no-op, so redelivered events are safe.

    Raises:
        InvalidStateTransitionError: If the lifecycle does not allow the move
    """
    if subscription.status == new_status:
        return subscription
    if new_status not in ALLOWED_TRANSITIONS[subscription.status]:
        raise InvalidStateTransitionError(
            f"Cannot move subscription from {subscription.status.value} to {new_status.value}",
            {"from": subscription.status.value, "to": new_status.value},
        )
    update = {"status": new_status}
    if new_status == SubscriptionStatus.CANCELED:
        update["canceled_at"] = datetime.now(timezone.utc)
    return subscription.model_copy(update=update)


class SubscriptionService:
    """Service for subscription management."""

    def __init__(
        self,
        store: Optional[DirectoryStoreInterface] = None,
        payment: Optional[PaymentProviderInterface] = None,
        plan_change_service: Optional[PlanChangeService] = None,
    ):
        self.store = store or get_directory_store()
        self.payment = payment or get_payment_provider()
        self.plan_change_service = plan_change_service or PlanChangeService(self.store)

    @trace_span
    async def get_current(self, billing_owner_id: str) -> Optional[Subscription]:
        return await self.store.get_subscription(billing_owner_id)

    async def _require(self, billing_owner_id: str) -> Subscription:
        subscription = await self.store.get_subscription(billing_owner_id)
        if not subscription:
            raise NotFoundError("Subscription not found")
        return subscription

    async def _locate(
        self, stripe_subscription_id: Optional[str], billing_owner_id: Optional[str] = None
    ) -> Optional[Subscription]:
        subscription = None
        if stripe_subscription_id:
            subscription = await self.store.find_subscription_by_stripe_id(
                stripe_subscription_id
            )
        if subscription is None and billing_owner_id:
            subscription = await self.store.get_subscription(billing_owner_id)
        return subscription

    async def _apply(
        self,
        located: Subscription,
        change: Callable[[Subscription], Subscription],
    ) -> Optional[Subscription]:
        """
        Re-read the located record under its owner's lock and save change(record).

        Returns None when the owner has since moved to another processor
        subscription, so events for the old one no longer apply.
        """
        async with self.store.billing_owner_lock(located.billing_owner_id):
            current = await self.store.get_subscription(located.billing_owner_id)
            if current is None:
                return None
            if (
                located.stripe_subscription_id
                and current.stripe_subscription_id
                and current.stripe_subscription_id != located.stripe_subscription_id
            ):
                logger.warning(
                    f"Ignoring event for replaced subscription {located.stripe_subscription_id}",
                    extra={
                        "billing_owner_id": located.billing_owner_id,
                        "subscription_id": located.stripe_subscription_id,
                    },
                )
                return None
            updated = change(current)
            if updated is current:
                return current
            return await self.store.save_subscription(updated)

    # ========================================================================
    # Processor-driven transitions
    # ========================================================================

    @trace_span
    async def activate_from_checkout(
        self,
        billing_owner_id: str,
        role: str,
        package_id: str,
        stripe_subscription: StripeSubscriptionData,
    ) -> Subscription:
        """
        Record the subscription a completed checkout created.

        Replaces whatever the owner had before: a redelivered checkout simply
        writes the same record again, and a checkout after cancellation starts
        a new lifecycle.
        """
        package = get_package(role, package_id)
        status = map_stripe_status(stripe_subscription.status)

        async with self.store.billing_owner_lock(billing_owner_id):
            existing = await self.store.get_subscription(billing_owner_id)
            if (
                existing
                and not existing.status.is_terminal()
                and existing.stripe_subscription_id
                and existing.stripe_subscription_id != stripe_subscription.id
            ):
                logger.warning(
                    f"Replacing live subscription {existing.stripe_subscription_id} for {billing_owner_id}",
                    extra={
                        "billing_owner_id": billing_owner_id,
                        "old_subscription_id": existing.stripe_subscription_id,
                        "new_subscription_id": stripe_subscription.id,
                    },
                )

            subscription = Subscription(
                billing_owner_id=billing_owner_id,
                role=package.role,
                package_id=package.id,
                limits=dict(package.limits),
                status=status,
                current_period_start=_from_timestamp(stripe_subscription.current_period_start),
                current_period_end=_from_timestamp(stripe_subscription.current_period_end),
                cancel_at_period_end=stripe_subscription.cancel_at_period_end,
                stripe_subscription_id=stripe_subscription.id,
                stripe_customer_id=stripe_subscription.customer,
                created_at=existing.created_at if existing else None,
            )
            saved = await self.store.save_subscription(subscription)

        logger.info(
            f"Subscription {package.role.value}/{package.id} recorded for {billing_owner_id}",
            extra={
                "billing_owner_id": billing_owner_id,
                "package_id": package.id,
                "status": status.value,
                "subscription_id": stripe_subscription.id,
            },
        )
        return saved

    @trace_span
    async def apply_processor_update(
        self, stripe_subscription: StripeSubscriptionData
    ) -> Optional[Subscription]:
        """
        Sync status, billing period, cancellation flag and package from the processor.

        Limits are re-read from the catalog so they always match package_id.
        Returns None when no local record matches.
        """
        subscription = await self._locate(
            stripe_subscription.id, stripe_subscription.metadata.billing_owner_id
        )
        if subscription is None:
            logger.warning(
                f"No subscription found for Stripe subscription {stripe_subscription.id}",
                extra={"subscription_id": stripe_subscription.id},
            )
            return None

        new_status = map_stripe_status(stripe_subscription.status)

        def sync(current: Subscription) -> Subscription:
            package = get_package(
                current.role, stripe_subscription.metadata.package_id or current.package_id
            )
            updated = transition(current, new_status).model_copy(
                update={
                    "package_id": package.id,
                    "limits": dict(package.limits),
                    "cancel_at_period_end": stripe_subscription.cancel_at_period_end,
                    "current_period_start": _from_timestamp(stripe_subscription.current_period_start)
                    or current.current_period_start,
                    "current_period_end": _from_timestamp(stripe_subscription.current_period_end)
                    or current.current_period_end,
                    "stripe_subscription_id": stripe_subscription.id,
                }
            )
            if stripe_subscription.canceled_at:
                updated = updated.model_copy(
                    update={"canceled_at": _from_timestamp(stripe_subscription.canceled_at)}
                )
            return updated

        saved = await self._apply(subscription, sync)
        if saved is None:
            return None

        logger.info(
            f"Stripe subscription updated: {stripe_subscription.id}",
            extra={
                "subscription_id": stripe_subscription.id,
                "billing_owner_id": saved.billing_owner_id,
                "stripe_status": stripe_subscription.status.value,
                "our_status": new_status.value,
                "package_id": saved.package_id,
            },
        )
        return saved

    @trace_span
    async def mark_payment_failed(self, stripe_subscription_id: str) -> Optional[Subscription]:
        """Invoice payment failed: the subscription goes past_due."""
        subscription = await self._locate(stripe_subscription_id)
        if subscription is None:
            logger.warning(f"Payment failed for unknown subscription {stripe_subscription_id}")
            return None

        saved = await self._apply(
            subscription, lambda current: transition(current, SubscriptionStatus.PAST_DUE)
        )
        logger.info(
            f"Marked subscription as past_due for {subscription.billing_owner_id}",
            extra={"billing_owner_id": subscription.billing_owner_id},
        )
        return saved

    @trace_span
    async def mark_payment_succeeded(self, stripe_subscription_id: str) -> Optional[Subscription]:
        """Invoice paid: a past_due, unpaid or incomplete subscription becomes active again."""
        subscription = await self._locate(stripe_subscription_id)
        if subscription is None:
            logger.warning(f"Payment succeeded for unknown subscription {stripe_subscription_id}")
            return None

        def reactivate(current: Subscription) -> Subscription:
            if current.status not in (
                SubscriptionStatus.PAST_DUE,
                SubscriptionStatus.UNPAID,
                SubscriptionStatus.INCOMPLETE,
            ):
                return current
            return transition(current, SubscriptionStatus.ACTIVE)

        saved = await self._apply(subscription, reactivate)
        if saved is not None and saved.status == SubscriptionStatus.ACTIVE:
            logger.info(
                f"Subscription for {subscription.billing_owner_id} active after payment",
                extra={"billing_owner_id": subscription.billing_owner_id},
            )
        return saved

    @trace_span
    async def mark_canceled(
        self, stripe_subscription_id: str, billing_owner_id: Optional[str] = None
    ) -> Optional[Subscription]:
        """Subscription deleted at the processor: end this lifecycle."""
        subscription = await self._locate(stripe_subscription_id, billing_owner_id)
        if subscription is None:
            logger.warning(f"Cancellation for unknown subscription {stripe_subscription_id}")
            return None

        saved = await self._apply(
            subscription, lambda current: transition(current, SubscriptionStatus.CANCELED)
        )
        logger.info(
            f"Subscription canceled for {subscription.billing_owner_id}",
            extra={"billing_owner_id": subscription.billing_owner_id},
        )
        return saved

    # ========================================================================
    # Customer-driven changes
    # ========================================================================

    @trace_span
    async def commit_plan_change(
        self, billing_owner_id: str, target_package_id: str
    ) -> Subscription:
        """
        Move a subscription to another package of the same role.

        The downgrade check and the write happen under the owner's lock, so
        no resource can be admitted in between. The record is read again
        after the processor call and only package_id and limits are changed.

        Raises:
            NotFoundError: No subscription, or unknown package
            InvalidStateTransitionError: The subscription is canceled
            ValidationError: Already on the package, or no processor subscription
            ValidationConflictError: Current usage exceeds the target limits
        """
        async with self.store.billing_owner_lock(billing_owner_id):
            subscription = await self._require(billing_owner_id)
            if subscription.status.is_terminal():
                raise InvalidStateTransitionError(
                    "Cannot change the plan of a canceled subscription"
                )
            if subscription.package_id == target_package_id:
                raise ValidationError("Already on this package")
            if not subscription.stripe_subscription_id:
                raise ValidationError("No Stripe subscription found")

            current_package = get_package(subscription.role, subscription.package_id)
            target_package = get_package(subscription.role, target_package_id)

            await self.plan_change_service.ensure_downgrade_allowed(
                billing_owner_id, current_package, target_package
            )
            await self.payment.update_subscription_package(
                subscription.stripe_subscription_id, billing_owner_id, target_package
            )

            latest = await self._require(billing_owner_id)
            saved = await self.store.save_subscription(
                latest.model_copy(
                    update={
                        "package_id": target_package.id,
                        "limits": dict(target_package.limits),
                    }
                )
            )

        logger.info(
            f"Changed package for {billing_owner_id} from {current_package.id} to {target_package.id}",
            extra={
                "billing_owner_id": billing_owner_id,
                "old_package_id": current_package.id,
                "new_package_id": target_package.id,
            },
        )
        return saved

    @trace_span
    async def set_cancel_at_period_end(
        self, billing_owner_id: str, cancel_at_period_end: bool = True
    ) -> Subscription:
        """Schedule cancellation at period end (or take it back)."""
        async with self.store.billing_owner_lock(billing_owner_id):
            subscription = await self._require(billing_owner_id)
            if subscription.status.is_terminal():
                raise InvalidStateTransitionError("Subscription is already canceled")

            if subscription.stripe_subscription_id:
                await self.payment.set_cancel_at_period_end(
                    subscription.stripe_subscription_id, cancel_at_period_end
                )

            latest = await self._require(billing_owner_id)
            return await self.store.save_subscription(
                latest.model_copy(update={"cancel_at_period_end": cancel_at_period_end})
            )

    # ========================================================================
    # Hosted pages
    # ========================================================================

    @trace_span
    async def create_checkout_session(
        self, tenant: Tenant, role: str, package_id: str
    ) -> str:
        """
        Start a hosted checkout for a root payer.

        Raises:
            ForbiddenError: Tenant is covered by someone else's subscription,
                or its role does not pay
            NotFoundError: Unknown role or package
            ValidationError: Subscription already active
        """
        if tenant.is_managed:
            raise ForbiddenError("Your subscription is managed by your organization")
        tenant_billing_role = billing_role_for_tenant_role(tenant.role)
        requested_role: Optional[BillingRole] = map_role_to_backend(role)
        if tenant_billing_role is None or requested_role != tenant_billing_role:
            raise ForbiddenError(f"Role {tenant.role.value} cannot purchase {role} packages")

        package = get_package(requested_role, package_id)

        existing = await self.store.get_subscription(tenant.billing_owner_id)
        if existing and existing.has_access():
            raise ValidationError(
                "Subscription already active; change plan instead",
                {"packageId": existing.package_id},
            )

        return await self.payment.create_checkout_session(
            billing_owner_id=tenant.billing_owner_id,
            package=package,
            success_url=f"{settings.frontend_url}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.frontend_url}/subscription/cancel",
            customer_email=tenant.email,
            customer_id=existing.stripe_customer_id if existing else None,
        )

    @trace_span
    async def create_portal_session(self, billing_owner_id: str) -> str:
        subscription = await self.store.get_subscription(billing_owner_id)
        if not subscription or not subscription.stripe_customer_id:
            raise ValidationError("No Stripe customer found")
        return await self.payment.create_customer_portal_session(
            subscription.stripe_customer_id, f"{settings.frontend_url}/dashboard"
        )
