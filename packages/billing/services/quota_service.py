"""
Service for quota enforcement and checking.

Admission control: before a tenant creates anything that counts against a
subscription, the billing owner's live usage plus the requested amount is
compared with the subscription's limit for that resource.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from common.core.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidConfigurationError,
    LimitExceededError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.resources import LimitKey, ResourceBase, ResourceKey
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.usage import (
    DenialReason,
    LimitCheckResult,
    LimitView,
    MyQuota,
    UsageSnapshot,
)
from packages.billing.services.usage_service import UsageService
from packages.directory.models.domain.enums import TenantRole
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)

T = TypeVar("T")

_LIMIT_LABELS: Dict[LimitKey, str] = {
    LimitKey.CHILDREN: "Children",
    LimitKey.SCHOOLS: "Schools",
    LimitKey.STAFF: "Staff",
    LimitKey.STUDENTS_PER_STAFF: "Students per staff",
    LimitKey.STAFF_PER_SCHOOL: "Staff per school",
    LimitKey.EMPLOYEES_PER_STAFF: "Employees per staff",
}


def _numeric_limit(value: Any) -> Optional[int]:
    """The limit as an int, or None when it is missing or not a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class QuotaService:
    """Service for quota enforcement."""

    def __init__(
        self,
        store: Optional[DirectoryStoreInterface] = None,
        usage_service: Optional[UsageService] = None,
    ):
        self.store = store or get_directory_store()
        self.usage_service = usage_service or UsageService(self.store)

    # ========================================================================
    # Limit views
    # ========================================================================

    def resolve_limit_view(
        self,
        resource_key: ResourceKey,
        context: Optional[Tenant],
        snapshot: UsageSnapshot,
        limits: Dict[str, Any],
    ) -> LimitView:
        """
        Pick the (current, limit) pair a check compares.

        - flat key: the aggregate count against the flat limit
        - scoped key: the sub-key's count (0 if absent) against the per-sub-key limit
        - managed tenant adding staff: its own school's staff count against
          the owner's staffPerSchool limit
        """
        limit_key = resource_key.limit_key

        if (
            resource_key.base == ResourceBase.STAFF
            and context is not None
            and context.is_managed
            and context.role == TenantRole.SCHOOL_ADMIN
        ):
            limit_key = LimitKey.STAFF_PER_SCHOOL
            current = snapshot.staff_per_school.get(context.organization_id or "", 0)
        elif limit_key.is_scoped:
            counts = snapshot.scoped(limit_key)
            if resource_key.sub_key:
                current = counts.get(resource_key.sub_key, 0)
            else:
                current = max(counts.values(), default=0)
        else:
            current = snapshot.flat(limit_key)

        return LimitView(
            limit_key=limit_key,
            current=current,
            limit=_numeric_limit(limits.get(limit_key.value)),
        )

    # ========================================================================
    # Admission checks
    # ========================================================================

    @trace_span
    async def check_limit(
        self,
        billing_owner_id: str,
        resource_key: Union[ResourceKey, str],
        requested_delta: int = 1,
        context: Optional[Tenant] = None,
    ) -> LimitCheckResult:
        """
        Decide whether requested_delta more units of a resource fit.

        Never raises for a denial; see enforce() for the raising variant.
        """
        if requested_delta < 0:
            raise InvalidArgumentError("requested_delta must not be negative")
        if isinstance(resource_key, str):
            resource_key = ResourceKey.parse(
                resource_key, default_sub_key=context.id if context else None
            )

        subscription = await self.store.get_subscription(billing_owner_id)
        if subscription is None:
            return self._deny(
                DenialReason.NO_SUBSCRIPTION,
                "No active subscription",
                requested=requested_delta,
            )
        if not subscription.has_access():
            return self._deny(
                DenialReason.SUBSCRIPTION_INACTIVE,
                f"Subscription not active ({subscription.status.value})",
                requested=requested_delta,
            )

        snapshot = await self.usage_service.get_usage(billing_owner_id)
        view = self.resolve_limit_view(resource_key, context, snapshot, subscription.limits)
        label = _LIMIT_LABELS[view.limit_key]

        if view.limit is None:
            return self._deny(
                DenialReason.LIMIT_NOT_CONFIGURED,
                f"{label} limit is not configured for package {subscription.package_id}",
                current=view.current,
                requested=requested_delta,
            )

        if view.current + requested_delta > view.limit:
            logger.warning(
                f"{label} limit reached for {billing_owner_id}: {view.current}+{requested_delta} > {view.limit}",
                extra={
                    "billing_owner_id": billing_owner_id,
                    "resource_key": resource_key.wire,
                    "current": view.current,
                    "limit": view.limit,
                    "requested": requested_delta,
                },
            )
            return self._deny(
                DenialReason.LIMIT_EXCEEDED,
                f"{label} limit reached",
                current=view.current,
                limit=view.limit,
                requested=requested_delta,
            )

        return LimitCheckResult(
            allowed=True,
            current=view.current,
            limit=view.limit,
            requested=requested_delta,
        )

    @staticmethod
    def _deny(
        reason: DenialReason,
        message: str,
        current: int = 0,
        limit: Optional[int] = None,
        requested: int = 0,
    ) -> LimitCheckResult:
        return LimitCheckResult(
            allowed=False,
            current=current,
            limit=limit,
            requested=requested,
            reason=reason,
            message=message,
            can_upgrade=True,
        )

    @trace_span
    async def enforce(
        self,
        billing_owner_id: str,
        resource_key: Union[ResourceKey, str],
        requested_delta: int = 1,
        context: Optional[Tenant] = None,
    ) -> LimitCheckResult:
        """
        check_limit, raising on denial.

        Raises:
            ForbiddenError: Subscription missing or not active
            InvalidConfigurationError: Subscription has no usable limit for the resource
            LimitExceededError: The request would go over the limit
        """
        result = await self.check_limit(
            billing_owner_id, resource_key, requested_delta, context
        )
        if result.allowed:
            return result

        if result.reason in (
            DenialReason.NO_SUBSCRIPTION,
            DenialReason.SUBSCRIPTION_INACTIVE,
        ):
            raise ForbiddenError(
                result.message,
                {"reason": result.reason.value, "canUpgrade": result.can_upgrade},
            )
        if result.reason == DenialReason.LIMIT_NOT_CONFIGURED:
            raise InvalidConfigurationError(result.message)
        raise LimitExceededError(
            result.message,
            current=result.current,
            limit=result.limit,
            requested=result.requested,
            can_upgrade=result.can_upgrade,
        )

    @trace_span
    async def reserve(
        self,
        billing_owner_id: str,
        resource_key: Union[ResourceKey, str],
        requested_delta: int,
        context: Optional[Tenant],
        create: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Admit requested_delta units and run create() while holding the owner's lock.

        Concurrent reservations for one billing owner are serialized, so two
        requests can never both pass the check for the last free unit.
        """
        async with self.store.billing_owner_lock(billing_owner_id):
            await self.enforce(billing_owner_id, resource_key, requested_delta, context)
            return await create()

    # ========================================================================
    # Subscription coverage
    # ========================================================================

    @trace_span
    async def require_active_subscription(self, tenant: Tenant) -> Subscription:
        """
        The active subscription covering a tenant.

        Managed tenants (e.g. a school admin created by a district) are covered
        by their billing owner's subscription.

        Raises:
            ForbiddenError: No subscription, or it is not active/trialing
        """
        subscription = await self.store.get_subscription(tenant.billing_owner_id)
        if subscription is None:
            raise ForbiddenError(
                "You need an active subscription to perform this action.",
                {"reason": DenialReason.NO_SUBSCRIPTION.value},
            )
        if not subscription.has_access():
            raise ForbiddenError(
                "Your subscription is not active. Please renew your subscription.",
                {
                    "reason": DenialReason.SUBSCRIPTION_INACTIVE.value,
                    "status": subscription.status.value,
                },
            )
        return subscription

    @trace_span
    async def get_my_quota(self, tenant: Tenant) -> Optional[MyQuota]:
        """
        Per-user quota for staff members and managed school admins.

        Returns None for roles without a per-user quota.

        Raises:
            ForbiddenError: The covering subscription does not exist
        """
        if tenant.role.is_school_staff:
            resource_type, per_staff = "students", True
            key = ResourceKey(base=ResourceBase.STUDENT, sub_key=tenant.id)
        elif tenant.role.is_employer_staff:
            resource_type, per_staff = "employees", True
            key = ResourceKey(base=ResourceBase.EMPLOYEE, sub_key=tenant.id)
        elif tenant.role == TenantRole.SCHOOL_ADMIN and tenant.is_managed:
            resource_type, per_staff = "staff", False
            key = ResourceKey(base=ResourceBase.STAFF)
        else:
            return None

        subscription = await self.store.get_subscription(tenant.billing_owner_id)
        if subscription is None:
            raise ForbiddenError(
                "No subscription found for your billing owner",
                {"reason": DenialReason.NO_SUBSCRIPTION.value},
            )

        snapshot = await self.usage_service.get_usage(tenant.billing_owner_id)
        view = self.resolve_limit_view(key, tenant, snapshot, subscription.limits)
        limit = view.limit or 0
        return MyQuota(
            resource_type=resource_type,
            per_staff=per_staff,
            current=view.current,
            limit=limit,
            remaining=max(limit - view.current, 0),
        )
