"""
Service for validating plan changes against current usage.
"""

from typing import List, Optional

from common.core.exceptions import ValidationConflictError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.package import Package
from packages.billing.models.domain.resources import LimitKey
from packages.billing.models.domain.usage import DowngradeViolation
from packages.billing.services.usage_service import UsageService
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)


class PlanChangeService:
    """Downgrade guard: a cheaper package must still fit current usage."""

    def __init__(
        self,
        store: Optional[DirectoryStoreInterface] = None,
        usage_service: Optional[UsageService] = None,
    ):
        self.store = store or get_directory_store()
        self.usage_service = usage_service or UsageService(self.store)

    @trace_span
    async def validate_downgrade(
        self,
        billing_owner_id: str,
        current_package: Package,
        target_package: Package,
    ) -> List[DowngradeViolation]:
        """
        Every target limit that current usage already exceeds.

        Only a move to a lower price is checked; upgrades and same-price
        moves return no violations. Scoped limits are compared against the
        single worst sub-key. Nothing is written.
        """
        if target_package.price >= current_package.price:
            return []

        snapshot = await self.usage_service.get_usage(billing_owner_id)
        violations: List[DowngradeViolation] = []

        for raw_key, limit in target_package.limits.items():
            try:
                limit_key = LimitKey(raw_key)
            except ValueError:
                logger.warning(
                    f"Package {target_package.id} has unknown limit key {raw_key}"
                )
                continue

            current = snapshot.worst(limit_key)
            if current > limit:
                excess = current - limit
                violations.append(
                    DowngradeViolation(
                        resource_key=limit_key.value,
                        current=current,
                        limit=limit,
                        excess=excess,
                        message=(
                            f"You have {current} {limit_key.value} but the "
                            f"{target_package.name} package allows {limit}. "
                            f"Remove {excess} before downgrading."
                        ),
                    )
                )

        if violations:
            logger.info(
                f"Downgrade {current_package.id} -> {target_package.id} blocked for {billing_owner_id}",
                extra={
                    "billing_owner_id": billing_owner_id,
                    "violations": [v.resource_key for v in violations],
                },
            )
        return violations

    async def ensure_downgrade_allowed(
        self,
        billing_owner_id: str,
        current_package: Package,
        target_package: Package,
    ) -> None:
        """
        Raises:
            ValidationConflictError: Carrying every violation found
        """
        violations = await self.validate_downgrade(
            billing_owner_id, current_package, target_package
        )
        if violations:
            raise ValidationConflictError(
                "Current usage exceeds the limits of the selected package",
                [v.model_dump(by_alias=True) for v in violations],
            )
