"""
Usage aggregation.

A usage snapshot is recomputed from the directory on every call; there is
no counter to drift out of sync with the records it counts.
"""

from collections import Counter
from typing import Iterable, Optional

from common.core.otel_axiom_exporter import get_logger, trace_span
from common.db.context import readonly
from packages.billing.models.domain.usage import UsageSnapshot
from packages.directory.models.domain.enums import TenantRole
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)


def build_usage_snapshot(
    billing_owner_id: str,
    tenants: Iterable[Tenant],
    links: Iterable[ParentStudentLink],
    organizations: Iterable[Organization],
) -> UsageSnapshot:
    """Tally one billing owner's records into a snapshot."""
    students_per_staff: Counter = Counter()
    students_per_school: Counter = Counter()
    staff_per_school: Counter = Counter()
    employees_per_staff: Counter = Counter()
    students_total = employees_total = staff_total = 0

    for tenant in tenants:
        if tenant.role == TenantRole.STUDENT:
            students_total += 1
            if tenant.creator_id:
                students_per_staff[tenant.creator_id] += 1
            if tenant.organization_id:
                students_per_school[tenant.organization_id] += 1
        elif tenant.role == TenantRole.EMPLOYEE:
            employees_total += 1
            if tenant.creator_id:
                employees_per_staff[tenant.creator_id] += 1
        elif tenant.role.is_school_staff:
            staff_total += 1
            if tenant.organization_id:
                staff_per_school[tenant.organization_id] += 1
        elif tenant.role.is_employer_staff:
            staff_total += 1

    # The payer's own organization is not a managed school
    schools = sum(1 for org in organizations if org.owner_id != billing_owner_id)

    return UsageSnapshot(
        children=sum(1 for _ in links),
        schools=schools,
        staff_total=staff_total,
        students_total=students_total,
        employees_total=employees_total,
        students_per_staff=dict(students_per_staff),
        students_per_school=dict(students_per_school),
        staff_per_school=dict(staff_per_school),
        employees_per_staff=dict(employees_per_staff),
    )


class UsageService:
    """Computes usage snapshots for billing owners."""

    def __init__(self, store: Optional[DirectoryStoreInterface] = None):
        self.store = store or get_directory_store()

    @trace_span
    @readonly
    async def get_usage(self, billing_owner_id: Optional[str]) -> UsageSnapshot:
        """
        Current usage for a billing owner.

        An unknown or empty billing owner has an all-zero snapshot.
        """
        if not billing_owner_id:
            return UsageSnapshot()

        tenants = await self.store.list_tenants(billing_owner_id=billing_owner_id)
        links = await self.store.list_parent_links(billing_owner_id=billing_owner_id)
        organizations = await self.store.list_organizations(
            billing_owner_id=billing_owner_id
        )
        snapshot = build_usage_snapshot(billing_owner_id, tenants, links, organizations)
        logger.debug(
            f"Usage for {billing_owner_id}: {snapshot.model_dump()}",
        )
        return snapshot

    @trace_span
    async def refresh_usage(self, billing_owner_id: Optional[str]) -> UsageSnapshot:
        """Recompute usage. Identical to get_usage since nothing is cached."""
        snapshot = await self.get_usage(billing_owner_id)
        logger.info(
            f"Refreshed usage for billing owner {billing_owner_id}",
            extra={"billing_owner_id": billing_owner_id},
        )
        return snapshot
