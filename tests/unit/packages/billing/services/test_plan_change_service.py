"""Unit tests for the downgrade guard."""

import pytest

from common.core.exceptions import ValidationConflictError
from packages.billing.catalog import get_package
from packages.billing.models.domain.enums import BillingRole
from packages.billing.services.plan_change_service import PlanChangeService
from packages.directory.models.domain.enums import TenantRole
from tests.factories.directory_factory import DirectoryFactory


async def _parent_with_links(store, count: int):
    parent = await DirectoryFactory.create_tenant(store, "parent-1", TenantRole.PARENT)
    for i in range(count):
        await DirectoryFactory.create_parent_link(store, parent.id, f"child-{i}", parent.id)
    return parent


@pytest.mark.asyncio
class TestValidateDowngrade:
    async def test_downgrade_below_usage_reports_excess(self, store):
        parent = await _parent_with_links(store, 3)

        violations = await PlanChangeService(store).validate_downgrade(
            parent.id,
            get_package(BillingRole.PARENT, "standard"),
            get_package(BillingRole.PARENT, "basic"),
        )

        assert len(violations) == 1
        violation = violations[0]
        assert violation.resource_key == "children"
        assert (violation.current, violation.limit, violation.excess) == (3, 2, 1)
        assert "Remove 1" in violation.message

    async def test_downgrade_within_usage_is_allowed(self, memory_store):
        parent = await _parent_with_links(memory_store, 2)

        violations = await PlanChangeService(memory_store).validate_downgrade(
            parent.id,
            get_package(BillingRole.PARENT, "premium"),
            get_package(BillingRole.PARENT, "basic"),
        )

        assert violations == []

    async def test_upgrade_is_never_checked(self, memory_store):
        parent = await _parent_with_links(memory_store, 9)

        violations = await PlanChangeService(memory_store).validate_downgrade(
            parent.id,
            get_package(BillingRole.PARENT, "basic"),
            get_package(BillingRole.PARENT, "standard"),
        )

        assert violations == []

    async def test_scoped_limit_uses_worst_staff_member(self, memory_store):
        school = await DirectoryFactory.create_tenant(memory_store, "school-1", TenantRole.SCHOOL_ADMIN)
        for staff_id, students in (("t-1", 10), ("t-2", 45)):
            await DirectoryFactory.create_tenant(
                memory_store, staff_id, TenantRole.TEACHER, billing_owner_id=school.id
            )
            for i in range(students):
                await DirectoryFactory.create_tenant(
                    memory_store,
                    f"{staff_id}-s-{i}",
                    TenantRole.STUDENT,
                    billing_owner_id=school.id,
                    creator_id=staff_id,
                )

        violations = await PlanChangeService(memory_store).validate_downgrade(
            school.id,
            get_package(BillingRole.SCHOOL_ADMIN, "professional"),
            get_package(BillingRole.SCHOOL_ADMIN, "starter"),
        )

        assert [(v.resource_key, v.current, v.excess) for v in violations] == [
            ("studentsPerStaff", 45, 15)
        ]

    async def test_ensure_downgrade_allowed_raises_with_violations(self, memory_store):
        parent = await _parent_with_links(memory_store, 3)

        with pytest.raises(ValidationConflictError) as exc_info:
            await PlanChangeService(memory_store).ensure_downgrade_allowed(
                parent.id,
                get_package(BillingRole.PARENT, "standard"),
                get_package(BillingRole.PARENT, "basic"),
            )

        body = exc_info.value.to_dict()
        assert body["violations"][0]["resourceKey"] == "children"
        assert body["violations"][0]["excess"] == 1
