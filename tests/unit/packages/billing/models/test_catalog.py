"""Unit tests for the package catalog."""

import pytest

from common.core.exceptions import NotFoundError
from packages.billing.catalog import (
    billing_role_for_tenant_role,
    get_package,
    get_packages_for_role,
    map_role_to_backend,
    validate_package,
)
from packages.billing.models.domain.enums import BillingRole
from packages.directory.models.domain.enums import TenantRole


class TestRoleMapping:
    @pytest.mark.parametrize(
        "frontend,expected",
        [
            ("parent", BillingRole.PARENT),
            ("school", BillingRole.SCHOOL_ADMIN),
            ("district", BillingRole.DISTRICT_ADMIN),
            ("employer", BillingRole.EMPLOYER_ADMIN),
            ("schoolAdmin", BillingRole.SCHOOL_ADMIN),
            (BillingRole.EMPLOYER_ADMIN, BillingRole.EMPLOYER_ADMIN),
        ],
    )
    def test_map_role_to_backend(self, frontend, expected):
        assert map_role_to_backend(frontend) == expected

    def test_unknown_role(self):
        assert map_role_to_backend("teacher") is None

    def test_billing_role_for_tenant_role(self):
        assert billing_role_for_tenant_role(TenantRole.DISTRICT_ADMIN) == BillingRole.DISTRICT_ADMIN
        assert billing_role_for_tenant_role(TenantRole.TEACHER) is None


class TestCatalog:
    @pytest.mark.parametrize(
        "role,package_id,limits",
        [
            ("parent", "basic", {"children": 2}),
            ("parent", "standard", {"children": 5}),
            ("parent", "premium", {"children": 10}),
            ("school", "starter", {"staff": 5, "studentsPerStaff": 30}),
            ("school", "professional", {"staff": 15, "studentsPerStaff": 50}),
            ("school", "enterprise", {"staff": 50, "studentsPerStaff": 100}),
            ("district", "small", {"schools": 5, "staffPerSchool": 10, "studentsPerStaff": 30}),
            ("district", "large", {"schools": 50, "staffPerSchool": 50, "studentsPerStaff": 100}),
            ("employer", "small", {"staff": 3, "employeesPerStaff": 20}),
            ("employer", "enterprise", {"staff": 25, "employeesPerStaff": 100}),
        ],
    )
    def test_package_limits(self, role, package_id, limits):
        assert get_package(role, package_id).limits == limits

    def test_unknown_package(self):
        with pytest.raises(NotFoundError):
            get_package("parent", "gold")

    def test_unknown_role(self):
        with pytest.raises(NotFoundError):
            get_package("teacher", "basic")

    def test_packages_sorted_by_price(self):
        packages = get_packages_for_role("school")

        assert [p.id for p in packages] == ["starter", "professional", "enterprise"]

    def test_packages_for_unknown_role(self):
        assert get_packages_for_role("teacher") == []

    @pytest.mark.parametrize("role", list(BillingRole))
    def test_every_package_is_valid(self, role):
        for package in get_packages_for_role(role):
            assert validate_package(role, package.id)
            assert package.price_cents > 0

    def test_validate_unknown_package(self):
        assert validate_package("parent", "gold") is False
