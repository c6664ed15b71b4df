"""
Package catalog.

Every payer role has a fixed set of monthly packages. Prices and limits are
edited here; Stripe product and price ids must match the Stripe dashboard.
"""

from typing import Dict, List, Optional, Union

from common.core.exceptions import NotFoundError
from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.enums import BillingRole
from packages.billing.models.domain.package import Package
from packages.billing.models.domain.resources import ROLE_LIMIT_KEYS
from packages.directory.models.domain.enums import TenantRole

logger = get_logger(__name__)


def _package(
    role: BillingRole,
    package_id: str,
    name: str,
    price: float,
    stripe_slug: str,
    limits: Dict[str, int],
    features: List[str],
    popular: bool = False,
) -> Package:
    return Package(
        role=role,
        id=package_id,
        name=name,
        price=price,
        stripe_product_id=f"prod_{stripe_slug}",
        stripe_price_id=f"price_{stripe_slug}_monthly",
        limits=limits,
        features=features,
        popular=popular,
    )


_CATALOG: Dict[BillingRole, Dict[str, Package]] = {
    BillingRole.PARENT: {
        p.id: p
        for p in (
            _package(
                BillingRole.PARENT,
                "basic",
                "Basic Parent",
                9.99,
                "parent_basic",
                {"children": 2},
                ["2 children", "Unlimited check-ins", "Geofence alerts", "Scheduled questions", "Email support"],
            ),
            _package(
                BillingRole.PARENT,
                "standard",
                "Standard Parent",
                19.99,
                "parent_standard",
                {"children": 5},
                [
                    "5 children",
                    "Unlimited check-ins",
                    "Geofence alerts",
                    "Scheduled questions",
                    "Priority support",
                    "Advanced notifications",
                ],
                popular=True,
            ),
            _package(
                BillingRole.PARENT,
                "premium",
                "Premium Parent",
                39.99,
                "parent_premium",
                {"children": 10},
                [
                    "10 children",
                    "Unlimited check-ins",
                    "Geofence alerts",
                    "Scheduled questions",
                    "Priority support",
                    "Advanced analytics",
                    "Export data",
                ],
            ),
        )
    },
    BillingRole.SCHOOL_ADMIN: {
        p.id: p
        for p in (
            _package(
                BillingRole.SCHOOL_ADMIN,
                "starter",
                "Starter School",
                49.99,
                "school_starter",
                {"staff": 5, "studentsPerStaff": 30},
                [
                    "5 staff members",
                    "150 total students (5 × 30)",
                    "Unlimited check-ins",
                    "Geofence alerts",
                    "Scheduled questions",
                    "Basic analytics",
                    "Email support",
                ],
            ),
            _package(
                BillingRole.SCHOOL_ADMIN,
                "professional",
                "Professional School",
                99.99,
                "school_professional",
                {"staff": 15, "studentsPerStaff": 50},
                [
                    "15 staff members",
                    "750 total students (15 × 50)",
                    "Unlimited check-ins",
                    "Geofence alerts",
                    "Scheduled questions",
                    "Advanced analytics",
                    "Priority support",
                    "Export data",
                ],
                popular=True,
            ),
            _package(
                BillingRole.SCHOOL_ADMIN,
                "enterprise",
                "Enterprise School",
                199.99,
                "school_enterprise",
                {"staff": 50, "studentsPerStaff": 100},
                [
                    "50 staff members",
                    "5,000 total students (50 × 100)",
                    "Unlimited check-ins",
                    "Geofence alerts",
                    "Scheduled questions",
                    "Advanced analytics",
                    "Priority support",
                    "Custom integrations",
                    "Dedicated support",
                ],
            ),
        )
    },
    BillingRole.DISTRICT_ADMIN: {
        p.id: p
        for p in (
            _package(
                BillingRole.DISTRICT_ADMIN,
                "small",
                "Small District",
                299.99,
                "district_small",
                {"schools": 5, "staffPerSchool": 10, "studentsPerStaff": 30},
                [
                    "5 schools",
                    "50 total staff (5 × 10)",
                    "1,500 total students (5 × 10 × 30)",
                    "District-wide analytics",
                    "Centralized management",
                    "Multi-school dashboard",
                    "Email support",
                ],
            ),
            _package(
                BillingRole.DISTRICT_ADMIN,
                "medium",
                "Medium District",
                599.99,
                "district_medium",
                {"schools": 15, "staffPerSchool": 20, "studentsPerStaff": 50},
                [
                    "15 schools",
                    "300 total staff (15 × 20)",
                    "15,000 total students (15 × 20 × 50)",
                    "District-wide analytics",
                    "Centralized management",
                    "Multi-school dashboard",
                    "Priority support",
                    "Custom reports",
                ],
                popular=True,
            ),
            _package(
                BillingRole.DISTRICT_ADMIN,
                "large",
                "Large District",
                999.99,
                "district_large",
                {"schools": 50, "staffPerSchool": 50, "studentsPerStaff": 100},
                [
                    "50 schools",
                    "2,500 total staff (50 × 50)",
                    "250,000 total students (50 × 50 × 100)",
                    "District-wide analytics",
                    "Centralized management",
                    "Multi-school dashboard",
                    "Priority support",
                    "Custom integrations",
                    "Dedicated account manager",
                    "API access",
                ],
            ),
        )
    },
    BillingRole.EMPLOYER_ADMIN: {
        p.id: p
        for p in (
            _package(
                BillingRole.EMPLOYER_ADMIN,
                "small",
                "Small Business",
                79.99,
                "employer_small",
                {"staff": 3, "employeesPerStaff": 20},
                [
                    "3 staff members (supervisors/HR)",
                    "60 total employees (3 × 20)",
                    "Unlimited check-ins",
                    "Scheduled questions",
                    "Basic analytics",
                    "Email support",
                ],
            ),
            _package(
                BillingRole.EMPLOYER_ADMIN,
                "medium",
                "Medium Business",
                149.99,
                "employer_medium",
                {"staff": 10, "employeesPerStaff": 50},
                [
                    "10 staff members",
                    "500 total employees (10 × 50)",
                    "Unlimited check-ins",
                    "Scheduled questions",
                    "Advanced analytics",
                    "Priority support",
                    "Export data",
                ],
                popular=True,
            ),
            _package(
                BillingRole.EMPLOYER_ADMIN,
                "enterprise",
                "Enterprise Business",
                299.99,
                "employer_enterprise",
                {"staff": 25, "employeesPerStaff": 100},
                [
                    "25 staff members",
                    "2,500 total employees (25 × 100)",
                    "Unlimited check-ins",
                    "Scheduled questions",
                    "Advanced analytics",
                    "Priority support",
                    "Custom integrations",
                    "Dedicated support",
                    "API access",
                ],
            ),
        )
    },
}

# Frontend role names -> catalog roles
_FRONTEND_ROLES: Dict[str, BillingRole] = {
    "parent": BillingRole.PARENT,
    "school": BillingRole.SCHOOL_ADMIN,
    "school-admin": BillingRole.SCHOOL_ADMIN,
    "schoolAdmin": BillingRole.SCHOOL_ADMIN,
    "district": BillingRole.DISTRICT_ADMIN,
    "district-admin": BillingRole.DISTRICT_ADMIN,
    "districtAdmin": BillingRole.DISTRICT_ADMIN,
    "employer": BillingRole.EMPLOYER_ADMIN,
    "employer-admin": BillingRole.EMPLOYER_ADMIN,
    "employerAdmin": BillingRole.EMPLOYER_ADMIN,
}

_TENANT_ROLE_TO_BILLING_ROLE: Dict[TenantRole, BillingRole] = {
    TenantRole.PARENT: BillingRole.PARENT,
    TenantRole.SCHOOL_ADMIN: BillingRole.SCHOOL_ADMIN,
    TenantRole.DISTRICT_ADMIN: BillingRole.DISTRICT_ADMIN,
    TenantRole.EMPLOYER_ADMIN: BillingRole.EMPLOYER_ADMIN,
}


def map_role_to_backend(role: Union[str, BillingRole]) -> Optional[BillingRole]:
    """Map a frontend role name to its catalog role, or None if it has no catalog."""
    if isinstance(role, BillingRole):
        return role
    return _FRONTEND_ROLES.get(role)


def billing_role_for_tenant_role(role: TenantRole) -> Optional[BillingRole]:
    """Catalog role a tenant of this role pays under, or None for non-payers."""
    return _TENANT_ROLE_TO_BILLING_ROLE.get(role)


def get_package(role: Union[str, BillingRole], package_id: str) -> Package:
    """
    Look up a catalog package.

    Raises:
        NotFoundError: If the role has no catalog or the package id is unknown
    """
    billing_role = map_role_to_backend(role)
    if billing_role is None:
        raise NotFoundError(f"Invalid role: {role}")
    package = _CATALOG[billing_role].get(package_id)
    if package is None:
        raise NotFoundError(f"Invalid package: {package_id} for role: {billing_role.value}")
    return package


def get_packages_for_role(role: Union[str, BillingRole]) -> List[Package]:
    """All packages for a role, cheapest first. Empty for unknown roles."""
    billing_role = map_role_to_backend(role)
    if billing_role is None:
        return []
    return sorted(_CATALOG[billing_role].values(), key=lambda p: p.price)


def validate_package(role: Union[str, BillingRole], package_id: str) -> bool:
    """Check the package exists and defines a positive limit for every key its role needs."""
    try:
        package = get_package(role, package_id)
    except NotFoundError as e:
        logger.warning(f"Package validation failed: {e}")
        return False

    if not package.name or package.price <= 0:
        logger.warning(f"Package validation failed: {package_id} is missing name or price")
        return False

    missing = [
        key.value
        for key in ROLE_LIMIT_KEYS[package.role]
        if not isinstance(package.limits.get(key.value), int)
        or package.limits[key.value] <= 0
    ]
    if missing:
        logger.warning(
            f"Package validation failed: {package.role.value}/{package_id} lacks limits {sorted(missing)}"
        )
        return False
    return True
