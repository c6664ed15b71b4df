"""
Resource taxonomy.

Limit keys are what a package caps; resource keys are what a create
operation asks admission for. A scoped limit applies to every sub-key
(staff member or school) separately.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict

from common.core.exceptions import InvalidArgumentError
from packages.billing.models.domain.enums import BillingRole


class LimitKey(str, Enum):
    """Keys of Package.limits and Subscription.limits."""

    CHILDREN = "children"
    SCHOOLS = "schools"
    STAFF = "staff"
    STUDENTS_PER_STAFF = "studentsPerStaff"
    STAFF_PER_SCHOOL = "staffPerSchool"
    EMPLOYEES_PER_STAFF = "employeesPerStaff"

    @property
    def is_scoped(self) -> bool:
        return self in SCOPED_LIMIT_KEYS


SCOPED_LIMIT_KEYS: FrozenSet[LimitKey] = frozenset(
    {
        LimitKey.STUDENTS_PER_STAFF,
        LimitKey.STAFF_PER_SCHOOL,
        LimitKey.EMPLOYEES_PER_STAFF,
    }
)


class ResourceBase(str, Enum):
    """Base names used on the wire ("student", "student:<staffId>", ...)."""

    CHILD = "child"
    SCHOOL = "school"
    STAFF = "staff"
    STUDENT = "student"
    EMPLOYEE = "employee"

    @property
    def limit_key(self) -> LimitKey:
        return _BASE_TO_LIMIT_KEY[self]


_BASE_TO_LIMIT_KEY: Dict[ResourceBase, LimitKey] = {
    ResourceBase.CHILD: LimitKey.CHILDREN,
    ResourceBase.SCHOOL: LimitKey.SCHOOLS,
    ResourceBase.STAFF: LimitKey.STAFF,
    ResourceBase.STUDENT: LimitKey.STUDENTS_PER_STAFF,
    ResourceBase.EMPLOYEE: LimitKey.EMPLOYEES_PER_STAFF,
}


class ResourceKey(BaseModel):
    """A parsed resource key: base plus optional sub-key."""

    base: ResourceBase
    sub_key: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, raw: str, default_sub_key: Optional[str] = None) -> "ResourceKey":
        """
        Parse "<base>" or "<base>:<subKey>".

        Scoped bases without a sub-key take default_sub_key (the caller's id).
        Raises InvalidArgumentError for unknown bases or an empty sub-key.
        """
        if not raw:
            raise InvalidArgumentError("Resource key is required")

        base_name, sep, sub_key = raw.partition(":")
        try:
            base = ResourceBase(base_name)
        except ValueError:
            raise InvalidArgumentError(f"Unknown resource type: {base_name}")

        if sep and not sub_key:
            raise InvalidArgumentError(f"Resource key '{raw}' has an empty sub-key")

        if base.limit_key.is_scoped:
            sub_key = sub_key or default_sub_key
        elif sub_key:
            raise InvalidArgumentError(f"Resource type '{base_name}' is not scoped")

        return cls(base=base, sub_key=sub_key or None)

    @property
    def limit_key(self) -> LimitKey:
        return self.base.limit_key

    @property
    def wire(self) -> str:
        if self.sub_key:
            return f"{self.base.value}:{self.sub_key}"
        return self.base.value


# Limit keys each payer role's packages must define
ROLE_LIMIT_KEYS: Dict[BillingRole, FrozenSet[LimitKey]] = {
    BillingRole.PARENT: frozenset({LimitKey.CHILDREN}),
    BillingRole.SCHOOL_ADMIN: frozenset(
        {LimitKey.STAFF, LimitKey.STUDENTS_PER_STAFF}
    ),
    BillingRole.DISTRICT_ADMIN: frozenset(
        {LimitKey.SCHOOLS, LimitKey.STAFF_PER_SCHOOL, LimitKey.STUDENTS_PER_STAFF}
    ),
    BillingRole.EMPLOYER_ADMIN: frozenset(
        {LimitKey.STAFF, LimitKey.EMPLOYEES_PER_STAFF}
    ),
}
