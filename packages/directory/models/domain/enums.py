"""
Directory enums.
"""

from enum import Enum
from typing import FrozenSet


class TenantRole(str, Enum):
    """Account roles."""

    PARENT = "parent"
    STUDENT = "student"
    SCHOOL_ADMIN = "school-admin"
    DISTRICT_ADMIN = "district-admin"
    EMPLOYER_ADMIN = "employer-admin"
    TEACHER = "teacher"
    COUNSELOR = "counselor"
    SOCIAL_WORKER = "social-worker"
    SUPERVISOR = "supervisor"
    HR = "hr"
    EMPLOYEE = "employee"

    @property
    def is_school_staff(self) -> bool:
        return self in SCHOOL_STAFF_ROLES

    @property
    def is_employer_staff(self) -> bool:
        return self in EMPLOYER_STAFF_ROLES


SCHOOL_STAFF_ROLES: FrozenSet[TenantRole] = frozenset(
    {TenantRole.TEACHER, TenantRole.COUNSELOR, TenantRole.SOCIAL_WORKER}
)

EMPLOYER_STAFF_ROLES: FrozenSet[TenantRole] = frozenset(
    {TenantRole.SUPERVISOR, TenantRole.HR}
)

# Roles that own their own organization when they sign up
ORGANIZATION_OWNER_ROLES: FrozenSet[TenantRole] = frozenset(
    {TenantRole.SCHOOL_ADMIN, TenantRole.DISTRICT_ADMIN, TenantRole.EMPLOYER_ADMIN}
)


class SignupRole(str, Enum):
    """Role names offered on the signup screen."""

    PARENT = "parent"
    SCHOOL = "school"
    DISTRICT = "district"
    EMPLOYER = "employer"

    @property
    def tenant_role(self) -> TenantRole:
        return {
            SignupRole.PARENT: TenantRole.PARENT,
            SignupRole.SCHOOL: TenantRole.SCHOOL_ADMIN,
            SignupRole.DISTRICT: TenantRole.DISTRICT_ADMIN,
            SignupRole.EMPLOYER: TenantRole.EMPLOYER_ADMIN,
        }[self]
