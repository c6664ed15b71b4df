"""
Domain models for usage snapshots and quota decisions.
"""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.resources import LimitKey


class UsageSnapshot(BaseModel):
    """
    Live resource counts for one billing owner.

    Derived from the directory on every read and never persisted.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    children: int = 0
    schools: int = 0
    staff_total: int = 0
    students_total: int = 0
    employees_total: int = 0
    students_per_staff: Dict[str, int] = Field(default_factory=dict)
    students_per_school: Dict[str, int] = Field(default_factory=dict)
    staff_per_school: Dict[str, int] = Field(default_factory=dict)
    employees_per_staff: Dict[str, int] = Field(default_factory=dict)

    def flat(self, key: LimitKey) -> int:
        """Aggregate count for a flat limit key."""
        return getattr(self, _FLAT_FIELDS[key])

    def scoped(self, key: LimitKey) -> Dict[str, int]:
        """Per-sub-key counts for a scoped limit key."""
        return getattr(self, _SCOPED_FIELDS[key])

    def worst(self, key: LimitKey) -> int:
        """Largest single count: the flat total, or the worst sub-key."""
        if key.is_scoped:
            return max(self.scoped(key).values(), default=0)
        return self.flat(key)


_FLAT_FIELDS: Dict[LimitKey, str] = {
    LimitKey.CHILDREN: "children",
    LimitKey.SCHOOLS: "schools",
    LimitKey.STAFF: "staff_total",
}

_SCOPED_FIELDS: Dict[LimitKey, str] = {
    LimitKey.STUDENTS_PER_STAFF: "students_per_staff",
    LimitKey.STAFF_PER_SCHOOL: "staff_per_school",
    LimitKey.EMPLOYEES_PER_STAFF: "employees_per_staff",
}


class LimitView(BaseModel):
    """The (current, limit) pair a check compares against."""

    limit_key: LimitKey
    current: int
    limit: Optional[int]


class DenialReason(str, Enum):
    """Why an admission check was denied."""

    NO_SUBSCRIPTION = "no_subscription"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"
    LIMIT_NOT_CONFIGURED = "limit_not_configured"
    LIMIT_EXCEEDED = "limit_exceeded"


class LimitCheckResult(BaseModel):
    """
    Result of an admission check.

    Denials are always structured: reason says why and can_upgrade tells the
    client whether a bigger package would help.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    allowed: bool
    current: int = 0
    limit: Optional[int] = None
    requested: int = 0
    reason: Optional[DenialReason] = None
    message: Optional[str] = None
    can_upgrade: bool = False


class DowngradeViolation(BaseModel):
    """One limit that current usage already exceeds under the target package."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resource_key: str
    current: int
    limit: int
    excess: int
    message: str


class MyQuota(BaseModel):
    """Per-user quota view for staff members and managed school admins."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resource_type: str
    per_staff: bool
    current: int
    limit: int
    remaining: int
