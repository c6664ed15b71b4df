"""Domain models for the directory."""

from packages.directory.models.domain.bulk_import import (
    BulkImportError,
    BulkImportOptions,
    BulkImportResult,
    BulkUserRow,
    CreatedUser,
)
from packages.directory.models.domain.enums import (
    EMPLOYER_STAFF_ROLES,
    SCHOOL_STAFF_ROLES,
    SignupRole,
    TenantRole,
)
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant

__all__ = [
    "BulkImportError",
    "BulkImportOptions",
    "BulkImportResult",
    "BulkUserRow",
    "CreatedUser",
    "EMPLOYER_STAFF_ROLES",
    "SCHOOL_STAFF_ROLES",
    "SignupRole",
    "TenantRole",
    "Organization",
    "ParentStudentLink",
    "Tenant",
]
