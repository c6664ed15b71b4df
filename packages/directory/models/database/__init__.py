"""Database models for the directory."""

from packages.directory.models.database.organization import OrganizationEntity
from packages.directory.models.database.parent_link import ParentStudentLinkEntity
from packages.directory.models.database.tenant import TenantEntity

__all__ = [
    "OrganizationEntity",
    "ParentStudentLinkEntity",
    "TenantEntity",
]
