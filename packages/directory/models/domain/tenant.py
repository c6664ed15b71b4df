"""
Domain models for tenants (user accounts).
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.directory.models.domain.enums import TenantRole


class Tenant(BaseModel):
    """
    A user account.

    creator_id points at the account that created this one (management
    hierarchy); billing_owner_id points at the root payer whose subscription
    covers it (billing hierarchy). A root payer has billing_owner_id == id.
    billing_owner_id never changes after creation.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: TenantRole
    organization_id: Optional[str] = None
    creator_id: Optional[str] = None
    billing_owner_id: str
    phone_number: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_root_payer(self) -> bool:
        return self.billing_owner_id == self.id

    @property
    def is_managed(self) -> bool:
        """Covered by someone else's subscription."""
        return self.billing_owner_id != self.id

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
