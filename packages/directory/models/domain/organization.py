"""
Domain models for organizations (schools, districts, employers).
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Organization(BaseModel):
    """
    A school, district or employer.

    owner_id is set on the organization a payer creates for itself at signup;
    those are never counted as managed schools.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: Optional[str] = None
    parent_organization_id: Optional[str] = None
    owner_id: Optional[str] = None
    billing_owner_id: str
    created_at: Optional[datetime] = None
