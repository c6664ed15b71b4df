"""
Domain model for parent -> student links.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ParentStudentLink(BaseModel):
    """A parent's child. Counted against the parent's children limit."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    parent_id: str
    student_id: str
    billing_owner_id: str
    created_at: Optional[datetime] = None
