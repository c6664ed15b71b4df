"""
Domain models for bulk member import.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BulkUserRow(_CamelModel):
    """One row of an import sheet. Email and password may be generated."""

    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    password: Optional[str] = None
    phone_number: Optional[str] = None
    role: Optional[str] = None


class BulkImportOptions(_CamelModel):
    generate_emails: bool = False
    email_domain: Optional[str] = None
    generate_passwords: bool = False
    skip_duplicates: bool = True
    default_role: Optional[str] = None


class BulkImportError(_CamelModel):
    """A row that was not created. row is 1-based."""

    row: int
    email: Optional[str] = None
    error: str


class CreatedUser(_CamelModel):
    """A created account. password is only echoed back when it was generated."""

    uid: str
    first_name: str
    last_name: str
    email: str
    password: Optional[str] = None


class BulkImportResult(_CamelModel):
    total: int = 0
    created: int = 0
    skipped: int = 0
    errors: List[BulkImportError] = Field(default_factory=list)
    created_users: List[CreatedUser] = Field(default_factory=list)
