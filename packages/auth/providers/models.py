from typing import Optional
from enum import Enum
from pydantic import BaseModel


class IdentityProvider(str, Enum):
    """Supported identity providers"""

    FIREBASE = "firebase"


class IdentityClaims(BaseModel):
    """Verified claims of a bearer token"""

    uid: str
    email: Optional[str] = None


class NewAccount(BaseModel):
    """Account to create in the identity provider"""

    email: str
    password: str
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    email_verified: bool = True


class IdentityAccount(BaseModel):
    """Account created in the identity provider"""

    uid: str
    email: str
    display_name: Optional[str] = None
