from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthenticatedUser(BaseModel):
    """User context passed through authentication dependencies"""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    email: Optional[str] = None
