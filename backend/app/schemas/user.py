"""User identity projections embedded in other responses."""

import uuid
from typing import Optional

from pydantic import BaseModel


class PublicUser(BaseModel):
    """What any member may see about another: no contact details."""
    id: uuid.UUID
    first_name: str
    last_name: str
    user_name: str
    profile_image: Optional[str] = None
    headline: Optional[str] = None

    model_config = {"from_attributes": True}


class UserSummary(PublicUser):
    """PublicUser plus email; only shown to the receiver of a pending request."""
    email: Optional[str] = None
