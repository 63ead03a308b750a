"""
BeeBark Backend — Connection Schemas
======================================

Who:   Returned by the /api/connection routes.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.user import UserSummary


class ConnectionRequestResponse(BaseModel):
    """A connection request as stored; returned by POST /connection/send."""
    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    status: str = Field(description="pending, accepted, rejected")
    created_at: datetime

    model_config = {"from_attributes": True}


class IncomingRequestResponse(BaseModel):
    """A pending request addressed to the caller, with the sender projected."""
    id: uuid.UUID
    sender: UserSummary
    receiver_id: uuid.UUID
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ConnectionStatusResponse(BaseModel):
    """
    Relationship between the caller and another user.

    status:
        connected  — already in each other's connection sets
        pending    — the caller sent a request that is still open
        received   — the other user sent one; request_id lets the caller act on it
        connect    — no relationship
    """
    status: Literal["connected", "pending", "received", "connect"]
    # Serialized as requestId, the name the web client reads
    request_id: Optional[uuid.UUID] = Field(default=None, serialization_alias="requestId")
