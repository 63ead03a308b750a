"""Notification projection returned by GET /api/notification."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.post import PostSummary
from app.schemas.user import PublicUser


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: str
    related_user: PublicUser
    related_post: Optional[PostSummary] = None
    created_at: datetime

    model_config = {"from_attributes": True}
