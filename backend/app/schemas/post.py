"""
BeeBark Backend — Post Schemas
================================

`like` and `comment` keep the field names the web client already reads.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.user import PublicUser


class CommentCreate(BaseModel):
    """Body of PUT /api/post/{id}/comment."""
    content: str = Field(min_length=1, max_length=2000, description="Comment text")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Comment cannot be blank")
        return stripped


class CommentResponse(BaseModel):
    id: uuid.UUID
    content: str
    user: PublicUser
    created_at: datetime

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    id: uuid.UUID
    author: PublicUser
    description: str
    image: Optional[str] = None
    like: List[uuid.UUID] = Field(default_factory=list, description="Ids of users who liked")
    comment: List[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PostSummary(BaseModel):
    """Compact post reference embedded in notifications."""
    id: uuid.UUID
    description: str
    image: Optional[str] = None

    model_config = {"from_attributes": True}
