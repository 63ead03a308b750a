"""
BeeBark Backend — Notification SQLAlchemy Model
=================================================

Append-only record written as a side effect of connection and post
activity. There is no read/ack state; consumers list and delete.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.post import Post
from app.models.user import User


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    CONNECTION_ACCEPTED = "connectionAccepted"
    CONNECTION_REJECTED = "connectionRejected"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    related_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    related_post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    related_user: Mapped[User] = relationship(User, foreign_keys=[related_user_id])
    related_post: Mapped[Optional[Post]] = relationship(Post)

    __table_args__ = (
        Index("idx_notifications_receiver_created", "receiver_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type='{self.type}', receiver={self.receiver_id})>"
