"""
BeeBark Backend — Post SQLAlchemy Models
==========================================

What:  `posts` plus its two child tables.
How:
    - post_likes:    (post_id, user_id) primary key, so the like set holds a
                     user at most once; created_at keeps output in like order
    - post_comments: append-only, ordered by created_at

Query pattern:
    The feed lists every post newest first, so created_at is indexed.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostLike(Base):
    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class PostComment(Base):
    __tablename__ = "post_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    user: Mapped[User] = relationship(User)


class Post(Base):
    """
    A feed entry written by one author.

    Never changes state beyond field mutation: likes and comments are
    edited by any user, description and image are set at creation.
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Reference returned by the media host, stored verbatim
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    author: Mapped[User] = relationship(User)
    likes: Mapped[List[PostLike]] = relationship(
        PostLike,
        order_by=PostLike.created_at,
        cascade="all, delete-orphan",
    )
    comments: Mapped[List[PostComment]] = relationship(
        PostComment,
        order_by=PostComment.created_at,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_posts_created_at", "created_at"),
    )

    @property
    def like_user_ids(self) -> List[uuid.UUID]:
        return [like.user_id for like in self.likes]

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, author={self.author_id}, likes={len(self.likes)})>"
